"""
Caller capabilities and best-effort progress reporting.

Transports negotiate once per request what the caller supports and hand
the broker a CallerCapabilities value. The broker never probes the
caller's context itself.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from oracle_advisor.oracle.schemas import SamplingPayload


logger = logging.getLogger(__name__)

PROGRESS_TOTAL = 100

# Checkpoints, in emission order
PROGRESS_ACCEPTED = 0
PROGRESS_PROVIDER_START = 10
PROGRESS_PROVIDER_DONE = 90
PROGRESS_COMPLETE = 100


TrySample = Callable[[SamplingPayload], Awaitable[Any]]
ReportProgress = Callable[[float, float], Any]
Notify = Callable[[str], Any]


@dataclass(frozen=True)
class CallerCapabilities:
    """
    What the calling client supports for this request.

    Attributes:
        try_sample: Caller-provided generation, or None when unavailable
        report_progress: Progress sink taking (current, total); sync or async
        notify: Informational message sink; sync or async
    """

    try_sample: Optional[TrySample] = None
    report_progress: Optional[ReportProgress] = None
    notify: Optional[Notify] = None

    @property
    def can_sample(self) -> bool:
        return self.try_sample is not None


NO_CAPABILITIES = CallerCapabilities()


async def _call_quietly(func: Optional[Callable[..., Any]], *args: Any) -> None:
    if func is None:
        return
    try:
        result = func(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.debug("Caller notification sink failed", exc_info=True)


class ProgressEmitter:
    """
    Best-effort progress and info reporting for one request.

    Failures in the caller's sinks are logged at debug level and never
    affect the request. Progress never goes backwards and 100 is emitted
    at most once.
    """

    def __init__(self, capabilities: CallerCapabilities = NO_CAPABILITIES):
        self._capabilities = capabilities
        self._last = -1
        self._finished = False

    async def info(self, message: str) -> None:
        await _call_quietly(self._capabilities.notify, message)

    async def progress(self, current: int, total: int = PROGRESS_TOTAL) -> None:
        if self._finished or current < self._last:
            return
        self._last = current
        if current >= total:
            self._finished = True
        await _call_quietly(self._capabilities.report_progress, current, total)
