"""
Cancellation and deadline handling for oracle requests.

A request owns one CancellationToken. The token is fired either by a
deadline timer or by a caller-supplied cancellation signal, whichever
comes first. Every suspension point in the request (caller sampling,
provider attempts, retry backoff) goes through the token, so firing it
aborts the in-flight operation instead of waiting it out.

External signals come in several styles; each is wrapped by a thin
adapter exposing `attach(token, reason) -> detach`.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Protocol, TypeVar

from oracle_advisor.shared.errors import OperationCancelledError


logger = logging.getLogger(__name__)

T = TypeVar("T")

TIMEOUT_REASON = "Timed out after {timeout_ms} ms"
CALLER_CANCEL_REASON = "Cancelled by caller"


class CancellationToken:
    """
    One-shot cancellation flag with listeners and abortable waits.

    The first call to `cancel` wins; later calls are ignored and keep the
    original reason.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._listeners: List[Callable[[str], Any]] = []

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> bool:
        """
        Fire the token.

        Returns:
            True if this call fired the token, False if it was already fired.
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        for listener in list(self._listeners):
            try:
                listener(reason)
            except Exception:
                logger.debug("Cancellation listener failed", exc_info=True)
        return True

    def add_listener(self, listener: Callable[[str], Any]) -> None:
        """Register a callback run once with the reason when the token fires."""
        if self.is_cancelled():
            listener(self._reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[str], Any]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled():
            raise OperationCancelledError(self._reason or "cancelled")

    async def wait(self) -> str:
        await self._event.wait()
        return self._reason or "cancelled"

    async def sleep(self, seconds: float) -> None:
        """
        Sleep for `seconds`, aborting early if the token fires.

        Raises:
            OperationCancelledError: If the token is or becomes cancelled.
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelledError(self._reason or "cancelled")

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run `operation()` as a task and cancel that task if the token fires.

        Cancelling the task aborts the underlying network request, so no
        provider work continues after the token fires.

        Raises:
            OperationCancelledError: If the token is or becomes cancelled
                before the operation finishes.
        """
        self.raise_if_cancelled()

        task = asyncio.ensure_future(operation())
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Operation raised while being aborted", exc_info=True)
        raise OperationCancelledError(self._reason or "cancelled")


# =============================================================================
# External signal adapters
# =============================================================================


class SignalAdapter(Protocol):
    def attach(self, token: CancellationToken, reason: str) -> Callable[[], None]:
        ...


class ListenerSignalAdapter:
    """Event-listener style: objects with add_listener(cb) / remove_listener(cb)."""

    def __init__(self, signal: Any):
        self._signal = signal

    def attach(self, token: CancellationToken, reason: str) -> Callable[[], None]:
        def on_abort(*_args: Any) -> None:
            token.cancel(reason)

        self._signal.add_listener(on_abort)

        def detach() -> None:
            self._signal.remove_listener(on_abort)

        return detach


class CallbackSignalAdapter:
    """Plain callback style: a callable `subscribe(cb)` returning an unsubscribe callable."""

    def __init__(self, subscribe: Callable[[Callable[..., Any]], Optional[Callable[[], Any]]]):
        self._subscribe = subscribe

    def attach(self, token: CancellationToken, reason: str) -> Callable[[], None]:
        unsubscribe = self._subscribe(lambda *_args: token.cancel(reason))

        def detach() -> None:
            if unsubscribe is not None:
                unsubscribe()

        return detach


class EventSignalAdapter:
    """asyncio.Event style: a watcher task fires the token when the event is set."""

    def __init__(self, event: asyncio.Event):
        self._event = event

    def attach(self, token: CancellationToken, reason: str) -> Callable[[], None]:
        async def watch() -> None:
            await self._event.wait()
            token.cancel(reason)

        watcher = asyncio.ensure_future(watch())
        return watcher.cancel


def adapt_signal(signal: Any) -> SignalAdapter:
    """
    Pick the adapter matching the style of an external cancellation signal.

    Raises:
        TypeError: If the signal style is not recognized.
    """
    if isinstance(signal, asyncio.Event):
        return EventSignalAdapter(signal)
    if callable(getattr(signal, "add_listener", None)) and callable(
        getattr(signal, "remove_listener", None)
    ):
        return ListenerSignalAdapter(signal)
    if callable(signal):
        return CallbackSignalAdapter(signal)
    raise TypeError(f"Unsupported cancellation signal: {type(signal).__name__}")


# =============================================================================
# Per-request deadline
# =============================================================================


class RequestDeadline:
    """
    Async context manager merging a deadline timer and an optional caller
    signal into one CancellationToken.

    Usage:
        async with RequestDeadline(timeout_ms=120_000, signal=event) as token:
            await token.run(call_provider)

    On exit the timer is cancelled and the signal listener detached, on
    every exit path.
    """

    def __init__(self, timeout_ms: int, signal: Any = None):
        self.timeout_ms = timeout_ms
        self.signal = signal
        self.token = CancellationToken()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._detach: Optional[Callable[[], None]] = None

    async def __aenter__(self) -> CancellationToken:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            self.timeout_ms / 1000,
            self.token.cancel,
            TIMEOUT_REASON.format(timeout_ms=self.timeout_ms),
        )
        if self.signal is not None:
            try:
                self._detach = adapt_signal(self.signal).attach(
                    self.token, CALLER_CANCEL_REASON
                )
            except Exception:
                self._timer.cancel()
                raise
        return self.token

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._detach is not None:
            try:
                self._detach()
            except Exception:
                logger.debug("Failed to detach cancellation signal", exc_info=True)
            self._detach = None
