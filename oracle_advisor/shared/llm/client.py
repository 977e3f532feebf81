"""
OpenAI client pool and provider call with retry logic.

Provides a pool that reuses one AsyncOpenAI client per credential
configuration, builds Responses API payloads, and wraps the call with
the retry executor.
"""

import logging
import re
from typing import Any, Callable, Dict, Optional, Tuple

from openai import AsyncOpenAI

from oracle_advisor.shared.cancellation import CancellationToken
from oracle_advisor.shared.llm.retry import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_ATTEMPTS,
    with_retries,
)


logger = logging.getLogger(__name__)

ProviderClientKey = Tuple[str, str, str]

# o1, o3, o3-mini, o4-mini/..., but not "omni-*" or "gpt-4o"
REASONING_MODEL_PATTERN = re.compile(r"^o\d+($|[-/])")


def _default_client_factory(
    api_key: str, base_url: Optional[str], organization: Optional[str]
) -> AsyncOpenAI:
    # Retries are owned by with_retries; the SDK must not stack its own.
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        organization=organization,
        max_retries=0,
    )


class ProviderClientPool:
    """
    Reuses one provider client per (credential, endpoint, organization).

    Lookup-or-create never awaits, so concurrent requests on one event
    loop cannot race on the same key. Entries live as long as the pool.
    """

    def __init__(
        self,
        factory: Optional[Callable[[str, Optional[str], Optional[str]], Any]] = None,
    ):
        self._factory = factory or _default_client_factory
        self._clients: Dict[ProviderClientKey, Any] = {}

    def get_client(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> Any:
        """
        Return the cached client for this configuration, creating it on miss.

        Args:
            api_key: Provider credential
            base_url: Optional endpoint override
            organization: Optional organization override

        Returns:
            Provider client instance (AsyncOpenAI unless a factory is injected).
        """
        key = (api_key or "", base_url or "", organization or "")
        client = self._clients.get(key)
        if client is None:
            client = self._factory(api_key, base_url or None, organization or None)
            self._clients[key] = client
            logger.debug(
                f"Created provider client | base_url={base_url or 'default'}, "
                f"org={'set' if organization else 'unset'}, pool_size={len(self._clients)}"
            )
        return client

    def __len__(self) -> int:
        return len(self._clients)


def is_reasoning_model(model: str) -> bool:
    """Reasoning-class models take an effort setting instead of temperature."""
    return bool(REASONING_MODEL_PATTERN.match(model or ""))


def clamp_max_tokens(requested: int, cap: int) -> int:
    """Clamp the requested output size to [1, cap]."""
    return min(max(1, requested), cap)


def build_responses_payload(
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_output_tokens: int,
    temperature: Optional[float] = None,
    reasoning_effort: str = "medium",
) -> Dict[str, Any]:
    """
    Build the keyword arguments for `client.responses.create`.

    Reasoning-class models get `reasoning.effort` and never a temperature;
    other models get the temperature only when one was requested.
    """
    payload: Dict[str, Any] = {
        "model": model,
        "input": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_output_tokens": max_output_tokens,
    }
    if is_reasoning_model(model):
        payload["reasoning"] = {"effort": reasoning_effort}
    elif temperature is not None:
        payload["temperature"] = temperature
    return payload


async def call_provider(
    client: Any,
    payload: Dict[str, Any],
    token: Optional[CancellationToken] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
) -> Any:
    """
    Call the Responses API with automatic retries on transient failures.

    Args:
        client: Provider client from the pool
        payload: Keyword arguments for responses.create
        token: Request token shared by every attempt
        max_attempts: Total attempts
        base_delay_ms: Initial backoff

    Returns:
        The raw provider response object.

    Raises:
        Exception: The last provider error, or OperationCancelledError.
    """

    async def create() -> Any:
        return await client.responses.create(**payload)

    return await with_retries(
        create,
        max_attempts=max_attempts,
        base_delay_ms=base_delay_ms,
        token=token,
    )
