"""
Provider node for the oracle graph.

Calls the configured remote provider through the client pool, with
retries and the request's shared cancellation token, then normalizes the
response into text.
"""

import logging
import time
from typing import Any, Dict

from langchain_core.runnables import RunnableConfig

from oracle_advisor.oracle.capabilities import PROGRESS_PROVIDER_DONE, PROGRESS_PROVIDER_START
from oracle_advisor.oracle.graph.state import OracleState, get_runtime
from oracle_advisor.shared.errors import (
    MissingProviderKeyError,
    OperationCancelledError,
    OracleError,
    provider_error_from_exception,
)
from oracle_advisor.shared.llm.client import build_responses_payload, call_provider
from oracle_advisor.shared.llm.response import extract_text


logger = logging.getLogger(__name__)


def _error_update(error: OracleError) -> Dict[str, Any]:
    return {
        "error_code": error.code,
        "error_message": error.message,
        "messages": [{"role": "system", "node": "provider", "content": f"{error.code}: {error.message}"}],
    }


async def provider_node(state: OracleState, config: RunnableConfig) -> Dict[str, Any]:
    """
    Generate the guidance text with the remote provider.

    This node:
    1. Verifies a provider credential is configured (no network otherwise)
    2. Stops early when the request token already fired
    3. Fetches the pooled client and builds the Responses API payload
    4. Calls the provider with retries under the request token
    5. Extracts text from the response

    Args:
        state: Current oracle state
        config: Run config carrying the request runtime

    Returns:
        State updates with text and source, or error code and message
    """
    runtime = get_runtime(config)
    settings = runtime.config
    request_id = state.get("request_id", "unknown")
    _log = f"[request={request_id}] [graph=oracle] [node=provider] "

    logger.info(
        f"{_log}Entering node | model={state['model']}, max_tokens={state['max_tokens']}"
    )

    if not settings.has_api_key:
        error = MissingProviderKeyError(
            "Missing OPENAI_API_KEY in environment (required for server-side generation)"
        )
        logger.error(f"{_log}{error.message}")
        return _error_update(error)

    # Token fired during caller sampling; no provider call starts
    if runtime.token.is_cancelled():
        error = OperationCancelledError(runtime.token.reason or "cancelled")
        logger.info(f"{_log}Skipping provider call | {error.message}")
        return _error_update(error)

    client = runtime.client_pool.get_client(
        settings.api_key, settings.base_url, settings.organization
    )
    payload = build_responses_payload(
        model=state["model"],
        system_prompt=state["system_prompt"],
        user_prompt=state["user_prompt"],
        max_output_tokens=state["max_tokens"],
        temperature=state.get("temperature"),
        reasoning_effort=settings.reasoning_effort,
    )

    await runtime.emitter.progress(PROGRESS_PROVIDER_START)
    start_time = time.perf_counter()
    try:
        response = await call_provider(
            client,
            payload,
            token=runtime.token,
            max_attempts=settings.retry.max_attempts,
            base_delay_ms=settings.retry.base_delay_ms,
        )
    except Exception as e:
        error = provider_error_from_exception(e)
        logger.error(f"{_log}{error.message}")
        return _error_update(error)

    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(
        f"{_log}Provider responded | model={state['model']}, "
        f"tokens={state['max_tokens']}, latencyMs={duration_ms:.0f}"
    )
    await runtime.emitter.progress(PROGRESS_PROVIDER_DONE)
    await runtime.emitter.info(f"Completed in {duration_ms:.0f} ms")

    try:
        text = extract_text(response)
    except OracleError as e:
        logger.warning(f"{_log}{e.message}")
        return _error_update(e)

    logger.info(f"{_log}Node finished | chars={len(text)}")
    return {
        "text": text,
        "source": "provider",
        "messages": [{"role": "system", "node": "provider", "content": f"Completed in {duration_ms:.0f} ms"}],
    }
