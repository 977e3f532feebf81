"""
FastAPI endpoints for the oracle.

Provides a REST API for asking engineering questions. HTTP callers have
no generation capability of their own, so requests always go through the
provider path unless the sampling mode forbids it.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from oracle_advisor.oracle.broker import SamplingBroker
from oracle_advisor.oracle.schemas import OracleRequest, OracleResponse


logger = logging.getLogger(__name__)

# Create router for oracle route
router = APIRouter(prefix="/api/oracle", tags=["oracle"])

# Broker instance (shared across requests)
_broker: Optional[SamplingBroker] = None


def get_broker() -> SamplingBroker:
    """Get or create the shared broker instance."""
    global _broker
    if _broker is None:
        _broker = SamplingBroker()
    return _broker


async def _watch_disconnect(request: Request, cancelled: asyncio.Event) -> None:
    while not cancelled.is_set():
        if await request.is_disconnected():
            cancelled.set()
            return
        await asyncio.sleep(0.5)


@router.post("/ask", response_model=OracleResponse)
async def ask(
    payload: OracleRequest,
    request: Request,
    broker: SamplingBroker = Depends(get_broker),
) -> OracleResponse:
    """
    Ask the oracle an engineering question.

    Orchestration failures come back as an OracleResponse with is_error set,
    never as an HTTP error. A client disconnect cancels the request.

    Args:
        payload: Validated oracle request
        request: Incoming HTTP request, watched for disconnects

    Returns:
        Guidance text or an error response
    """
    disconnected = asyncio.Event()
    watcher = asyncio.ensure_future(_watch_disconnect(request, disconnected))
    try:
        response = await broker.ask(payload, signal=disconnected)
    finally:
        watcher.cancel()

    if response.is_error:
        logger.warning(f"[request={response.request_id}] [api=ask] {response.as_text()}")
    return response


@router.get("/config")
async def get_effective_config(
    broker: SamplingBroker = Depends(get_broker),
) -> Dict[str, Any]:
    """
    Effective non-secret settings.

    Returns:
        Model, cap, sampling mode and whether a provider key is configured
    """
    config = broker.config
    return {
        "default_model": config.default_model,
        "max_tokens_cap": config.max_tokens_cap,
        "sampling_mode": config.sampling_mode.value,
        "reasoning_effort": config.reasoning_effort,
        "default_timeout_ms": config.default_timeout_ms,
        "default_max_tokens": config.default_max_tokens,
        "base_url": config.base_url,
        "has_api_key": config.has_api_key,
    }


@router.get("/health")
async def health_check() -> Dict[str, str]:
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "oracle",
    }
