"""
Routing logic for the oracle graph.

Decides between caller-provided generation and the provider path based
on the sampling mode and what the previous node produced.
"""

import logging
from typing import Literal

from oracle_advisor.config import SamplingMode
from oracle_advisor.oracle.graph.state import OracleState


logger = logging.getLogger(__name__)


def route_entry(state: OracleState) -> Literal["client_sampling", "provider"]:
    """
    Pick the first generation mechanism.

    Routing logic:
    1. mode 'off' -> provider only
    2. otherwise -> try caller-provided generation first

    Args:
        state: Initial oracle state

    Returns:
        Name of the first node to execute
    """
    request_id = state.get("request_id", "unknown")
    mode = state.get("sampling_mode", SamplingMode.AUTO.value)
    _log = f"[request={request_id}] [graph=oracle] [router=route_entry] "

    if mode == SamplingMode.OFF.value:
        logger.info(f"{_log}Routing to 'provider' | mode={mode}")
        return "provider"

    logger.info(f"{_log}Routing to 'client_sampling' | mode={mode}")
    return "client_sampling"


def route_after_client_sampling(
    state: OracleState,
) -> Literal["provider", "complete"]:
    """
    Decide whether to fall back to the provider after client sampling.

    Routing logic:
    1. Client produced text -> complete
    2. Client failed in 'always' mode (error recorded) -> complete
    3. Otherwise ('auto') -> provider, exactly once

    Args:
        state: Current oracle state

    Returns:
        Name of the next node to execute
    """
    request_id = state.get("request_id", "unknown")
    has_text = bool(state.get("text"))
    has_error = state.get("error_code") is not None
    _log = f"[request={request_id}] [graph=oracle] [router=route_after_client_sampling] "

    if has_text or has_error:
        logger.info(
            f"{_log}Routing to 'complete' | text={has_text}, error={state.get('error_code')}"
        )
        return "complete"

    logger.info(f"{_log}Routing to 'provider' | client sampling produced no text")
    return "provider"
