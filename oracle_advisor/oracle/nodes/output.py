"""
Completion node for the oracle graph.

Final node that records the outcome and tells the caller about errors.
"""

import logging
from typing import Any, Dict

from langchain_core.runnables import RunnableConfig

from oracle_advisor.oracle.graph.state import OracleState, get_runtime


logger = logging.getLogger(__name__)


async def complete_node(state: OracleState, config: RunnableConfig) -> Dict[str, Any]:
    """
    Mark the request complete.

    Args:
        state: Current oracle state
        config: Run config carrying the request runtime

    Returns:
        Completion tracking message
    """
    runtime = get_runtime(config)
    request_id = state.get("request_id", "unknown")
    _log = f"[request={request_id}] [graph=oracle] [node=complete] "

    error_code = state.get("error_code")
    if error_code:
        await runtime.emitter.info(f"Error: {state.get('error_message')}")
        logger.info(f"{_log}Request failed | error={error_code} -> END")
        content = f"Request failed: {error_code}"
    else:
        logger.info(
            f"{_log}Request complete | source={state.get('source')}, "
            f"chars={len(state.get('text') or '')} -> END"
        )
        content = f"Request complete via {state.get('source')}"

    return {"messages": [{"role": "system", "node": "complete", "content": content}]}
