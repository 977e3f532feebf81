"""
Client sampling node for the oracle graph.

Asks the caller's own generation capability for the guidance text. Any
failure or unusable result means "unavailable"; only 'always' mode turns
that into an error.
"""

import logging
from typing import Any, Dict

from langchain_core.runnables import RunnableConfig

from oracle_advisor.config import SamplingMode
from oracle_advisor.oracle.graph.state import OracleState, get_runtime
from oracle_advisor.oracle.schemas import SamplingPayload
from oracle_advisor.shared.errors import ClientSamplingUnavailableError
from oracle_advisor.shared.llm.response import collect_text


logger = logging.getLogger(__name__)


async def client_sampling_node(state: OracleState, config: RunnableConfig) -> Dict[str, Any]:
    """
    Try caller-provided generation once.

    Args:
        state: Current oracle state
        config: Run config carrying the request runtime

    Returns:
        State updates: text and source on success; an error in 'always'
        mode when nothing usable came back; otherwise only tracking data.
    """
    runtime = get_runtime(config)
    capabilities = runtime.capabilities
    request_id = state.get("request_id", "unknown")
    _log = f"[request={request_id}] [graph=oracle] [node=client_sampling] "

    logger.info(f"{_log}Entering node | can_sample={capabilities.can_sample}")

    text = ""
    if capabilities.can_sample:
        payload = SamplingPayload.from_prompts(
            system_prompt=state["system_prompt"],
            user_prompt=state["user_prompt"],
            max_tokens=state["max_tokens"],
            model=state["model"],
            temperature=state.get("temperature"),
        )
        try:
            result = await runtime.token.run(lambda: capabilities.try_sample(payload))
            text = collect_text(result)
        except Exception as e:
            logger.info(f"{_log}Client sampling unavailable: {e}")

    if text:
        logger.info(f"{_log}Client sampling succeeded | chars={len(text)}")
        await runtime.emitter.info("Used client-side sampling")
        return {
            "client_sampling_attempted": True,
            "text": text,
            "source": "client",
            "messages": [{"role": "system", "node": "client_sampling", "content": "Used client-side sampling"}],
        }

    update: Dict[str, Any] = {
        "client_sampling_attempted": True,
        "messages": [{"role": "system", "node": "client_sampling", "content": "Client sampling unavailable"}],
    }
    if state.get("sampling_mode") == SamplingMode.ALWAYS.value:
        logger.warning(f"{_log}Client sampling required but unavailable")
        update["error_code"] = ClientSamplingUnavailableError.code
        update["error_message"] = "Client sampling requested but not available"
    return update
