"""
Sampling broker: the entry point for oracle requests.

Resolves request defaults, opens the per-request deadline, runs the
sampling graph and turns its final state into an OracleResponse. Every
failure ends up as an error response; nothing is raised to transports.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

from oracle_advisor.config import OracleConfig, load_config
from oracle_advisor.oracle.capabilities import (
    NO_CAPABILITIES,
    PROGRESS_ACCEPTED,
    PROGRESS_COMPLETE,
    CallerCapabilities,
    ProgressEmitter,
)
from oracle_advisor.oracle.graph.build import create_oracle_graph
from oracle_advisor.oracle.graph.state import OracleRuntime
from oracle_advisor.oracle.prompts.builders import build_system_prompt, build_user_prompt
from oracle_advisor.oracle.schemas import OracleRequest, OracleResponse
from oracle_advisor.shared.cancellation import CALLER_CANCEL_REASON, RequestDeadline
from oracle_advisor.shared.errors import provider_error_from_exception
from oracle_advisor.shared.llm.client import ProviderClientPool, clamp_max_tokens
from oracle_advisor.shared.logging.config import log_request_event


logger = logging.getLogger(__name__)


class SamplingBroker:
    """
    Arbitrates caller-provided vs provider generation for oracle requests.

    One broker serves many concurrent requests. The client pool is owned by
    the broker and can be injected for isolation in tests.
    """

    def __init__(
        self,
        config: Optional[OracleConfig] = None,
        client_pool: Optional[ProviderClientPool] = None,
    ):
        self.config = config if config is not None else load_config()
        self.client_pool = client_pool if client_pool is not None else ProviderClientPool()
        self._graph = create_oracle_graph()

    def build_initial_state(self, request: OracleRequest, request_id: str) -> Dict[str, Any]:
        """Resolve defaults and prompts into the graph's initial state."""
        requested_tokens = request.max_output_tokens or self.config.default_max_tokens
        return {
            "request_id": request_id,
            "sampling_mode": self.config.sampling_mode.value,
            "model": request.model or self.config.default_model,
            "system_prompt": build_system_prompt(request.resolved_sections()),
            "user_prompt": build_user_prompt(request.question, request.context),
            "max_tokens": clamp_max_tokens(requested_tokens, self.config.max_tokens_cap),
            "temperature": request.temperature,
            "client_sampling_attempted": False,
            "text": None,
            "source": None,
            "error_code": None,
            "error_message": None,
            "messages": [],
        }

    async def ask(
        self,
        request: OracleRequest,
        capabilities: Optional[CallerCapabilities] = None,
        signal: Any = None,
    ) -> OracleResponse:
        """
        Answer one oracle request.

        Args:
            request: Validated request
            capabilities: What the caller supports (negotiated by the transport)
            signal: Optional external cancellation signal (asyncio.Event,
                listener object, or subscribe callable)

        Returns:
            OracleResponse with the guidance text, or an error response.
        """
        capabilities = capabilities or NO_CAPABILITIES
        request_id = str(uuid.uuid4())
        timeout_ms = request.timeout_ms or self.config.default_timeout_ms
        initial_state = self.build_initial_state(request, request_id)
        _log = f"[request={request_id}] [graph=oracle] [api=ask] "

        emitter = ProgressEmitter(capabilities)
        start_time = time.perf_counter()

        logger.info(
            f"{_log}Request starting | model={initial_state['model']}, "
            f"mode={initial_state['sampling_mode']}, max_tokens={initial_state['max_tokens']}, "
            f"timeout_ms={timeout_ms}, can_sample={capabilities.can_sample}"
        )
        log_request_event(
            "request_start",
            request_id,
            {"model": initial_state["model"], "mode": initial_state["sampling_mode"]},
        )
        await emitter.info(f"Starting oracle request (model={initial_state['model']})")
        await emitter.progress(PROGRESS_ACCEPTED)

        try:
            async with RequestDeadline(timeout_ms, signal) as token:
                runtime = OracleRuntime(
                    config=self.config,
                    client_pool=self.client_pool,
                    token=token,
                    capabilities=capabilities,
                    emitter=emitter,
                )
                final_state = await self._graph.ainvoke(
                    initial_state, config={"configurable": {"oracle_runtime": runtime}}
                )
                if token.reason == CALLER_CANCEL_REASON:
                    await emitter.info("Request cancelled by client")
            response = self._to_response(request_id, final_state, start_time)
        except Exception as e:
            logger.exception(f"{_log}Request failed unexpectedly: {e}")
            error = provider_error_from_exception(e)
            response = OracleResponse(
                request_id=request_id,
                is_error=True,
                text=error.message,
                error_code=error.code,
                latency_ms=self._elapsed_ms(start_time),
            )
        finally:
            await emitter.progress(PROGRESS_COMPLETE)

        log_request_event(
            "request_complete",
            request_id,
            {
                "is_error": response.is_error,
                "error_code": response.error_code,
                "source": response.source,
                "latency_ms": response.latency_ms,
            },
        )
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)

    def _to_response(
        self, request_id: str, final_state: Dict[str, Any], start_time: float
    ) -> OracleResponse:
        latency_ms = self._elapsed_ms(start_time)
        trace = [message.get("node", "?") for message in final_state.get("messages", [])]
        logger.debug(
            f"[request={request_id}] [graph=oracle] Node trace | {' -> '.join(trace)}, "
            f"client_sampling_attempted={final_state.get('client_sampling_attempted')}"
        )
        if final_state.get("error_code"):
            return OracleResponse(
                request_id=request_id,
                is_error=True,
                text=final_state.get("error_message") or final_state["error_code"],
                error_code=final_state["error_code"],
                latency_ms=latency_ms,
            )
        return OracleResponse(
            request_id=request_id,
            text=final_state["text"],
            source=final_state.get("source"),
            latency_ms=latency_ms,
        )
