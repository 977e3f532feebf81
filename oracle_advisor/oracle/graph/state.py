"""
Oracle graph state schema.

Defines the state that flows through the sampling graph, plus the
per-request runtime collaborators passed alongside it in the run config.
"""

import operator
from dataclasses import dataclass
from typing import Annotated, List, Optional, TypedDict

from langchain_core.runnables import RunnableConfig

from oracle_advisor.config import OracleConfig
from oracle_advisor.oracle.capabilities import CallerCapabilities, ProgressEmitter
from oracle_advisor.shared.cancellation import CancellationToken
from oracle_advisor.shared.llm.client import ProviderClientPool


class OracleState(TypedDict):
    """
    State schema for one oracle request.

    Prompts and limits are resolved before the graph starts; nodes only
    fill in the outcome slots.
    """

    # Request tracking
    request_id: str
    sampling_mode: str

    # Resolved generation inputs
    model: str
    system_prompt: str
    user_prompt: str
    max_tokens: int
    temperature: Optional[float]

    # Outcome (exactly one of text / error_code ends up set)
    client_sampling_attempted: bool
    text: Optional[str]
    source: Optional[str]
    error_code: Optional[str]
    error_message: Optional[str]

    # Tracking messages
    messages: Annotated[List[dict], operator.add]


@dataclass
class OracleRuntime:
    """Per-request collaborators that are not part of the graph state."""

    config: OracleConfig
    client_pool: ProviderClientPool
    token: CancellationToken
    capabilities: CallerCapabilities
    emitter: ProgressEmitter


def get_runtime(config: RunnableConfig) -> OracleRuntime:
    """Fetch the runtime placed under config['configurable']['oracle_runtime']."""
    return config["configurable"]["oracle_runtime"]
