"""Oracle request pipeline: schemas, prompts, sampling graph and broker."""

from oracle_advisor.oracle.broker import SamplingBroker
from oracle_advisor.oracle.capabilities import CallerCapabilities, ProgressEmitter
from oracle_advisor.oracle.schemas import OracleRequest, OracleResponse, SamplingPayload

__all__ = [
    "SamplingBroker",
    "CallerCapabilities",
    "ProgressEmitter",
    "OracleRequest",
    "OracleResponse",
    "SamplingPayload",
]
