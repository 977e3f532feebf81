"""
Shared infrastructure for the oracle pipeline.

Modules:
- llm: Provider client pool, retry executor, response extraction
- logging: Log setup and request event records
- cancellation: Cancellation tokens and per-request deadlines
- errors: Error taxonomy
"""

from oracle_advisor.shared.llm.client import ProviderClientPool, call_provider
from oracle_advisor.shared.logging.config import setup_logging, log_request_event

__all__ = [
    "ProviderClientPool",
    "call_provider",
    "setup_logging",
    "log_request_event",
]
