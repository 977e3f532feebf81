"""Provider client pool, retry executor and response extraction."""

from oracle_advisor.shared.llm.client import ProviderClientPool, call_provider
from oracle_advisor.shared.llm.response import extract_text
from oracle_advisor.shared.llm.retry import with_retries

__all__ = ["ProviderClientPool", "call_provider", "extract_text", "with_retries"]
