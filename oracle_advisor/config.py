"""
Process-wide configuration for the oracle.

Read once from the environment (after loading a .env file) and immutable
afterwards. Centralizes model defaults, token cap, sampling mode, retry
policy and provider credentials.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


DEFAULT_MODEL = "o3"
DEFAULT_TIMEOUT_MS = 120_000
DEFAULT_MAX_TOKENS = 1024
DEFAULT_MAX_TOKENS_CAP = 4096
DEFAULT_REASONING_EFFORT = "medium"


class SamplingMode(str, Enum):
    """Which generation mechanism the broker may use."""

    AUTO = "auto"
    ALWAYS = "always"
    OFF = "off"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SamplingMode":
        normalized = (value or cls.AUTO.value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            logger.warning(f"Unknown ORACLE_SAMPLING_MODE '{value}', using 'auto'")
            return cls.AUTO


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for provider calls.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay_ms: Backoff before the second attempt, doubled each retry
    """

    max_attempts: int = 3
    base_delay_ms: int = 500


@dataclass(frozen=True)
class OracleConfig:
    """
    Configuration for the oracle request pipeline.

    Attributes:
        api_key: Provider credential (empty string when unset)
        base_url: Optional provider endpoint override
        organization: Optional provider organization override
        default_model: Model used when a request names none
        max_tokens_cap: Upper bound for outbound max_output_tokens
        sampling_mode: auto | always | off
        log_level: Log verbosity name
        reasoning_effort: Effort sent to reasoning-class models
        default_timeout_ms: Request deadline when a request sets none
        default_max_tokens: Output size when a request sets none
        retry: Retry policy for provider calls
    """

    api_key: str = ""
    base_url: Optional[str] = None
    organization: Optional[str] = None
    default_model: str = DEFAULT_MODEL
    max_tokens_cap: int = DEFAULT_MAX_TOKENS_CAP
    sampling_mode: SamplingMode = SamplingMode.AUTO
    log_level: str = "info"
    reasoning_effort: str = DEFAULT_REASONING_EFFORT
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_max_tokens: int = DEFAULT_MAX_TOKENS
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _log_credential_diagnostics(raw_key: Optional[str], base_url: Optional[str]) -> None:
    """Debug-level credential hygiene checks; never logs the key itself."""
    raw = raw_key or ""
    has_ctl = any(c in raw for c in "\r\n\t")
    logger.debug(
        f"OpenAI: baseURL={base_url or 'default'} keyLen={len(raw.strip())} "
        f"ctlChars={has_ctl} trimmed={bool(raw) and raw != raw.strip()}"
    )
    if base_url and not base_url.rstrip("/").endswith("/v1"):
        logger.warning("OPENAI_BASE_URL does not end with /v1; some providers require a /v1 suffix")


def _read_cap() -> int:
    raw = _env("ORACLE_MAX_TOKENS_CAP")
    if raw is None:
        return DEFAULT_MAX_TOKENS_CAP
    try:
        cap = int(raw)
    except ValueError:
        logger.warning(f"Invalid ORACLE_MAX_TOKENS_CAP '{raw}', using {DEFAULT_MAX_TOKENS_CAP}")
        return DEFAULT_MAX_TOKENS_CAP
    return max(1, cap)


def config_from_env() -> OracleConfig:
    """
    Build a configuration from environment variables.

    Environment:
        OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_ORG_ID,
        ORACLE_MODEL, ORACLE_MAX_TOKENS_CAP, ORACLE_SAMPLING_MODE,
        ORACLE_MCP_LOG_LEVEL, ORACLE_REASONING_EFFORT
    """
    raw_key = os.environ.get("OPENAI_API_KEY")
    base_url = _env("OPENAI_BASE_URL")
    _log_credential_diagnostics(raw_key, base_url)

    return OracleConfig(
        api_key=(raw_key or "").strip(),
        base_url=base_url,
        organization=_env("OPENAI_ORG_ID"),
        default_model=_env("ORACLE_MODEL") or DEFAULT_MODEL,
        max_tokens_cap=_read_cap(),
        sampling_mode=SamplingMode.parse(_env("ORACLE_SAMPLING_MODE")),
        log_level=(_env("ORACLE_MCP_LOG_LEVEL") or "info").lower(),
        reasoning_effort=_env("ORACLE_REASONING_EFFORT") or DEFAULT_REASONING_EFFORT,
    )


@lru_cache(maxsize=1)
def load_config() -> OracleConfig:
    """Load the process configuration once (.env first, then environment)."""
    load_dotenv()
    return config_from_env()


def get_config(
    base: Optional[OracleConfig] = None,
    **overrides,
) -> OracleConfig:
    """
    Create a configuration with optional overrides.

    Args:
        base: Configuration to start from (default: the process configuration)
        **overrides: Field values to replace; None values are ignored

    Returns:
        OracleConfig with specified overrides applied
    """
    config = base if base is not None else load_config()
    changes = {k: v for k, v in overrides.items() if v is not None}
    if "sampling_mode" in changes and not isinstance(changes["sampling_mode"], SamplingMode):
        changes["sampling_mode"] = SamplingMode.parse(changes["sampling_mode"])
    return replace(config, **changes)
