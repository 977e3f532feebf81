"""Prompt templates and builders for the oracle."""

from oracle_advisor.oracle.prompts.templates import (
    OraclePromptConfig,
    ORACLE_SYSTEM_PROMPT_TEMPLATE,
)
from oracle_advisor.oracle.prompts.builders import (
    build_sections_header,
    build_system_prompt,
    build_user_prompt,
)

__all__ = [
    "OraclePromptConfig",
    "ORACLE_SYSTEM_PROMPT_TEMPLATE",
    "build_sections_header",
    "build_system_prompt",
    "build_user_prompt",
]
