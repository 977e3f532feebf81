"""
Prompt builders for the oracle.

These functions construct the system and user prompts sent to whichever
generation mechanism the broker picks.
"""

from typing import Optional, Sequence

from oracle_advisor.oracle.prompts.templates import (
    CONTEXT_BLOCK_TEMPLATE,
    ORACLE_SYSTEM_PROMPT_TEMPLATE,
    OraclePromptConfig,
)


def build_sections_header(sections: Sequence[str]) -> str:
    """
    Build the sections header, e.g. "SUMMARY, FINDINGS, PLAN".

    Args:
        sections: Section names in request order

    Returns:
        Upper-cased, comma-separated section names
    """
    return OraclePromptConfig(sections=list(sections)).sections_header()


def build_system_prompt(sections: Sequence[str]) -> str:
    """
    Build the oracle system prompt for the requested sections.

    Args:
        sections: Section names in request order

    Returns:
        Complete system prompt string
    """
    config = OraclePromptConfig(sections=list(sections))
    return config.format_prompt(ORACLE_SYSTEM_PROMPT_TEMPLATE)


def build_user_prompt(question: str, context: Optional[str] = None) -> str:
    """
    Build the user prompt: the question, plus context when given.

    Args:
        question: The engineering question
        context: Optional additional background

    Returns:
        Complete user prompt string
    """
    if context:
        return question + CONTEXT_BLOCK_TEMPLATE.format(context=context)
    return question
