"""
Typed prompt templates for the oracle.

Prompts are structured as Pydantic models for validation, testability,
and easier version management.
"""

from typing import List

from pydantic import BaseModel, Field


ORACLE_SYSTEM_PROMPT_TEMPLATE = """You are a senior principal engineer ("oracle").
Return guidance in plain text with clearly delineated sections: {sections_header}.
Keep it concise and actionable. Provide commands in Verification."""

CONTEXT_BLOCK_TEMPLATE = "\n\nAdditional context:\n{context}"


class OraclePromptConfig(BaseModel):
    """
    Configuration for system prompt generation.

    Validates the section list before it is rendered into the template.
    """

    sections: List[str] = Field(min_length=1, description="Section names, in order")

    def sections_header(self) -> str:
        """Upper-cased, comma-separated section names."""
        return ", ".join(section.upper() for section in self.sections)

    def format_prompt(self, template: str = ORACLE_SYSTEM_PROMPT_TEMPLATE) -> str:
        """
        Format a system prompt template with this config's values.

        Args:
            template: Template with a {sections_header} placeholder

        Returns:
            Formatted prompt string
        """
        return template.format(sections_header=self.sections_header())
