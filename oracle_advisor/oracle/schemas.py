"""
Schemas for the oracle.

Defines the validated request model, the response model returned by every
transport, and the payload handed to caller-provided generation.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


Section = Literal["summary", "findings", "plan", "risks", "verification"]

DEFAULT_SECTIONS: List[Section] = ["summary", "findings", "plan"]


# =============================================================================
# Request / Response Models
# =============================================================================


class OracleRequest(BaseModel):
    """
    An engineering question for the oracle.

    Accepts both the camelCase wire names (maxOutputTokens, timeoutMs) and
    the snake_case field names. Immutable once validated.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    question: str = Field(description="The engineering question to answer")
    context: Optional[str] = Field(
        default=None, description="Additional background for the question"
    )
    sections: Optional[List[Section]] = Field(
        default=None,
        description="Sections to include in the guidance (default: summary, findings, plan)",
    )
    model: Optional[str] = Field(
        default=None, description="Model identifier (default: configured model)"
    )
    max_output_tokens: Optional[int] = Field(
        default=None,
        gt=0,
        alias="maxOutputTokens",
        description="Maximum output tokens (clamped to the configured cap)",
    )
    timeout_ms: Optional[int] = Field(
        default=None, gt=0, alias="timeoutMs", description="Request deadline in milliseconds"
    )
    temperature: Optional[float] = Field(
        default=None,
        ge=0,
        le=2,
        description="Sampling temperature (ignored for reasoning-class models)",
    )

    @field_validator("question")
    @classmethod
    def question_long_enough(cls, value: str) -> str:
        if len(value) < 5:
            raise ValueError("question too short")
        return value

    def resolved_sections(self) -> List[Section]:
        return list(self.sections) if self.sections else list(DEFAULT_SECTIONS)


class OracleResponse(BaseModel):
    """Outcome of one oracle request. Errors are data, never exceptions."""

    request_id: str = Field(description="Request identifier")
    is_error: bool = Field(default=False, description="Whether the request failed")
    text: str = Field(description="Guidance text, or the error message when is_error")
    error_code: Optional[str] = Field(default=None, description="Error kind, e.g. E_EMPTY_MODEL_OUTPUT")
    source: Optional[Literal["client", "provider"]] = Field(
        default=None, description="Which mechanism produced the text"
    )
    latency_ms: Optional[int] = Field(default=None, description="Wall-clock time for the request")

    def as_text(self) -> str:
        """Render for text-only transports: 'CODE: message' for errors."""
        if self.is_error:
            return f"{self.error_code}: {self.text}"
        return self.text


class SamplingPayload(BaseModel):
    """Request handed to caller-provided generation."""

    messages: List[Dict[str, Any]] = Field(description="System and user messages, in order")
    system_prompt: str = Field(description="System prompt, for callers that take it separately")
    user_prompt: str = Field(description="User prompt text")
    max_tokens: int = Field(gt=0, description="Maximum output tokens")
    temperature: Optional[float] = Field(default=None)
    model: str = Field(description="Preferred model identifier")

    @classmethod
    def from_prompts(
        cls,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        model: str,
        temperature: Optional[float] = None,
    ) -> "SamplingPayload":
        return cls(
            messages=[
                {"role": "system", "content": [{"type": "text", "text": system_prompt}]},
                {"role": "user", "content": [{"type": "text", "text": user_prompt}]},
            ],
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            model=model,
        )
