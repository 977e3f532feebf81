"""
MCP server exposing the oracle as a tool over stdio.

Capabilities are negotiated once per tool call from the FastMCP context:
sampling support through the client's declared capabilities, progress
through the request's progress token, and info messages through the log
channel. Errors are returned as tool errors rendered "<code>: <message>".
"""

import logging
import os
from typing import Any, List, Optional

from mcp import types
from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import ValidationError

from oracle_advisor.config import load_config
from oracle_advisor.oracle.broker import SamplingBroker
from oracle_advisor.oracle.capabilities import CallerCapabilities
from oracle_advisor.oracle.schemas import OracleRequest, SamplingPayload, Section
from oracle_advisor.shared.logging.config import resolve_level, setup_logging


logger = logging.getLogger(__name__)

SERVER_NAME = "oracle-mcp"

mcp = FastMCP(SERVER_NAME)

# Broker instance (shared across tool calls)
_broker: Optional[SamplingBroker] = None


def get_broker() -> SamplingBroker:
    """Get or create the shared broker instance."""
    global _broker
    if _broker is None:
        _broker = SamplingBroker()
    return _broker


def _client_supports_sampling(ctx: Context) -> bool:
    try:
        return bool(
            ctx.session.check_client_capability(
                types.ClientCapabilities(sampling=types.SamplingCapability())
            )
        )
    except Exception:
        logger.debug("Could not read client capabilities", exc_info=True)
        return False


def negotiate_capabilities(ctx: Context) -> CallerCapabilities:
    """
    Build the caller capabilities for one tool call.

    Args:
        ctx: FastMCP request context

    Returns:
        CallerCapabilities; try_sample is None when the client did not
        advertise sampling support.
    """

    async def try_sample(payload: SamplingPayload) -> Any:
        model_preferences = None
        if payload.model:
            model_preferences = types.ModelPreferences(
                hints=[types.ModelHint(name=payload.model)]
            )
        return await ctx.session.create_message(
            messages=[
                types.SamplingMessage(
                    role="user",
                    content=types.TextContent(type="text", text=payload.user_prompt),
                )
            ],
            max_tokens=payload.max_tokens,
            system_prompt=payload.system_prompt,
            temperature=payload.temperature,
            model_preferences=model_preferences,
        )

    async def report_progress(current: float, total: float) -> None:
        await ctx.report_progress(current, total)

    async def notify(message: str) -> None:
        await ctx.info(message)

    return CallerCapabilities(
        try_sample=try_sample if _client_supports_sampling(ctx) else None,
        report_progress=report_progress,
        notify=notify,
    )


@mcp.tool(
    name="oracle",
    description=(
        "Ask a senior principal engineer for guidance. Returns plain-text "
        "sections (summary, findings, plan, risks, verification)."
    ),
)
async def oracle(
    question: str,
    ctx: Context,
    context: Optional[str] = None,
    sections: Optional[List[Section]] = None,
    model: Optional[str] = None,
    maxOutputTokens: Optional[int] = None,
    timeoutMs: Optional[int] = None,
    temperature: Optional[float] = None,
) -> str:
    """Answer an engineering question; raises ToolError on failure."""
    try:
        request = OracleRequest(
            question=question,
            context=context,
            sections=sections,
            model=model,
            maxOutputTokens=maxOutputTokens,
            timeoutMs=timeoutMs,
            temperature=temperature,
        )
    except ValidationError as e:
        raise ToolError(f"E_INVALID_INPUT: {e.errors(include_url=False)}") from e

    response = await get_broker().ask(request, capabilities=negotiate_capabilities(ctx))
    if response.is_error:
        raise ToolError(response.as_text())
    return response.text


def main() -> None:
    setup_logging(
        level=resolve_level(load_config().log_level),
        structured=os.environ.get("ORACLE_LOG_JSON", "").lower() in ("1", "true", "yes"),
    )
    logger.info(f"{SERVER_NAME} starting on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
