"""
End-to-end smoke test of the MCP server against the configured provider.

Starts the stdio server as a subprocess, checks that the oracle tool is
registered, calls it once and prints the first part of the answer. Exits
non-zero on failure.
"""

import asyncio
import logging
import os
import sys
from typing import Any, Dict

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.stdio import stdio_client

from oracle_advisor.config import load_config
from oracle_advisor.shared.logging.config import resolve_level, setup_logging


logger = logging.getLogger(__name__)

TOOL_NAME = "oracle"
PREVIEW_CHARS = 400

SELFTEST_ARGUMENTS: Dict[str, Any] = {
    "question": "Self-test: provide a two-sentence SUMMARY only.",
    "sections": ["summary"],
    "maxOutputTokens": 200,
    "timeoutMs": 15_000,
}


class SelfTestError(Exception):
    """Raised when the server does not behave as expected."""


def server_parameters() -> StdioServerParameters:
    """Run the MCP server module with the current interpreter and environment."""
    return StdioServerParameters(
        command=sys.executable,
        args=["-m", "oracle_advisor.mcp_server"],
        env=dict(os.environ),
    )


async def check_oracle_tool(session: Any) -> str:
    """
    Verify tool registration and one tool call on an initialized session.

    Args:
        session: MCP client session (or anything with list_tools/call_tool)

    Returns:
        The text returned by the oracle tool.

    Raises:
        SelfTestError: If the tool is missing, errors, or returns no text.
    """
    listed = await session.list_tools()
    names = [tool.name for tool in listed.tools]
    if TOOL_NAME not in names:
        raise SelfTestError(f"Tool '{TOOL_NAME}' not registered (found: {names})")

    result = await session.call_tool(TOOL_NAME, SELFTEST_ARGUMENTS)
    first = result.content[0] if result.content else None
    if result.isError:
        detail = first.text if isinstance(first, types.TextContent) else "no details"
        raise SelfTestError(f"Tool returned an error: {detail}")
    if not isinstance(first, types.TextContent) or not first.text.strip():
        raise SelfTestError("Tool result is not a text content item")
    return first.text


async def run_selftest() -> int:
    try:
        async with stdio_client(server_parameters()) as (read_stream, write_stream):
            async with ClientSession(read_stream, write_stream) as session:
                await session.initialize()
                text = await check_oracle_tool(session)
    except SelfTestError as e:
        print(f"SELFTEST FAILED: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Self-test could not talk to the MCP server")
        print(f"SELFTEST FAILED: {e}", file=sys.stderr)
        return 1

    print("SELFTEST OK")
    print(text[:PREVIEW_CHARS])
    return 0


def main() -> None:
    setup_logging(level=resolve_level(load_config().log_level))
    sys.exit(asyncio.run(run_selftest()))


if __name__ == "__main__":
    main()
