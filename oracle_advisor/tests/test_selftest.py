"""
Tests for the self-test runner.

A fake client session stands in for the stdio connection to the server.
"""

import sys

import pytest
from mcp import types

from oracle_advisor import selftest


# ============================================================================
# Test Fixtures
# ============================================================================


class FakeClientSession:
    def __init__(self, tool_names=("oracle",), result=None):
        self.tool_names = tool_names
        self.result = result
        self.calls = []

    async def list_tools(self):
        return types.ListToolsResult(
            tools=[types.Tool(name=name, inputSchema={"type": "object"}) for name in self.tool_names]
        )

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments))
        return self.result


def _text_result(text, is_error=False):
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)], isError=is_error
    )


# ============================================================================
# TestCheckOracleTool
# ============================================================================


class TestCheckOracleTool:
    """Tests for the tool listing and tool call checks."""

    @pytest.mark.asyncio
    async def test_success_returns_text(self):
        session = FakeClientSession(result=_text_result("SUMMARY\nAll good."))

        text = await selftest.check_oracle_tool(session)

        assert text == "SUMMARY\nAll good."
        name, arguments = session.calls[0]
        assert name == "oracle"
        assert arguments["maxOutputTokens"] == 200
        assert arguments["timeoutMs"] == 15_000
        assert arguments["sections"] == ["summary"]

    @pytest.mark.asyncio
    async def test_missing_tool_fails_without_calling(self):
        session = FakeClientSession(tool_names=("other",), result=_text_result("x"))

        with pytest.raises(selftest.SelfTestError, match="not registered"):
            await selftest.check_oracle_tool(session)
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_tool_error_fails(self):
        session = FakeClientSession(
            result=_text_result("E_MISSING_PROVIDER_KEY: Missing OPENAI_API_KEY", is_error=True)
        )

        with pytest.raises(selftest.SelfTestError, match="E_MISSING_PROVIDER_KEY"):
            await selftest.check_oracle_tool(session)

    @pytest.mark.asyncio
    async def test_non_text_content_fails(self):
        result = types.CallToolResult(
            content=[types.ImageContent(type="image", data="aGk=", mimeType="image/png")]
        )
        session = FakeClientSession(result=result)

        with pytest.raises(selftest.SelfTestError, match="not a text content item"):
            await selftest.check_oracle_tool(session)

    @pytest.mark.asyncio
    async def test_empty_content_fails(self):
        session = FakeClientSession(result=types.CallToolResult(content=[]))

        with pytest.raises(selftest.SelfTestError):
            await selftest.check_oracle_tool(session)


# ============================================================================
# TestServerParameters
# ============================================================================


class TestServerParameters:
    """Tests for how the server subprocess is launched."""

    def test_runs_server_module_with_current_interpreter(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        params = selftest.server_parameters()

        assert params.command == sys.executable
        assert params.args == ["-m", "oracle_advisor.mcp_server"]
        assert params.env["OPENAI_API_KEY"] == "sk-test"
