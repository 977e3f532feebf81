"""
Tests for the MCP transport.

Calls the tool function directly with a fake FastMCP context; nothing
is served over stdio.
"""

import pytest
from mcp import types
from mcp.server.fastmcp.exceptions import ToolError

from oracle_advisor import mcp_server
from oracle_advisor.config import OracleConfig, RetryPolicy, SamplingMode
from oracle_advisor.oracle.broker import SamplingBroker
from oracle_advisor.oracle.schemas import SamplingPayload
from oracle_advisor.shared.llm.client import ProviderClientPool


# ============================================================================
# Test Fixtures
# ============================================================================


class FakeSession:
    def __init__(self, supports_sampling=True, result=None, error=None):
        self.supports_sampling = supports_sampling
        self.result = result
        self.error = error
        self.capability_checks = []
        self.create_calls = []

    def check_client_capability(self, capability):
        self.capability_checks.append(capability)
        return self.supports_sampling

    async def create_message(self, **kwargs):
        self.create_calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


class FakeContext:
    def __init__(self, session):
        self.session = session
        self.progress = []
        self.messages = []

    async def report_progress(self, progress, total=None, message=None):
        self.progress.append((progress, total))

    async def info(self, message):
        self.messages.append(message)


class FakeResponses:
    def __init__(self):
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return {"output_text": "provider answer"}


class FakeClient:
    def __init__(self):
        self.responses = FakeResponses()


def _sampling_result(text):
    return types.CreateMessageResult(
        role="assistant",
        content=types.TextContent(type="text", text=text),
        model="client-model",
        stopReason="endTurn",
    )


@pytest.fixture
def provider(monkeypatch):
    """Install a broker backed by a fake provider client; returns the client."""

    def install(**config_overrides):
        fake = FakeClient()
        values = {"api_key": "sk-test", "retry": RetryPolicy(base_delay_ms=1)}
        values.update(config_overrides)
        broker = SamplingBroker(
            OracleConfig(**values),
            ProviderClientPool(lambda api_key, base_url, organization: fake),
        )
        monkeypatch.setattr(mcp_server, "_broker", broker)
        return fake

    return install


# ============================================================================
# TestCapabilityNegotiation
# ============================================================================


class TestCapabilityNegotiation:
    """Tests for mapping the MCP context onto caller capabilities."""

    def test_sampling_checked_once(self):
        session = FakeSession(supports_sampling=True)

        capabilities = mcp_server.negotiate_capabilities(FakeContext(session))

        assert capabilities.can_sample
        assert len(session.capability_checks) == 1
        assert session.capability_checks[0].sampling is not None

    def test_no_sampling_support(self):
        capabilities = mcp_server.negotiate_capabilities(FakeContext(FakeSession(supports_sampling=False)))

        assert not capabilities.can_sample
        assert capabilities.report_progress is not None
        assert capabilities.notify is not None

    @pytest.mark.asyncio
    async def test_try_sample_sends_prompts(self):
        session = FakeSession(result=_sampling_result("hi"))
        capabilities = mcp_server.negotiate_capabilities(FakeContext(session))
        payload = SamplingPayload.from_prompts("system text", "user text", max_tokens=128, model="o3")

        await capabilities.try_sample(payload)

        call = session.create_calls[0]
        assert call["system_prompt"] == "system text"
        assert call["max_tokens"] == 128
        assert call["messages"][0].content.text == "user text"
        assert call["model_preferences"].hints[0].name == "o3"


# ============================================================================
# TestOracleTool
# ============================================================================


class TestOracleTool:
    """Tests for the oracle tool end to end."""

    @pytest.mark.asyncio
    async def test_client_sampling_used_when_supported(self, provider):
        fake = provider()
        ctx = FakeContext(FakeSession(result=_sampling_result("client answer")))

        text = await mcp_server.oracle(question="How do we roll back safely?", ctx=ctx)

        assert text == "client answer"
        assert fake.responses.calls == []
        assert "Used client-side sampling" in ctx.messages
        assert ctx.progress[0] == (0, 100)
        assert ctx.progress[-1] == (100, 100)

    @pytest.mark.asyncio
    async def test_provider_fallback_when_client_cannot_sample(self, provider):
        fake = provider()
        ctx = FakeContext(FakeSession(supports_sampling=False))

        text = await mcp_server.oracle(
            question="How do we roll back safely?",
            ctx=ctx,
            sections=["summary", "risks"],
            maxOutputTokens=500,
        )

        assert text == "provider answer"
        assert fake.responses.calls[0]["max_output_tokens"] == 500
        assert [p for p, _ in ctx.progress] == [0, 10, 90, 100]

    @pytest.mark.asyncio
    async def test_provider_fallback_when_sampling_fails(self, provider):
        fake = provider()
        ctx = FakeContext(FakeSession(error=RuntimeError("user declined")))

        text = await mcp_server.oracle(question="How do we roll back safely?", ctx=ctx)

        assert text == "provider answer"
        assert len(fake.responses.calls) == 1

    @pytest.mark.asyncio
    async def test_error_rendered_as_tool_error(self, provider):
        provider(sampling_mode=SamplingMode.ALWAYS)
        ctx = FakeContext(FakeSession(supports_sampling=False))

        with pytest.raises(ToolError) as exc_info:
            await mcp_server.oracle(question="How do we roll back safely?", ctx=ctx)

        assert str(exc_info.value) == (
            "E_CLIENT_SAMPLING_UNAVAILABLE: Client sampling requested but not available"
        )

    @pytest.mark.asyncio
    async def test_invalid_input_rejected(self, provider):
        fake = provider()
        ctx = FakeContext(FakeSession(supports_sampling=False))

        with pytest.raises(ToolError) as exc_info:
            await mcp_server.oracle(question="why", ctx=ctx)

        assert str(exc_info.value).startswith("E_INVALID_INPUT")
        assert fake.responses.calls == []
        assert ctx.progress == []
