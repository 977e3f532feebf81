"""
Tests for the provider client pool and payload helpers.
"""

import pytest
from openai import AsyncOpenAI

from oracle_advisor.shared.llm.client import (
    ProviderClientPool,
    build_responses_payload,
    call_provider,
    clamp_max_tokens,
    is_reasoning_model,
)


# ============================================================================
# Test Fixtures
# ============================================================================


def _counting_factory():
    created = []

    def factory(api_key, base_url, organization):
        client = object()
        created.append((api_key, base_url, organization))
        return client

    return factory, created


# ============================================================================
# TestProviderClientPool
# ============================================================================


class TestProviderClientPool:
    """Tests for per-configuration client reuse."""

    def test_same_key_reuses_client(self):
        factory, created = _counting_factory()
        pool = ProviderClientPool(factory)

        first = pool.get_client("sk-a", "https://api.example.com/v1", "org-1")
        second = pool.get_client("sk-a", "https://api.example.com/v1", "org-1")

        assert first is second
        assert len(created) == 1
        assert len(pool) == 1

    def test_distinct_keys_get_distinct_clients(self):
        factory, created = _counting_factory()
        pool = ProviderClientPool(factory)

        clients = {
            id(pool.get_client("sk-a")),
            id(pool.get_client("sk-b")),
            id(pool.get_client("sk-a", "https://other.example.com/v1")),
            id(pool.get_client("sk-a", None, "org-2")),
        }

        assert len(clients) == 4
        assert len(pool) == 4

    def test_empty_endpoint_same_as_default(self):
        factory, created = _counting_factory()
        pool = ProviderClientPool(factory)

        pool.get_client("sk-a", None, None)
        pool.get_client("sk-a", "", "")

        assert created == [("sk-a", None, None)]

    def test_default_factory_builds_openai_client_without_sdk_retries(self):
        pool = ProviderClientPool()

        client = pool.get_client("sk-test", "https://api.example.com/v1")

        assert isinstance(client, AsyncOpenAI)
        assert client.max_retries == 0
        assert str(client.base_url).startswith("https://api.example.com/v1")


# ============================================================================
# TestPayloadHelpers
# ============================================================================


class TestPayloadHelpers:
    """Tests for token clamping and Responses API payloads."""

    @pytest.mark.parametrize(
        "requested,cap,expected",
        [(100_000, 4096, 4096), (0, 4096, 1), (-5, 4096, 1), (1024, 4096, 1024), (4096, 4096, 4096)],
    )
    def test_clamp_max_tokens(self, requested, cap, expected):
        assert clamp_max_tokens(requested, cap) == expected

    @pytest.mark.parametrize("model", ["o1", "o3", "o3-mini", "o4-mini", "o3/2025-04-16"])
    def test_reasoning_models(self, model):
        assert is_reasoning_model(model)

    @pytest.mark.parametrize("model", ["gpt-4o", "gpt-4.1", "omni-moderation", "o3x", ""])
    def test_non_reasoning_models(self, model):
        assert not is_reasoning_model(model)

    def test_reasoning_payload_has_effort_and_no_temperature(self):
        payload = build_responses_payload("o3", "sys", "user", 256, temperature=0.3, reasoning_effort="high")

        assert payload == {
            "model": "o3",
            "input": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "user"},
            ],
            "max_output_tokens": 256,
            "reasoning": {"effort": "high"},
        }

    def test_temperature_only_when_requested(self):
        without = build_responses_payload("gpt-4.1", "sys", "user", 256)
        with_temp = build_responses_payload("gpt-4.1", "sys", "user", 256, temperature=0.0)

        assert "temperature" not in without
        assert with_temp["temperature"] == 0.0


# ============================================================================
# TestCallProvider
# ============================================================================


class TestCallProvider:
    """Tests for the provider call wrapper."""

    @pytest.mark.asyncio
    async def test_forwards_payload(self):
        received = {}

        class Responses:
            async def create(self, **kwargs):
                received.update(kwargs)
                return {"output_text": "ok"}

        class Client:
            responses = Responses()

        payload = build_responses_payload("o3", "sys", "user", 64)
        result = await call_provider(Client(), payload)

        assert result == {"output_text": "ok"}
        assert received == payload
