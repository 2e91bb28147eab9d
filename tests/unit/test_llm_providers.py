"""Unit tests for OpenAILLMProvider using an httpx.MockTransport gateway."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from studypadi.config.settings import Settings
from studypadi.providers.llm.openai_provider import OpenAILLMProvider
from studypadi.services.document_structurer import (
    FUNCTION_NAME,
    STRUCTURE_DOCUMENT_SCHEMA,
    DocumentStructurer,
)
from studypadi.utils.errors import (
    MalformedResponseError,
    ProviderUnavailableError,
    QuotaExhaustedError,
    RateLimitError,
)

# ======================================================================
# Shared helpers
# ======================================================================


def _settings(**overrides: Any) -> Settings:
    defaults: dict[str, Any] = {
        "llm_api_key": "sk-test",
        "llm_base_url": "",
        "llm_model": "gpt-4o-mini",
        "llm_timeout_seconds": 5.0,
        "llm_use_function_calling": True,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _completion(message: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "finish_reason": "stop", "message": message}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


def _tool_call_message(arguments: str, name: str = FUNCTION_NAME) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": name, "arguments": arguments},
            }
        ],
    }


def _provider(
    handler: Callable[[httpx.Request], httpx.Response],
    **settings_overrides: Any,
) -> OpenAILLMProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAILLMProvider(_settings(**settings_overrides), http_client=client)


async def _call(provider: OpenAILLMProvider) -> str:
    return await provider.complete_structured(
        "system",
        "user text",
        function_name=FUNCTION_NAME,
        parameters_schema=STRUCTURE_DOCUMENT_SCHEMA,
    )


# ======================================================================
# Metadata
# ======================================================================


class TestProviderMetadata:
    def test_name_plain_openai(self) -> None:
        assert OpenAILLMProvider(_settings()).get_provider_name() == "openai"

    def test_name_with_gateway_base_url(self) -> None:
        provider = OpenAILLMProvider(_settings(llm_base_url="https://gateway.example/v1"))
        assert provider.get_provider_name() == "openai-compatible"

    def test_is_available_requires_key(self) -> None:
        assert OpenAILLMProvider(_settings()).is_available() is True
        assert OpenAILLMProvider(_settings(llm_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_validate_credentials_without_key(self) -> None:
        assert await OpenAILLMProvider(_settings(llm_api_key="")).validate_credentials() is False


# ======================================================================
# Successful answers
# ======================================================================


class TestSuccessfulAnswers:
    @pytest.mark.asyncio
    async def test_returns_tool_call_arguments(self, structured_json) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=_completion(_tool_call_message(structured_json)))

        result = await _call(_provider(handler))

        assert result == structured_json
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "gpt-4o-mini"
        assert seen["body"]["tool_choice"]["function"]["name"] == FUNCTION_NAME
        assert seen["body"]["tools"][0]["function"]["parameters"] == STRUCTURE_DOCUMENT_SCHEMA
        assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_prose_content_returned_when_no_tool_call(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            message = {"role": "assistant", "content": '```json\n{"sections": []}\n```'}
            return httpx.Response(200, json=_completion(message))

        assert "sections" in await _call(_provider(handler))

    @pytest.mark.asyncio
    async def test_function_calling_disabled_sends_no_tools(self) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion({"role": "assistant", "content": "{}"}))

        await _call(_provider(handler, llm_use_function_calling=False))

        assert "tools" not in seen["body"]
        assert "tool_choice" not in seen["body"]


# ======================================================================
# Gateway status mapping
# ======================================================================


class TestStatusMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error_cls"),
        [
            (429, RateLimitError),
            (402, QuotaExhaustedError),
            (500, ProviderUnavailableError),
            (503, ProviderUnavailableError),
            (401, ProviderUnavailableError),
        ],
    )
    async def test_non_2xx(self, status: int, error_cls: type[Exception]) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(status)
            return httpx.Response(status, json={"error": {"message": "nope", "type": "x"}})

        with pytest.raises(error_cls):
            await _call(_provider(handler))
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_service_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderUnavailableError, match="timed out"):
            await _call(_provider(handler))

    @pytest.mark.asyncio
    async def test_connection_error_is_service_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderUnavailableError):
            await _call(_provider(handler))

    @pytest.mark.asyncio
    async def test_non_json_200_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"<html>gateway error</html>", headers={"content-type": "text/html"}
            )

        with pytest.raises(MalformedResponseError):
            await _call(_provider(handler))

    @pytest.mark.asyncio
    async def test_empty_choices_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = _completion({"role": "assistant", "content": "x"})
            body["choices"] = []
            return httpx.Response(200, json=body)

        with pytest.raises(MalformedResponseError):
            await _call(_provider(handler))

    @pytest.mark.asyncio
    async def test_empty_message_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_completion({"role": "assistant", "content": None}))

        with pytest.raises(MalformedResponseError):
            await _call(_provider(handler))


# ======================================================================
# Provider + structurer together
# ======================================================================


class TestStructurerOverGateway:
    @pytest.mark.asyncio
    async def test_prose_200_body_is_malformed_document(self, study_text) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            message = {"role": "assistant", "content": "I could not analyze this document."}
            return httpx.Response(200, json=_completion(message))

        structurer = DocumentStructurer(llm_provider=_provider(handler))
        with pytest.raises(MalformedResponseError):
            await structurer.structure(study_text)

    @pytest.mark.asyncio
    async def test_rate_limit_surfaces_from_structure(self, study_text) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "slow down"}})

        structurer = DocumentStructurer(llm_provider=_provider(handler))
        with pytest.raises(RateLimitError):
            await structurer.structure(study_text)

    @pytest.mark.asyncio
    async def test_tool_call_becomes_document(self, structured_json, study_text) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_completion(_tool_call_message(structured_json)))

        structurer = DocumentStructurer(llm_provider=_provider(handler))
        doc = await structurer.structure(study_text)
        assert doc.title == "Cell Biology"
        assert doc.chunk_count == 4
