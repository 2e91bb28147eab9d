"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``llm_base_url`` is configured the client points at that gateway
instead of api.openai.com; any endpoint that speaks the chat-completions
protocol (including function/tool calling) works.

Status mapping (no automatic retry, ``max_retries=0``):

    429                      -> RateLimitError
    402                      -> QuotaExhaustedError
    other non-2xx            -> ProviderUnavailableError
    timeout / connection     -> ProviderUnavailableError
    2xx without usable body  -> MalformedResponseError
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import openai
import structlog

from studypadi.config.settings import Settings
from studypadi.interfaces.llm_provider import ILLMProvider
from studypadi.utils.errors import (
    MalformedResponseError,
    ProviderUnavailableError,
    QuotaExhaustedError,
    RateLimitError,
)
from studypadi.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_HTTP_PAYMENT_REQUIRED = 402


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat-completions API.

    Parameters
    ----------
    settings:
        Application settings; reads the ``llm_*`` fields.
    http_client:
        Optional pre-built ``httpx.AsyncClient`` handed to the SDK.  Tests
        pass one with an ``httpx.MockTransport`` to simulate gateway answers.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = settings.llm_api_key
        self._model = settings.llm_model or "gpt-4o-mini"
        self._timeout_seconds = settings.llm_timeout_seconds
        self._use_function_calling = settings.llm_use_function_calling

        client_kwargs: dict = {
            # The SDK refuses to build a client without a key; an empty key
            # still lets the app start and report is_available() == False.
            "api_key": self._api_key or "not-configured",
            "timeout": openai.Timeout(self._timeout_seconds, connect=5.0),
            "max_retries": 0,
        }
        if settings.llm_base_url:
            client_kwargs["base_url"] = settings.llm_base_url
        if http_client is not None:
            client_kwargs["http_client"] = http_client

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._provider_label = (
            "openai-compatible" if settings.llm_base_url else "openai"
        )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        function_name: str,
        parameters_schema: dict[str, Any],
        temperature: float = 0.3,
        max_tokens: int = 8000,
    ) -> str:
        """Request a function-call answer and return its JSON arguments."""
        request: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self._use_function_calling:
            request["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": function_name,
                        "description": "Return the structured learning content",
                        "parameters": parameters_schema,
                    },
                }
            ]
            request["tool_choice"] = {
                "type": "function",
                "function": {"name": function_name},
            }

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.RateLimitError as exc:
            _logger.warning("llm_rate_limited", provider=self._provider_label)
            raise RateLimitError(provider_name=self.get_provider_name()) from exc
        except openai.APIStatusError as exc:
            if exc.status_code == _HTTP_PAYMENT_REQUIRED:
                _logger.warning("llm_quota_exhausted", provider=self._provider_label)
                raise QuotaExhaustedError(provider_name=self.get_provider_name()) from exc
            _logger.error(
                "llm_gateway_error",
                provider=self._provider_label,
                status_code=exc.status_code,
            )
            raise ProviderUnavailableError(provider_name=self.get_provider_name()) from exc
        except openai.APITimeoutError as exc:
            _logger.error(
                "llm_timeout",
                provider=self._provider_label,
                timeout_seconds=self._timeout_seconds,
            )
            raise ProviderUnavailableError(
                message=(
                    f"AI analysis timed out after {self._timeout_seconds:g}s. "
                    "Please try again later."
                ),
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIConnectionError as exc:
            _logger.error("llm_connection_error", provider=self._provider_label, error=str(exc))
            raise ProviderUnavailableError(provider_name=self.get_provider_name()) from exc
        except (openai.APIResponseValidationError, json.JSONDecodeError) as exc:
            _logger.error("llm_response_unparseable", provider=self._provider_label)
            raise MalformedResponseError(provider_name=self.get_provider_name()) from exc

        # A 2xx body that is not JSON comes back from the SDK as plain text,
        # and a JSON body of the wrong shape has no choices.
        choices = getattr(response, "choices", None)
        if not choices:
            _logger.error("llm_response_without_choices", provider=self._provider_label)
            raise MalformedResponseError(provider_name=self.get_provider_name())
        message = choices[0].message

        arguments = None
        for tool_call in message.tool_calls or []:
            function = getattr(tool_call, "function", None)
            if function is not None and function.name == function_name:
                arguments = function.arguments
                break

        usage = getattr(response, "usage", None)
        _logger.info(
            "llm_structured_completion",
            model=self._model,
            provider=self._provider_label,
            function_call=arguments is not None,
            tokens=usage.total_tokens if usage else None,
        )

        if arguments:
            return arguments
        # Prose fallback: the caller strips fences and preamble.
        if message.content:
            return message.content
        raise MalformedResponseError(provider_name=self.get_provider_name())

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """Try listing models to verify the API key works."""
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError:
            return False

    def get_provider_name(self) -> str:
        """Return 'openai' or 'openai-compatible' depending on configuration."""
        return self._provider_label
