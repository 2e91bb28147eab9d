"""Abstract base class for LLM service providers.

Defines the contract for the large-language-model backend that turns
extracted document text into a structured study plan.  The default
implementation talks to any OpenAI-compatible chat-completions gateway;
the adapter pattern keeps the document structurer provider-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


# Concrete implementation: OpenAILLMProvider
# Located in: studypadi/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the StudyPadi ingestion pipeline."""

    @abstractmethod
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
        """Ask the model for a schema-constrained answer.

        Parameters
        ----------
        system_prompt:
            The fixed instruction message that sets the model's behaviour.
        user_prompt:
            The user message carrying the document text.
        function_name:
            Name of the function/tool the model is asked to call.
        parameters_schema:
            JSON-schema object describing the function arguments.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The function-call arguments as a JSON string.  When the model
            answers in prose instead (or function calling is disabled) the
            raw message content is returned for the caller to parse.

        Raises
        ------
        studypadi.utils.errors.RateLimitError
            The gateway answered HTTP 429.
        studypadi.utils.errors.QuotaExhaustedError
            The gateway answered HTTP 402.
        studypadi.utils.errors.ProviderUnavailableError
            Any other non-2xx status, a connection failure or a timeout.
        studypadi.utils.errors.MalformedResponseError
            A 2xx answer carrying neither a function call nor content.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider.

        Example return values: ``"openai"``, ``"openai-compatible"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations should verify that credentials are present without
        making an inference call.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid."""
