"""LLM provider adapters.

OpenAILLMProvider implements ILLMProvider (studypadi/interfaces/llm_provider.py)
against any OpenAI-compatible chat-completions gateway.  main.py builds it
at startup and injects it into the document structurer.
"""

from studypadi.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
