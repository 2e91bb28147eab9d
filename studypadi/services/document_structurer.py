"""LLM-based document structuring service.

Sends extracted document text to the AI gateway with a fixed
decomposition policy and a schema-constrained ``structure_document``
function, then parses, validates and normalises the answer into a
:class:`StructuredDocument`.

Architecture: LLM-as-Parser, schema first
-----------------------------------------
The request asks the model to *call a function* whose JSON-schema
parameters mirror :class:`StructuredDocument`, so the happy path is a
JSON string produced by the gateway's own schema enforcement.  Some
gateways (or a model that ignores ``tool_choice``) answer in prose
instead; that content still goes through the same parser.  The parser
tries the answer as-is first, since chunk text copied from notes may hold
its own markdown fences, and only strips a wrapping fence or preamble when
that fails.

Validation is done by pydantic.  Anything that fails it is a
:class:`MalformedResponseError`: the document is not partially accepted.
After validation a small normalisation pass enforces the rules the model
is asked to follow but may not:

- questions without exactly four distinct options, or whose
  ``correct_answer`` is not one of them, are dropped;
- blank chunks are dropped;
- unknown flashcard difficulty levels become ``medium`` (model validator).

There is no retry.  A failed call surfaces immediately as a typed error.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from studypadi.interfaces.llm_provider import ILLMProvider
from studypadi.models.document import StructuredDocument, StructuredSection
from studypadi.utils.errors import MalformedResponseError, TooLittleContentError
from studypadi.utils.logging import get_logger

# Matches a markdown code fence (```json ... ``` or ``` ... ```) wrapping the
# whole answer.  Anchored at both ends so fences inside JSON string values
# are left alone.
_JSON_FENCE_RE = re.compile(r"\A```(?:json)?[ \t]*\n?(.*?)\n?\s*```\Z", re.DOTALL)

FUNCTION_NAME = "structure_document"

# JSON-schema for the ``structure_document`` function parameters.  Kept as
# a literal (no $defs/$ref) because several OpenAI-compatible gateways
# reject referenced schemas in tool definitions.
STRUCTURE_DOCUMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "A clear, concise title for this document",
        },
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "chunks": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"content": {"type": "string"}},
                            "required": ["content"],
                        },
                    },
                    "questions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "question_text": {"type": "string"},
                                "options": {
                                    "type": "array",
                                    "items": {"type": "string"},
                                    "minItems": 4,
                                    "maxItems": 4,
                                },
                                "correct_answer": {"type": "string"},
                                "explanation": {"type": "string"},
                            },
                            "required": ["question_text", "options", "correct_answer"],
                        },
                    },
                },
                "required": ["title", "chunks", "questions"],
            },
        },
        "flashcards": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "term": {"type": "string"},
                    "definition": {"type": "string"},
                    "difficulty_level": {
                        "type": "string",
                        "enum": ["easy", "medium", "hard"],
                    },
                },
                "required": ["term", "definition"],
            },
        },
    },
    "required": ["title", "sections", "flashcards"],
}


class CountRange(BaseModel):
    """Inclusive ``min``..``max`` bound quoted in the decomposition policy."""

    model_config = ConfigDict(frozen=True)

    min: int = Field(ge=0)
    max: int = Field(ge=0)


class StructuringPolicy(BaseModel):
    """Decomposition targets sent to the model with every document.

    Loaded from the ``structuring`` block of ``config/config.yaml``; the
    defaults below apply when the block (or a key) is absent.
    """

    model_config = ConfigDict(frozen=True)

    sections: CountRange = CountRange(min=3, max=8)
    chunks_per_section: CountRange = CountRange(min=2, max=5)
    chunk_words: CountRange = CountRange(min=100, max=400)
    questions_per_section: CountRange = CountRange(min=2, max=4)
    flashcards: CountRange = CountRange(min=8, max=20)

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> StructuringPolicy:
        return cls.model_validate((config or {}).get("structuring") or {})


class DocumentStructurer:
    """Turns plain document text into a validated :class:`StructuredDocument`.

    Parameters
    ----------
    llm_provider:
        The AI gateway adapter.
    policy:
        Decomposition targets quoted in the system instruction.
    min_content_chars:
        Trimmed texts shorter than this are rejected locally.
    max_input_chars:
        Head-truncation bound applied before the text is sent.
    temperature, max_tokens:
        Sampling parameters for the single structuring call.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        policy: StructuringPolicy | None = None,
        min_content_chars: int = 50,
        max_input_chars: int = 30_000,
        temperature: float = 0.3,
        max_tokens: int = 8000,
    ) -> None:
        self._llm = llm_provider
        self._policy = policy or StructuringPolicy()
        self._min_content_chars = min_content_chars
        self._max_input_chars = max_input_chars
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def structure(
        self,
        text: str,
        filename_hint: str | None = None,
    ) -> StructuredDocument:
        """Structure document text with one AI gateway call.

        Parameters
        ----------
        text:
            Extracted document text.
        filename_hint:
            Original filename, used only for logging here; the persistence
            fan-out derives the fallback title from it.

        Returns
        -------
        StructuredDocument
            Validated and normalised structure.

        Raises
        ------
        TooLittleContentError
            The trimmed text is shorter than ``min_content_chars``.  No
            request is made.
        RateLimitError, QuotaExhaustedError, ProviderUnavailableError
            Propagated unchanged from the LLM provider.
        MalformedResponseError
            The answer is not JSON or does not validate.
        """
        if len(text.strip()) < self._min_content_chars:
            self._logger.warning(
                "structuring_rejected_short_text",
                chars=len(text.strip()),
                min_chars=self._min_content_chars,
            )
            raise TooLittleContentError()

        payload = self._truncate(text)
        provider_name = self._llm.get_provider_name()
        self._logger.info(
            "structuring_start",
            filename=filename_hint,
            chars=len(text),
            sent_chars=len(payload),
            truncated=len(payload) < len(text),
            llm_provider=provider_name,
        )

        response = await self._llm.complete_structured(
            system_prompt=self._system_prompt(),
            user_prompt=payload,
            function_name=FUNCTION_NAME,
            parameters_schema=STRUCTURE_DOCUMENT_SCHEMA,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        try:
            parsed = self._parse_llm_response(response)
            document = StructuredDocument.model_validate(parsed)
        except (json.JSONDecodeError, ValueError, ValidationError) as exc:
            self._logger.error(
                "structuring_response_invalid",
                error=str(exc)[:500],
                response_preview=response[:500],
            )
            raise MalformedResponseError(provider_name=provider_name) from exc

        document = self._normalize(document)
        self._logger.info(
            "structuring_complete",
            title=document.title,
            sections=len(document.sections),
            chunks=document.chunk_count,
            questions=document.question_count,
            flashcards=len(document.flashcards),
        )
        return document

    # ------------------------------------------------------------------
    # Prompt construction
    # ------------------------------------------------------------------

    def _truncate(self, text: str) -> str:
        # Always the head of the text, never a sample.
        return text[: self._max_input_chars]

    def _system_prompt(self) -> str:
        """Return the fixed decomposition instruction."""
        p = self._policy
        return (
            "You are a document analysis AI for an adaptive learning platform "
            "called StudyPadi.  Analyze the document text supplied by the user "
            "and create a structured learning breakdown by calling the "
            f"{FUNCTION_NAME} function.\n"
            "\n"
            "## Instructions\n"
            f"1. Create {p.sections.min}-{p.sections.max} logical sections based "
            "on the document content.\n"
            f"2. Break each section into {p.chunks_per_section.min}-"
            f"{p.chunks_per_section.max} learning chunks of roughly "
            f"{p.chunk_words.min}-{p.chunk_words.max} words each.  Chunks must be "
            "built from the actual source text, not invented.\n"
            f"3. For each section, write {p.questions_per_section.min}-"
            f"{p.questions_per_section.max} multiple choice questions.  Every "
            "question has exactly 4 distinct options, and correct_answer must "
            "match one of the options verbatim.  Add a short explanation.\n"
            f"4. Create {p.flashcards.min}-{p.flashcards.max} flashcards "
            "(term and definition) covering key concepts from the whole "
            "document, each with a difficulty_level of easy, medium or hard.\n"
            "5. Give the document a clear, concise title.\n"
            "\n"
            "If you cannot call the function, return **only** the same JSON "
            "object (no markdown fences, no commentary)."
        )

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_llm_response(response: str) -> dict[str, Any]:
        """Extract a JSON object from a function-call payload or prose answer.

        Raises
        ------
        json.JSONDecodeError
            If no valid JSON can be extracted.
        ValueError
            If the JSON is not an object.
        """
        text = response.strip()

        # --- Strategy 1: Parse as-is ---
        # Function-call arguments are bare JSON; their string values may
        # contain backticks that the fallbacks below would cut into.
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            # --- Strategy 2: Strip a wrapping markdown code fence ---
            fence_match = _JSON_FENCE_RE.match(text)
            if fence_match:
                text = fence_match.group(1).strip()

            # --- Strategy 3: Brace extraction ---
            # Preamble such as "Here is the breakdown: { ... }" is cut away
            # by taking the outermost brace pair.
            if not text.startswith("{"):
                brace_start = text.find("{")
                brace_end = text.rfind("}")
                if brace_start != -1 and brace_end > brace_start:
                    text = text[brace_start : brace_end + 1]

            parsed = json.loads(text)

        if not isinstance(parsed, dict):
            raise ValueError("LLM response is not a JSON object")
        return parsed

    # ------------------------------------------------------------------
    # Normalisation
    # ------------------------------------------------------------------

    def _normalize(self, document: StructuredDocument) -> StructuredDocument:
        sections: list[StructuredSection] = []
        for index, section in enumerate(document.sections):
            chunks = [c for c in section.chunks if c.content.strip()]
            questions = [q for q in section.questions if q.is_well_formed()]

            dropped_chunks = len(section.chunks) - len(chunks)
            dropped_questions = len(section.questions) - len(questions)
            if dropped_chunks or dropped_questions:
                self._logger.warning(
                    "structuring_items_dropped",
                    section_index=index,
                    section_title=section.title,
                    dropped_chunks=dropped_chunks,
                    dropped_questions=dropped_questions,
                )
            sections.append(
                section.model_copy(update={"chunks": chunks, "questions": questions})
            )

        return document.model_copy(update={"sections": sections})
