"""Public interface definitions for StudyPadi's external services.

Every external service in the ingestion pipeline is accessed through the
abstract base classes defined in this package.  Concrete adapters
implement these interfaces and are injected at runtime from
``studypadi/main.py``, so unit tests can pass a mock in their place.

CONCRETE PROVIDER MAP:
    Interface       →  Concrete implementations (in studypadi/providers/)
    ─────────────────────────────────────────────────────────────────────
    ILLMProvider    →  OpenAILLMProvider
    IRecordStore    →  SQLiteRecordStore
"""

from studypadi.interfaces.llm_provider import ILLMProvider
from studypadi.interfaces.record_store import IRecordStore

__all__ = ["ILLMProvider", "IRecordStore"]
