"""Business services for the StudyPadi ingestion pipeline and study flow.

- **text_extractor** -- file bytes to plain text (PyMuPDF, python-docx).
- **document_structurer** -- text to StructuredDocument via one LLM call.
- **persistence** -- StructuredDocument to record-store rows, best-effort.
- **learning_service** -- outlines, quiz grading, adaptive chunk sizing.
"""

from studypadi.services.document_structurer import DocumentStructurer, StructuringPolicy
from studypadi.services.learning_service import AdaptivePolicy, LearningService
from studypadi.services.persistence import PersistenceFanout
from studypadi.services.text_extractor import TextExtractor

__all__ = [
    "AdaptivePolicy",
    "DocumentStructurer",
    "LearningService",
    "PersistenceFanout",
    "StructuringPolicy",
    "TextExtractor",
]
