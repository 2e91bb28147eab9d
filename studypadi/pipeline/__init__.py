"""Pipeline orchestration components for the StudyPadi ingestion pipeline."""

from studypadi.pipeline.orchestrator import IngestionPipeline
from studypadi.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "IngestionPipeline",
    "ProgressTracker",
]
