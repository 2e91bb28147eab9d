"""StudyPadi: turn uploaded study documents into structured learning paths."""

__version__ = "0.1.0"
