"""Command-line tools for StudyPadi.

- ``python -m studypadi.cli ingest FILE --owner ID`` -- run the ingestion
  pipeline on a local TXT, PDF or DOCX file and print the result JSON.
- ``python -m studypadi.cli outline DOCUMENT_ID`` -- print a stored
  document's sections, chunks and question counts.
"""
