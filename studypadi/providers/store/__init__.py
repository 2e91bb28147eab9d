"""Record store adapters.

SQLiteRecordStore implements IRecordStore (studypadi/interfaces/record_store.py)
on a local SQLite file at data/studypadi.db.  It stands in for the hosted
backend the web client talks to and keeps the same seven collections.
"""

from studypadi.providers.store.sqlite_record_store import SQLiteRecordStore

__all__ = ["SQLiteRecordStore"]
