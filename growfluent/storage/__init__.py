"""
Card and exam-history persistence.

Components:
- CardStore: abstract port
- SQLiteCardStore: local database
- RemoteDocumentStore: HTTP document store
- FallbackCardStore: remote with local fallback
"""

from .base import CardStore
from .fallback import FallbackCardStore
from .remote_store import RemoteDocumentStore
from .sqlite_store import SQLiteCardStore

__all__ = [
    "CardStore",
    "FallbackCardStore",
    "RemoteDocumentStore",
    "SQLiteCardStore",
]
