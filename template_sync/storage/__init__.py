"""Record and file storage components."""

from .file_store import LocalFileStore
from .record_store import InMemoryRecordStore

__all__ = ['InMemoryRecordStore', 'LocalFileStore']
