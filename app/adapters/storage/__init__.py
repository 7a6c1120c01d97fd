"""Document store adapters."""

from app.adapters.storage.base import AbstractDocumentStore, DuplicateEmailError
from app.adapters.storage.factory import create_document_store
from app.adapters.storage.in_memory import InMemoryDocumentStore

__all__ = [
    "AbstractDocumentStore",
    "DuplicateEmailError",
    "InMemoryDocumentStore",
    "create_document_store",
]
