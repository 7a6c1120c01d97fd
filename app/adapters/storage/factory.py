"""Factory for the configured document store."""

from app.adapters.storage.base import AbstractDocumentStore
from app.adapters.storage.in_memory import InMemoryDocumentStore
from app.core.config import settings
from app.core.errors import ValidationAppError


def create_document_store() -> AbstractDocumentStore:
    """Instantiate the store selected by ``DATABASE_BACKEND``.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = settings.database.backend.lower()

    if backend == "memory":
        return InMemoryDocumentStore()

    if backend == "mongo":
        # Imported lazily so the in-memory backend works without a driver.
        from app.adapters.storage.mongo import MongoDocumentStore

        return MongoDocumentStore(uri=settings.database.uri, db_name=settings.database.name)

    raise ValidationAppError(
        code="database_unknown_backend",
        message=f"Unknown database backend: '{backend}'. Supported backends: memory, mongo",
    )
