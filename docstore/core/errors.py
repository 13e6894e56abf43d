"""
Document store exceptions.

Raised by the store layer and translated to HTTP statuses by the routers.
"""

from typing import List, Optional


class DocumentStoreError(Exception):
    """Base class for every error raised by the document store."""
    pass


class InvalidCollectionName(DocumentStoreError):
    """Raised when a collection name could be unsafe as a table identifier."""

    def __init__(self, name: object):
        self.name = name
        super().__init__(
            f"Invalid collection name: {name!r}. Only alphanumeric characters, underscores, "
            "and hyphens are allowed (max 64 characters)."
        )


class InvalidDocumentId(DocumentStoreError):
    """Raised when a document identifier is missing or not representable as a string."""
    pass


class InvalidQueryCondition(DocumentStoreError):
    """Raised for malformed filter or ordering input."""
    pass


class DocumentNotFound(DocumentStoreError):
    """Raised when a point operation targets an id that does not exist."""

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"No such document: {collection}/{document_id}")


class EngineFailure(DocumentStoreError):
    """Wraps a lower-level storage engine error; the original is kept as __cause__."""
    pass


class PartialBatchFailure(DocumentStoreError):
    """Per-item errors of a batch write whose valid items were committed."""

    def __init__(self, errors: List[str], upserted_ids: Optional[List[str]] = None):
        self.errors = list(errors)
        self.upserted_ids = list(upserted_ids or [])
        super().__init__(f"{len(self.errors)} item(s) failed in batch write: {'; '.join(self.errors)}")
