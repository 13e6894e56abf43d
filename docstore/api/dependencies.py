"""
FastAPI dependencies.

The DocumentStore is built once, on first request, from Settings and shared
by every route. Tests swap it through app.dependency_overrides[get_store].
"""

from functools import lru_cache

from ..store.crud import DocumentStore


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    """Return the process-wide DocumentStore."""
    return DocumentStore.from_settings()
