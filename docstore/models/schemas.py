"""
Pydantic schemas for store options and results, and for API requests and
responses: filter conditions, ordering, pagination, write results and batch
reports.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.errors import PartialBatchFailure

Operator = Literal["=", "!=", ">", "<", ">=", "<=", "LIKE", "IN", "NOT IN"]


# ---------------------------------------------------------------------------
# Query Schemas
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class WhereCondition(BaseModel):
    """A single filter term on a top-level document field."""
    field: str = Field(..., description="Top-level document field to compare")
    operator: Operator = Field(..., description="Comparison operator")
    value: Any = Field(default=None, description="Value to compare against (a non-empty list for IN/NOT IN)")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={"example": {"field": "status", "operator": "=", "value": "filed"}},
    )

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.upper().split())
        return value


# PUBLIC_INTERFACE
class OrderBy(BaseModel):
    """Ordering on a document field, or on created_at/updated_at."""
    field: str = Field(..., description="Field to order by")
    direction: Literal["ASC", "DESC"] = Field(default="ASC", description="Sort direction")

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


# PUBLIC_INTERFACE
class QueryOptions(BaseModel):
    """Filter, ordering and pagination for DocumentStore.query.

    A limit of None returns every matching document.
    """
    where: List[WhereCondition] = Field(default_factory=list, description="Conditions combined with AND")
    order_by: Optional[OrderBy] = Field(default=None, description="Ordering; newest first when omitted")
    limit: Optional[int] = Field(default=None, ge=1, description="Max documents to return")
    offset: Optional[int] = Field(default=None, ge=0, description="Number of documents to skip")

    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Result Schemas
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class DatabaseResult(BaseModel):
    """Outcome of a write whose failures are reported rather than raised."""
    success: bool = Field(..., description="True if the write was applied")
    id: Optional[str] = Field(default=None, description="Document id the write applied to")
    data: Optional[Dict[str, Any]] = Field(default=None, description="Operation-specific payload")
    error: Optional[str] = Field(default=None, description="Human-readable error message")


# PUBLIC_INTERFACE
class BatchResult(BaseModel):
    """Outcome of DocumentStore.upsert_many."""
    success: bool = Field(..., description="True only if every item was written")
    errors: List[str] = Field(default_factory=list, description="One message per rejected item or fatal error")
    upserted_ids: List[str] = Field(default_factory=list, description="Ids committed by the batch")

    def raise_for_errors(self) -> None:
        """Raise PartialBatchFailure if any item was rejected."""
        if self.errors:
            raise PartialBatchFailure(self.errors, self.upserted_ids)


# PUBLIC_INTERFACE
class StoredDocument(BaseModel):
    """A decoded document together with its row timestamps."""
    id: str = Field(..., description="Document id")
    data: Dict[str, Any] = Field(..., description="Decoded document")
    created_at: str = Field(..., description="ISO-8601 UTC time of the first write")
    updated_at: str = Field(..., description="ISO-8601 UTC time of the latest write")


# ---------------------------------------------------------------------------
# API Schemas
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class HealthResponse(BaseModel):
    """Basic health response schema."""
    status: str = Field(..., description="Health status message, e.g., 'ok'")


# PUBLIC_INTERFACE
class PaginationMeta(BaseModel):
    """Metadata for paginated responses."""
    total: int = Field(..., ge=0, description="Total number of matching documents.")
    limit: int = Field(..., ge=1, description="Page size used.")
    offset: int = Field(..., ge=0, description="Offset used.")


# PUBLIC_INTERFACE
class DocumentsPage(BaseModel):
    """Paginated list of documents."""
    items: List[Dict[str, Any]] = Field(..., description="Documents in the page.")
    meta: PaginationMeta = Field(..., description="Pagination metadata.")


# PUBLIC_INTERFACE
class CollectionsResponse(BaseModel):
    """Names of the provisioned collections."""
    collections: List[str] = Field(default_factory=list, description="Collection names, sorted")


# PUBLIC_INTERFACE
class DeleteManyRequest(BaseModel):
    """Conditions selecting the documents to delete (at least one required)."""
    where: List[WhereCondition] = Field(..., description="Conditions combined with AND")

    model_config = ConfigDict(
        json_schema_extra={"example": {"where": [{"field": "status", "operator": "=", "value": "archived"}]}}
    )
