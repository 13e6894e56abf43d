from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4
import json

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from ..api.dependencies import get_store
from ..core.errors import (
    DocumentNotFound,
    EngineFailure,
    InvalidCollectionName,
    InvalidDocumentId,
    InvalidQueryCondition,
)
from ..models.schemas import (
    BatchResult,
    CollectionsResponse,
    DatabaseResult,
    DeleteManyRequest,
    DocumentsPage,
    OrderBy,
    PaginationMeta,
    QueryOptions,
)
from ..store.crud import NOT_FOUND_MESSAGE, DocumentStore
from ..store.predicates import coerce_conditions

router = APIRouter(prefix="/collections", tags=["Collections"])


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate store exceptions into HTTP errors."""
    try:
        yield
    except (InvalidCollectionName, InvalidDocumentId, InvalidQueryCondition) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Document not found.")
    except EngineFailure as exc:
        raise HTTPException(status_code=500, detail=f"Database error: {exc}")


def _check_result(result: DatabaseResult) -> DatabaseResult:
    if not result.success:
        status = 404 if result.error == NOT_FOUND_MESSAGE else 400
        raise HTTPException(status_code=status, detail=result.error)
    return result


def _parse_filter(raw: Optional[str]) -> List[Any]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Filter must be valid JSON.")
    if not isinstance(parsed, list):
        raise HTTPException(status_code=400, detail="Filter must be a JSON list of conditions.")
    return parsed


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=CollectionsResponse,
    summary="List collections",
    description="Returns the names of every provisioned collection.",
)
def list_collections(store: DocumentStore = Depends(get_store)) -> CollectionsResponse:
    with _store_errors():
        return CollectionsResponse(collections=store.list_collections())


# PUBLIC_INTERFACE
@router.get(
    "/{collection}",
    response_model=DocumentsPage,
    summary="List documents",
    description="Returns a paginated list of documents with optional filtering and sorting.",
    responses={
        200: {"description": "Documents returned successfully."},
        400: {"description": "Invalid collection name, filter or sort."},
    },
)
def list_documents(
    collection: str,
    filter: Optional[str] = Query(
        default=None,
        description='JSON list of conditions. Example: [{"field":"status","operator":"=","value":"filed"}]',
    ),
    sort_by: Optional[str] = Query(default=None, description="Field to sort by (created_at, updated_at, or a document field)."),
    sort_dir: str = Query(default="asc", pattern="^(asc|desc)$", description="Sort direction."),
    limit: int = Query(default=50, ge=1, le=1000, description="Max documents to return."),
    offset: int = Query(default=0, ge=0, description="Number of documents to skip."),
    store: DocumentStore = Depends(get_store),
) -> DocumentsPage:
    with _store_errors():
        conditions = coerce_conditions(_parse_filter(filter))
        order_by = OrderBy(field=sort_by, direction=sort_dir) if sort_by else None
        options = QueryOptions(where=conditions, order_by=order_by, limit=limit, offset=offset)
        total = store.count(collection, conditions)
        items = store.query(collection, options)
    return DocumentsPage(items=items, meta=PaginationMeta(total=total, limit=limit, offset=offset))


# PUBLIC_INTERFACE
@router.get(
    "/{collection}/{document_id}",
    summary="Get document by id",
    description="Retrieve a single document by its id.",
)
def get_document(collection: str, document_id: str, store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
    with _store_errors():
        return store.get_one(collection, document_id)


# PUBLIC_INTERFACE
@router.post(
    "/{collection}",
    status_code=201,
    summary="Create document",
    description="Create a new document. An id is generated when the body has none.",
)
def create_document(
    collection: str,
    payload: Dict[str, Any] = Body(..., description="Document fields"),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    with _store_errors():
        document = {**payload, "id": payload.get("id") or str(uuid4())}
        if not store.insert(collection, document):
            raise HTTPException(
                status_code=409,
                detail="Document could not be created (duplicate id or storage error).",
            )
        return store.get_one(collection, document["id"])


# PUBLIC_INTERFACE
@router.put(
    "/{collection}/{document_id}",
    summary="Replace document",
    description="Insert or fully replace the document stored under the given id.",
)
def replace_document(
    collection: str,
    document_id: str,
    payload: Dict[str, Any] = Body(..., description="Document fields"),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    with _store_errors():
        _check_result(store.upsert(collection, payload, document_id))
        return store.get_one(collection, document_id)


# PUBLIC_INTERFACE
@router.patch(
    "/{collection}/{document_id}",
    summary="Update document fields",
    description="Shallow-merge the given fields onto an existing document.",
)
def update_document(
    collection: str,
    document_id: str,
    payload: Dict[str, Any] = Body(..., description="Fields to merge"),
    store: DocumentStore = Depends(get_store),
) -> Dict[str, Any]:
    with _store_errors():
        _check_result(store.update(collection, document_id, payload))
        return store.get_one(collection, document_id)


# PUBLIC_INTERFACE
@router.delete(
    "/{collection}/{document_id}",
    status_code=204,
    summary="Delete document",
    description="Delete a document by its id.",
)
def delete_document(collection: str, document_id: str, store: DocumentStore = Depends(get_store)) -> Response:
    with _store_errors():
        _check_result(store.delete(collection, document_id))
    return Response(status_code=204)


# PUBLIC_INTERFACE
@router.post(
    "/{collection}/batch",
    response_model=BatchResult,
    summary="Batch upsert",
    description="Upsert many documents in one transaction. Items without an id are reported, not fatal.",
)
def batch_upsert(
    collection: str,
    payload: List[Dict[str, Any]] = Body(..., description="Documents, each carrying an id"),
    store: DocumentStore = Depends(get_store),
) -> BatchResult:
    with _store_errors():
        return store.upsert_many(collection, payload)


# PUBLIC_INTERFACE
@router.post(
    "/{collection}/delete",
    response_model=DatabaseResult,
    summary="Delete matching documents",
    description="Delete every document matching the conditions. At least one condition is required.",
)
def delete_matching(
    collection: str,
    payload: DeleteManyRequest,
    store: DocumentStore = Depends(get_store),
) -> DatabaseResult:
    with _store_errors():
        return _check_result(store.delete_many(collection, payload.where))
