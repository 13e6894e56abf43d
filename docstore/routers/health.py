from fastapi import APIRouter, Depends, HTTPException

from ..api.dependencies import get_store
from ..core.config import get_settings
from ..core.errors import EngineFailure
from ..core.logger import get_logger
from ..db.engine import get_effective_db_params
from ..models.schemas import HealthResponse
from ..store.crud import DocumentStore

router = APIRouter(prefix="/health", tags=["Health"])

_logger = get_logger(__name__)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=HealthResponse,
    summary="Service health",
    description=(
        "Liveness/health endpoint. Always returns 200 when the app is up. "
        "The database is not opened here."
    ),
    responses={
        200: {"description": "Service is healthy"},
    },
)
def get_health() -> HealthResponse:
    """
    Root health indicator used for liveness. Always returns 200 with {'status':'ok'}.
    """
    settings = get_settings()
    _logger.info("Health diagnostics", extra={"env": settings.APP_ENV, "storage": get_effective_db_params()})
    return HealthResponse(status="ok")


# PUBLIC_INTERFACE
@router.get(
    "/healthz",
    response_model=HealthResponse,
    summary="Service health (alias)",
    description="Alias health endpoint commonly used by platforms for liveness checks.",
    responses={200: {"description": "Service is healthy"}},
)
def get_healthz() -> HealthResponse:
    """Alias of /health that returns the same response payload."""
    return get_health()


# PUBLIC_INTERFACE
@router.get(
    "/db",
    response_model=HealthResponse,
    summary="Database connectivity",
    description="Runs a simple SELECT 1 through the document store engine.",
    responses={
        200: {"description": "Database reachable"},
        503: {"description": "Database unavailable"},
    },
)
def health_db(store: DocumentStore = Depends(get_store)) -> HealthResponse:
    """
    Database connectivity health check.

    Returns 200 with {"status":"ok"} on success, 503 with the storage path on failure.
    """
    try:
        store.ping()
    except EngineFailure as exc:
        eff = get_effective_db_params()
        _logger.error("DB connectivity failed", exc_info=exc, extra={"db_path": eff.get("db_path")})
        raise HTTPException(
            status_code=503,
            detail=f"database_unavailable: {exc} | db_path={eff.get('db_path')}",
        )
    _logger.info("DB connectivity OK via /health/db")
    return HealthResponse(status="ok")
