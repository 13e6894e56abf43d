from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from ..core.config import get_settings
from ..core.logger import get_logger
from ..routers.collections import router as collections_router
from ..routers.health import router as health_router
from .dependencies import get_store

# The store (and its engine) is created lazily by the first request that needs it.

settings = get_settings()
logger = get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="REST API over a collection-oriented document store backed by SQLite.",
    version="0.3.0",
    default_response_class=ORJSONResponse,
    openapi_tags=[
        {"name": "Health", "description": "Service health and diagnostics"},
        {"name": "Collections", "description": "Document collections and CRUD operations"},
    ],
)

# CORS configuration driven by settings
origins = settings.cors_origins_list()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("FastAPI app initialized", extra={"app_name": settings.APP_NAME, "env": settings.APP_ENV})


@app.on_event("shutdown")
async def shutdown_event():
    """Release pooled SQLite connections if a store was created."""
    if get_store.cache_info().currsize:
        get_store().close()
        get_store.cache_clear()
    logger.info("Shutdown complete.")


@app.get("/", summary="Health Check (root)", tags=["Health"])
def health_check_root():
    """Root-level health check.

    Returns:
        A simple JSON message indicating the service is healthy.
    """
    return {"message": "Healthy"}


app.include_router(health_router)
app.include_router(collections_router)


if __name__ == "__main__":
    # python -m docstore.api.main
    import uvicorn  # type: ignore

    logger.info("Starting uvicorn server", extra={"port": settings.PORT})
    uvicorn.run("docstore.api.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
