"""
Query API Server Module.

Builds the read-only FastAPI application that serves the stored charts,
snapshots and contributor statistics, and recomputes date filtered charts
on request.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import logger
from api.routers import contributors, graphs, health
from miners.models import InvalidSpecTypeError
from storage.document_store import DocumentStore


def create_app(store: DocumentStore) -> FastAPI:
    """
    Create the query API application.

    Args:
        store (DocumentStore): Store the handlers read from

    Returns:
        FastAPI: Configured application
    """
    app = FastAPI(title="SpecPulse API", version="1.0.0")
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidSpecTypeError)
    async def invalid_spec_type_handler(
        request: Request, exc: InvalidSpecTypeError
    ) -> JSONResponse:
        logger.warning(
            {"message": "Rejected request", "path": request.url.path, "error": str(exc)}
        )
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    app.include_router(graphs.router, prefix="/api", tags=["graphs"])
    app.include_router(contributors.router, prefix="/api", tags=["contributors"])
    app.include_router(health.router, prefix="/api", tags=["health"])

    logger.info({"message": "Query API created", "data_dir": str(store.storage_dir)})
    return app
