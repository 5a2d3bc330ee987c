"""Health check endpoint."""

import os
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_store
from api.schemas import HealthResponse
from storage.document_store import DocumentStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(store: DocumentStore = Depends(get_store)):
    """Report whether the document store directory is readable."""
    timestamp = datetime.now(timezone.utc).isoformat()
    if not os.access(store.storage_dir, os.R_OK):
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "timestamp": timestamp, "storage": "unavailable"},
        )
    return HealthResponse(status="healthy", timestamp=timestamp, storage="available")
