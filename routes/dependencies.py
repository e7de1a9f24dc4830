"""Shared FastAPI dependencies and error mapping for the data routes."""

import logging

from fastapi import HTTPException, Request

from db.durable_store import DurableStoreError
from services.data_layer import DataLayer
from services.storage import RecordValidationError

logger = logging.getLogger(__name__)


def get_data_layer(request: Request) -> DataLayer:
    """Return the data layer wired onto the application at startup."""
    data_layer = getattr(request.app.state, "data_layer", None)
    if data_layer is None:
        raise HTTPException(status_code=503, detail="Storage is not configured.")
    return data_layer


def storage_failure(exc: Exception, action: str) -> HTTPException:
    """Translate a data layer exception into the HTTP error returned to clients."""
    if isinstance(exc, RecordValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DurableStoreError):
        return HTTPException(status_code=503, detail="Storage is temporarily unavailable.")
    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(status_code=500, detail=f"Unable to {action}.")
