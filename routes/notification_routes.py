"""Notification log API routes."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from routes.dependencies import get_data_layer, storage_failure
from services.data_layer import DataLayer

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/{user_id}", response_model=List[Dict[str, Any]])
@limiter.limit("60/minute")
async def list_notifications(
    request: Request,
    user_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> List[Dict[str, Any]]:
    """Return the user's notifications, most recent first."""
    return await data.notifications.list(user_id)


@router.get("/{user_id}/unread-count", response_model=Dict[str, int])
@limiter.limit("120/minute")
async def unread_count(
    request: Request,
    user_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, int]:
    return {"unread": await data.notifications.unread_count(user_id)}


@router.post("/{user_id}/read-all", response_model=Dict[str, int])
@limiter.limit("30/minute")
async def mark_all_read(
    request: Request,
    user_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, int]:
    try:
        updated = await data.notifications.mark_all_read(user_id)
    except Exception as exc:
        raise storage_failure(exc, "mark notifications as read")
    return {"updated": updated}


@router.post("/item/{notification_id}/read", response_model=Dict[str, Any])
@limiter.limit("60/minute")
async def mark_read(
    request: Request,
    notification_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    try:
        notification = await data.notifications.mark_read(notification_id)
    except Exception as exc:
        raise storage_failure(exc, "mark the notification as read")
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.delete("/item/{notification_id}", status_code=204)
@limiter.limit("30/minute")
async def delete_notification(
    request: Request,
    notification_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Response:
    try:
        deleted = await data.notifications.delete(notification_id)
    except Exception as exc:
        raise storage_failure(exc, "delete the notification")
    if not deleted:
        raise HTTPException(status_code=404, detail="Notification not found")
    return Response(status_code=204)
