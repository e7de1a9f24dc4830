"""Administrative routes: users, settings, backups and storage maintenance."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from models.records import UserCreate
from routes.dependencies import get_data_layer, storage_failure
from services.backup import BackupFormatError
from services.data_layer import DataLayer

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(tags=["admin"])


@router.get("/users", response_model=List[Dict[str, Any]])
@limiter.limit("60/minute")
async def list_users(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> List[Dict[str, Any]]:
    return await data.store.users.list()


@router.post("/users", response_model=Dict[str, Any], status_code=201)
@limiter.limit("10/minute")
async def register_user(
    request: Request,
    body: UserCreate,
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Add a user to the registered users collection."""
    try:
        return await data.store.users.add(body)
    except Exception as exc:
        raise storage_failure(exc, "register the user")


@router.delete("/users/{user_id}", status_code=204)
@limiter.limit("10/minute")
async def delete_user(
    request: Request,
    user_id: str = Path(...),
    data: DataLayer = Depends(get_data_layer),
) -> Response:
    try:
        deleted = await data.store.users.delete(user_id)
    except Exception as exc:
        raise storage_failure(exc, "delete the user")
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")
    return Response(status_code=204)


@router.get("/admin/settings", response_model=Dict[str, Any])
@limiter.limit("60/minute")
async def get_settings(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Dict[str, Any]:
    return await data.store.get_app_settings()


@router.patch("/admin/settings", response_model=Dict[str, Any])
@limiter.limit("20/minute")
async def update_settings(
    request: Request,
    changes: Dict[str, Any] = Body(...),
    data: DataLayer = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Merge the given keys into the stored application settings."""
    try:
        return await data.store.update_app_settings(changes)
    except Exception as exc:
        raise storage_failure(exc, "update settings")


@router.get("/admin/backup")
@limiter.limit("5/minute")
async def create_backup(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Response:
    """Return the full backup document exactly as it would be stored."""
    try:
        blob = await data.backups.create_backup()
    except Exception as exc:
        raise storage_failure(exc, "create the backup")
    return Response(content=blob, media_type="application/json")


@router.post("/admin/backup/restore", response_model=Dict[str, Any])
@limiter.limit("5/minute")
async def restore_backup(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Dict[str, Any]:
    """Replace appointments, notifications, users and settings with the posted backup."""
    raw = await request.body()
    try:
        return await data.backups.restore_from_backup(raw.decode("utf-8"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Backup must be UTF-8 text.")
    except BackupFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise storage_failure(exc, "restore the backup")


@router.get("/admin/storage-info", response_model=Dict[str, Any])
@limiter.limit("30/minute")
async def storage_info(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Dict[str, Any]:
    info = await data.cache.storage_info()
    return {
        "cacheSize": info.cache_size,
        "totalKeys": info.total_keys,
        "lastAccess": info.last_access,
    }


@router.post("/admin/cache/clear", status_code=204)
@limiter.limit("10/minute")
async def clear_cache(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Response:
    """Drop the in-memory cache; stored data is untouched."""
    data.cache.clear_cache()
    logger.info("In-memory cache cleared on request.")
    return Response(status_code=204)


@router.delete("/admin/data", status_code=204)
@limiter.limit("2/minute")
async def reset_all_data(
    request: Request, data: DataLayer = Depends(get_data_layer)
) -> Response:
    """Erase every stored key. Irreversible."""
    try:
        await data.store.clear_all()
    except Exception as exc:
        raise storage_failure(exc, "reset stored data")
    return Response(status_code=204)
