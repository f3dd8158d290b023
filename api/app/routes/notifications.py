from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..auth.deps import get_current_user
from ..config import NOTIFICATIONS_PAGE_MAX

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def notifications_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "notifications"}


@router.get("/notifications")
def list_notifications(
    limit: int = 20,
    cursor: str | None = None,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    limit = min(max(limit, 1), NOTIFICATIONS_PAGE_MAX)
    return repo.list_notifications(str(current_user["id"]), limit=limit, cursor=cursor)


@router.post("/notifications/read-all")
def mark_all_read(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    updated = repo.mark_all_notifications_read(str(current_user["id"]))
    return {"status": "ok", "updated": updated}


@router.post("/notifications/{notification_id}/read")
def mark_read(notification_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    if not repo.mark_notification_read(str(current_user["id"]), notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "ok", "id": notification_id}
