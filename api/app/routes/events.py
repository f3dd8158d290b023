from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..services import lifecycle

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def events_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "events"}


@router.get("/requests/{request_id}/events")
def list_request_events(request_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"events": lifecycle.list_events(request_id, str(current_user["id"]))}
