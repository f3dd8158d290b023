from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..config import RL_REQUEST_CREATE_LIMIT, RL_WINDOW_SECONDS
from ..schemas import CreateRequestInput, RejectConnectionInput, UpdateRequestInput
from ..services import lifecycle
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_REQUEST_CREATE = rate_limit_dependency("request_create", RL_REQUEST_CREATE_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def requests_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "requests"}


@router.post("/requests", status_code=201)
def create_request(
    payload: CreateRequestInput,
    current_user: dict[str, Any] = Depends(get_current_user),
    _: None = RL_REQUEST_CREATE,
) -> dict[str, Any]:
    request = lifecycle.create_request(str(current_user["id"]), payload.receiver_id.strip(), payload.message)
    return {"message": "Connection request sent", "request": request}


@router.get("/requests")
def list_requests(type: str = "received", current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"requests": lifecycle.list_requests(str(current_user["id"]), type)}


@router.get("/requests/{request_id}")
def get_request(request_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"request": lifecycle.get_request(request_id, str(current_user["id"]))}


@router.patch("/requests/{request_id}")
def update_request(
    request_id: str,
    payload: UpdateRequestInput,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    request = lifecycle.apply_client_update(
        request_id,
        str(current_user["id"]),
        status=payload.status,
        connection_stage=payload.connection_stage,
        rejection_reason=payload.rejection_reason,
    )
    return {"message": f"Request {payload.status}" if payload.status else "Request updated", "request": request}


@router.post("/requests/{request_id}/skip")
def skip_compatibility(request_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"request": lifecycle.skip_compatibility(request_id, str(current_user["id"]))}


@router.post("/requests/{request_id}/reject")
def reject_connection(
    request_id: str,
    payload: RejectConnectionInput,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    return {"request": lifecycle.reject_connection(request_id, str(current_user["id"]), payload.reason)}


@router.get("/requests/{request_id}/compatibility")
def get_compatibility_status(request_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return lifecycle.compatibility_status(request_id, str(current_user["id"]))


@router.post("/requests/{request_id}/compatibility/recheck")
def recheck_compatibility(request_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"request": lifecycle.recheck_compatibility(request_id, str(current_user["id"]))}
