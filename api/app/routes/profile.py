from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..schemas import CompatibilityAnswersInput
from ..services import lifecycle

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def profile_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "profile"}


@router.get("/profile/compatibility")
def get_compatibility_profile(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return lifecycle.get_compatibility_profile(str(current_user["id"]))


@router.put("/profile/compatibility")
def submit_compatibility_answers(
    payload: CompatibilityAnswersInput,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    return lifecycle.submit_compatibility_answers(
        str(current_user["id"]),
        payload.answer_fields(),
        religious_background=payload.religious_background,
    )
