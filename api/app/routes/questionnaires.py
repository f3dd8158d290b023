from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..config import RL_QUESTIONNAIRE_SEND_LIMIT, RL_WINDOW_SECONDS
from ..schemas import AnswerQuestionnaireInput, SendQuestionnaireInput
from ..services import lifecycle
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_QUESTIONNAIRE_SEND = rate_limit_dependency("questionnaire_send", RL_QUESTIONNAIRE_SEND_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def questionnaires_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "questionnaires"}


@router.get("/questionnaires/{request_id}")
def list_questionnaires(request_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {"questionnaires": lifecycle.list_questionnaires(request_id, str(current_user["id"]))}


@router.post("/questionnaires/{request_id}", status_code=201)
def send_questionnaire(
    request_id: str,
    payload: SendQuestionnaireInput,
    current_user: dict[str, Any] = Depends(get_current_user),
    _: None = RL_QUESTIONNAIRE_SEND,
) -> dict[str, Any]:
    out = lifecycle.send_custom_questionnaire(
        request_id,
        str(current_user["id"]),
        [q.question for q in payload.questions],
    )
    return {"message": "Questionnaire sent successfully", **out}


@router.patch("/questionnaires/{request_id}")
def answer_questionnaire(
    request_id: str,
    payload: AnswerQuestionnaireInput,
    current_user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    out = lifecycle.answer_custom_questionnaire(
        payload.questionnaire_id,
        str(current_user["id"]),
        payload.answers,
        request_id=request_id,
    )
    return {"message": "Questionnaire answered successfully", **out}
