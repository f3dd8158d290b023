from typing import Any

from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user
from ..config import RL_MESSAGE_SEND_LIMIT, RL_WINDOW_SECONDS
from ..schemas import SendMessageInput
from ..services import messaging
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_MESSAGE_SEND = rate_limit_dependency("message_send", RL_MESSAGE_SEND_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def chat_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "chat"}


@router.get("/messages/conversation/{user_id}")
def get_conversation(user_id: str, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return messaging.get_conversation(str(current_user["id"]), user_id)


@router.post("/messages", status_code=201)
def send_message(
    payload: SendMessageInput,
    current_user: dict[str, Any] = Depends(get_current_user),
    _: None = RL_MESSAGE_SEND,
) -> dict[str, Any]:
    message = messaging.send_message(str(current_user["id"]), payload.receiver_id.strip(), payload.body)
    return {
        "message": {
            "id": str(message["id"]),
            "request_id": str(message["request_id"]),
            "sender_id": str(message["sender_id"]),
            "receiver_id": str(message["receiver_id"]),
            "body": message["body"],
            "created_at": message.get("created_at"),
        }
    }
