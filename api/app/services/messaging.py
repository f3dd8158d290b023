from typing import Any

from app import repo

from . import lifecycle, notifications, validation
from .errors import Forbidden, NotFound, ValidationError

LOCKED_MESSAGE = (
    "Message request must be approved and questionnaire completed first. "
    "Please complete the compatibility questionnaire."
)


def send_message(sender_id: str, receiver_id: str, body: Any) -> dict[str, Any]:
    if sender_id == receiver_id:
        raise ValidationError("Cannot send message to yourself")
    cleaned = validation.chat_body(body)

    pairing = lifecycle.find_messaging_pairing(sender_id, receiver_id)
    if not lifecycle.can_message(pairing):
        raise Forbidden(LOCKED_MESSAGE)

    message = repo.create_chat_message(
        request_id=str(pairing["id"]),
        sender_id=sender_id,
        receiver_id=receiver_id,
        body=cleaned,
    )
    notifications.notify(
        receiver_id,
        "message",
        {"request_id": str(pairing["id"]), "actor_id": sender_id, "body": cleaned},
    )
    return message


def get_conversation(user_id: str, other_user_id: str) -> dict[str, Any]:
    pairing = lifecycle.find_messaging_pairing(user_id, other_user_id)
    if not pairing:
        raise Forbidden(LOCKED_MESSAGE)
    other = repo.get_user_public_profile(other_user_id)
    if not other:
        raise NotFound("User not found")
    return {
        "request_id": str(pairing["id"]),
        "other_profile": other,
        "messages": repo.get_conversation(user_id, other_user_id),
    }
