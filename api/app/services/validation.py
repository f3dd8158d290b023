from typing import Any

from ..config import (
    MAX_ANSWER_LENGTH,
    MAX_CHAT_MESSAGE_LENGTH,
    MAX_CUSTOM_QUESTIONS,
    MAX_QUESTION_LENGTH,
    MAX_REJECTION_REASON_LENGTH,
    MAX_REQUEST_MESSAGE_LENGTH,
)
from .completion import ANSWER_FIELDS, RELIGIOUS_BACKGROUNDS, allowed_fields
from .errors import ValidationError


def optional_text(value: Any, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    cleaned = value.strip()
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} must be {max_length} characters or fewer")
    return cleaned or None


def request_message(value: Any) -> str | None:
    return optional_text(value, "message", MAX_REQUEST_MESSAGE_LENGTH)


def rejection_reason(value: Any) -> str | None:
    return optional_text(value, "rejection_reason", MAX_REJECTION_REASON_LENGTH)


def chat_body(value: Any) -> str:
    body = optional_text(value, "body", MAX_CHAT_MESSAGE_LENGTH)
    if not body:
        raise ValidationError("Message body required")
    return body


def custom_questions(questions: Any) -> list[dict[str, Any]]:
    if not isinstance(questions, list) or not questions:
        raise ValidationError("At least one question is required")
    if len(questions) > MAX_CUSTOM_QUESTIONS:
        raise ValidationError(f"You can send up to {MAX_CUSTOM_QUESTIONS} questions")
    out: list[dict[str, Any]] = []
    for idx, item in enumerate(questions, start=1):
        raw = item.get("question") if isinstance(item, dict) else item
        text = optional_text(raw, f"question {idx}", MAX_QUESTION_LENGTH)
        if not text:
            raise ValidationError(f"Question {idx} must not be empty")
        out.append({"question": text, "answer": None})
    return out


def custom_answers(answers: Any, question_count: int) -> list[str]:
    if not isinstance(answers, list):
        raise ValidationError("answers must be an array")
    if len(answers) != question_count:
        raise ValidationError(f"Expected {question_count} answers, got {len(answers)}")
    out: list[str] = []
    for idx, raw in enumerate(answers, start=1):
        text = optional_text(raw, f"answer {idx}", MAX_ANSWER_LENGTH)
        if not text:
            raise ValidationError(f"Answer {idx} must not be empty")
        out.append(text)
    return out


def compatibility_answers(fields: dict[str, Any], background: str) -> dict[str, str | None]:
    """Clean submitted profile answers for ``background``.

    Unknown keys are rejected, Muslim-only keys are dropped for other
    backgrounds. ``None`` leaves a field unchanged and an empty string
    clears it.
    """
    if background not in RELIGIOUS_BACKGROUNDS:
        raise ValidationError(f"religious_background must be one of: {', '.join(RELIGIOUS_BACKGROUNDS)}")
    unknown = sorted(k for k in fields if k not in ANSWER_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown compatibility fields: {', '.join(unknown)}")
    permitted = set(allowed_fields(background))
    cleaned: dict[str, str | None] = {}
    for key, value in fields.items():
        if key not in permitted or value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a string")
        text = value.strip()
        if len(text) > MAX_ANSWER_LENGTH:
            raise ValidationError(f"{key} must be {MAX_ANSWER_LENGTH} characters or fewer")
        cleaned[key] = text or None
    return cleaned
