"""Custom questionnaire persistence. Callers own the session and the commit."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.database import for_update
from app.services.errors import Conflict

STATUS_PENDING = "pending"
STATUS_ANSWERED = "answered"

_COLUMNS = "id, request_id, sender_id, receiver_id, questions, status, created_at, updated_at"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _decode(row) -> dict[str, Any]:
    item = dict(row)
    if isinstance(item.get("questions"), (str, bytes)):
        item["questions"] = json.loads(item["questions"])
    return item


def create(db, *, request_id: str, sender_id: str, receiver_id: str, questions: list[dict[str, Any]]) -> dict[str, Any]:
    """Insert one batch; the (request_id, sender_id) unique constraint decides races."""
    now = _now_utc()
    row = {
        "id": str(uuid.uuid4()),
        "request_id": request_id,
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "questions": questions,
        "status": STATUS_PENDING,
        "created_at": now,
        "updated_at": now,
    }
    try:
        db.execute(
            text(
                """
                INSERT INTO custom_questionnaire (id, request_id, sender_id, receiver_id, questions, status, created_at, updated_at)
                VALUES (:id, :request_id, :sender_id, :receiver_id, :questions, :status, :created_at, :updated_at)
                """
            ),
            {**row, "questions": json.dumps(questions)},
        )
    except IntegrityError:
        # The session is unusable after this; the caller's transaction is abandoned.
        raise Conflict("You have already sent a questionnaire for this request")
    return row


def get(db, questionnaire_id: str, *, lock: bool = False) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {_COLUMNS} FROM custom_questionnaire WHERE id = :id" + (for_update(db) if lock else "")),
        {"id": questionnaire_id},
    ).mappings().first()
    return _decode(row) if row else None


def get_for_sender(db, request_id: str, sender_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {_COLUMNS} FROM custom_questionnaire WHERE request_id = :request_id AND sender_id = :sender_id"),
        {"request_id": request_id, "sender_id": sender_id},
    ).mappings().first()
    return _decode(row) if row else None


def list_for_request(db, request_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            f"""
            SELECT {_COLUMNS}
            FROM custom_questionnaire
            WHERE request_id = :request_id
            ORDER BY created_at DESC
            """
        ),
        {"request_id": request_id},
    ).mappings().all()
    return [_decode(r) for r in rows]


def mark_answered(db, questionnaire_id: str, answers: list[str]) -> dict[str, Any]:
    current = get(db, questionnaire_id)
    if current is None:
        raise LookupError(questionnaire_id)
    questions = [
        {"question": q["question"], "answer": answer}
        for q, answer in zip(current["questions"], answers)
    ]
    now = _now_utc()
    result = db.execute(
        text(
            """
            UPDATE custom_questionnaire
            SET questions = :questions, status = :answered, updated_at = :now
            WHERE id = :id AND status = :pending
            """
        ),
        {
            "id": questionnaire_id,
            "questions": json.dumps(questions),
            "answered": STATUS_ANSWERED,
            "pending": STATUS_PENDING,
            "now": now,
        },
    )
    if result.rowcount != 1:
        raise Conflict("This questionnaire has already been answered")
    return {**current, "questions": questions, "status": STATUS_ANSWERED, "updated_at": now}


def count_answered_for_request(db, request_id: str) -> dict[str, int]:
    row = db.execute(
        text(
            """
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN status = :answered THEN 1 ELSE 0 END) AS answered
            FROM custom_questionnaire
            WHERE request_id = :request_id
            """
        ),
        {"request_id": request_id, "answered": STATUS_ANSWERED},
    ).mappings().first()
    return {"total": int(row["total"] or 0), "answered": int(row["answered"] or 0)}
