"""Connection request persistence. Callers own the session and the commit."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text

from app.database import for_update
from app.services.state_machine import (
    MESSAGING_STAGES,
    STAGE_ACCEPTED,
    STAGE_NONE,
    STATUS_APPROVED,
    STATUS_PENDING,
    request_status_for,
)

_COLUMNS = """
    id, sender_id, receiver_id, message, request_status, connection_stage,
    rejection_reason, created_at, updated_at
"""


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create(db, *, sender_id: str, receiver_id: str, message: str | None) -> dict[str, Any]:
    now = _now_utc()
    row = {
        "id": str(uuid.uuid4()),
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "message": message,
        "request_status": STATUS_PENDING,
        "connection_stage": STAGE_NONE,
        "rejection_reason": None,
        "created_at": now,
        "updated_at": now,
    }
    db.execute(
        text(
            """
            INSERT INTO connection_request (
              id, sender_id, receiver_id, message, request_status, connection_stage,
              rejection_reason, created_at, updated_at
            )
            VALUES (
              :id, :sender_id, :receiver_id, :message, :request_status, :connection_stage,
              :rejection_reason, :created_at, :updated_at
            )
            """
        ),
        row,
    )
    return row


def get(db, request_id: str, *, lock: bool = False) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {_COLUMNS} FROM connection_request WHERE id = :id" + (for_update(db) if lock else "")),
        {"id": request_id},
    ).mappings().first()
    return dict(row) if row else None


def find_open_between(db, user_a: str, user_b: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            f"""
            SELECT {_COLUMNS}
            FROM connection_request
            WHERE ((sender_id = :a AND receiver_id = :b) OR (sender_id = :b AND receiver_id = :a))
              AND request_status IN (:pending, :approved)
            ORDER BY created_at DESC
            LIMIT 1
            """
        ),
        {"a": user_a, "b": user_b, "pending": STATUS_PENDING, "approved": STATUS_APPROVED},
    ).mappings().first()
    return dict(row) if row else None


def find_messaging_pairing(db, user_a: str, user_b: str) -> dict[str, Any] | None:
    stages = sorted(MESSAGING_STAGES)
    row = db.execute(
        text(
            f"""
            SELECT {_COLUMNS}
            FROM connection_request
            WHERE ((sender_id = :a AND receiver_id = :b) OR (sender_id = :b AND receiver_id = :a))
              AND request_status = :approved
              AND connection_stage IN (:stage_a, :stage_b)
            ORDER BY created_at DESC
            LIMIT 1
            """
        ),
        {"a": user_a, "b": user_b, "approved": STATUS_APPROVED, "stage_a": stages[0], "stage_b": stages[1]},
    ).mappings().first()
    return dict(row) if row else None


def list_for_user(db, user_id: str, direction: str = "received") -> list[dict[str, Any]]:
    column = "sender_id" if direction == "sent" else "receiver_id"
    rows = db.execute(
        text(
            f"""
            SELECT {_COLUMNS}
            FROM connection_request
            WHERE {column} = :user_id
            ORDER BY created_at DESC
            """
        ),
        {"user_id": user_id},
    ).mappings().all()
    return [dict(r) for r in rows]


def lock_accepted_for_user(db, user_id: str) -> list[dict[str, Any]]:
    # Ordered by id so two participants locking overlapping pairings cannot deadlock.
    rows = db.execute(
        text(
            f"""
            SELECT {_COLUMNS}
            FROM connection_request
            WHERE connection_stage = :accepted
              AND (sender_id = :user_id OR receiver_id = :user_id)
            ORDER BY id
            """
            + for_update(db)
        ),
        {"user_id": user_id, "accepted": STAGE_ACCEPTED},
    ).mappings().all()
    return [dict(r) for r in rows]


def update_stage(db, request_id: str, stage: str, *, rejection_reason: str | None = None) -> dict[str, Any]:
    """Write ``stage`` with the request status it implies."""
    params = {
        "id": request_id,
        "stage": stage,
        "status": request_status_for(stage),
        "reason": rejection_reason,
        "now": _now_utc(),
    }
    db.execute(
        text(
            """
            UPDATE connection_request
            SET connection_stage = :stage,
                request_status = :status,
                rejection_reason = COALESCE(:reason, rejection_reason),
                updated_at = :now
            WHERE id = :id
            """
        ),
        params,
    )
    return {"connection_stage": stage, "request_status": params["status"], "updated_at": params["now"]}
