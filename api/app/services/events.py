import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text


def log_connection_event(
    db,
    *,
    request_id: str,
    event_type: str,
    actor_user_id: str | None = None,
    from_stage: str | None = None,
    to_stage: str | None = None,
    payload: dict[str, Any] | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO connection_event (id, request_id, actor_user_id, event_type, from_stage, to_stage, payload, created_at)
            VALUES (:id, :request_id, :actor_user_id, :event_type, :from_stage, :to_stage, :payload, :created_at)
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "request_id": request_id,
            "actor_user_id": actor_user_id,
            "event_type": event_type,
            "from_stage": from_stage,
            "to_stage": to_stage,
            "payload": json.dumps(payload),
            "created_at": datetime.now(timezone.utc),
        },
    )


def list_connection_events(db, request_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT id, request_id, actor_user_id, event_type, from_stage, to_stage, payload, created_at
            FROM connection_event
            WHERE request_id = :request_id
            ORDER BY created_at ASC
            """
        ),
        {"request_id": request_id},
    ).mappings().all()
    out = []
    for r in rows:
        item = dict(r)
        if isinstance(item.get("payload"), str):
            item["payload"] = json.loads(item["payload"])
        out.append(item)
    return out
