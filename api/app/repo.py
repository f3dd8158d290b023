import json
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError

from app.config import CONVERSATION_PAGE_MAX
from app.database import SessionLocal


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_user(email: str, display_name: str | None = None, profile_active: bool = True) -> dict[str, Any] | None:
    user_id = str(uuid.uuid4())
    try:
        with SessionLocal() as db:
            db.execute(
                text(
                    """
                    INSERT INTO user_account (id, email, display_name, profile_active, created_at)
                    VALUES (:id, :email, :display_name, :profile_active, :created_at)
                    """
                ),
                {
                    "id": user_id,
                    "email": email.strip().lower(),
                    "display_name": display_name,
                    "profile_active": profile_active,
                    "created_at": _now_utc(),
                },
            )
            db.commit()
    except IntegrityError:
        return None
    return get_user_by_id(user_id)


def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(text("SELECT * FROM user_account WHERE id=:id"), {"id": user_id}).mappings().first()
    return dict(row) if row else None


def get_user_public_profile(user_id: str) -> dict[str, Any] | None:
    user = get_user_by_id(user_id)
    if not user:
        return None
    return {
        "id": str(user["id"]),
        "display_name": user.get("display_name") or str(user.get("email") or "").split("@")[0] or "Member",
    }


def get_display_name(user_id: str) -> str:
    profile = get_user_public_profile(user_id)
    return profile["display_name"] if profile else "Someone"


def disable_user(user_id: str) -> None:
    with SessionLocal() as db:
        db.execute(
            text("UPDATE user_account SET disabled_at=:now WHERE id=:id"),
            {"id": user_id, "now": _now_utc()},
        )
        db.commit()


def create_notification(
    *,
    user_id: str,
    notification_type: str,
    title: str,
    message: str,
    link: str | None,
    payload: dict[str, Any],
    dedupe_key: str | None = None,
) -> dict[str, Any] | None:
    notification_id = str(uuid.uuid4())
    with SessionLocal() as db:
        inserted = db.execute(
            text(
                """
                INSERT INTO notification (id, user_id, type, title, message, link, payload, dedupe_key, is_read, created_at)
                VALUES (:id, :user_id, :type, :title, :message, :link, :payload, :dedupe_key, :is_read, :created_at)
                ON CONFLICT (user_id, dedupe_key) DO NOTHING
                RETURNING id
                """
            ),
            {
                "id": notification_id,
                "user_id": user_id,
                "type": notification_type,
                "title": title,
                "message": message,
                "link": link,
                "payload": json.dumps(payload),
                "dedupe_key": dedupe_key,
                "is_read": False,
                "created_at": _now_utc(),
            },
        ).first()
        db.commit()
    if not inserted:
        return None
    return {"id": notification_id, "user_id": user_id, "type": notification_type, "title": title}


def _split_cursor(cursor: str | None) -> tuple[str | None, str | None]:
    # "<created_at>|<id>"; a bare created_at is accepted too
    if not cursor:
        return None, None
    created_at, _, last_id = cursor.rpartition("|")
    if not created_at:
        return last_id, None
    return created_at, last_id or None


def list_notifications(user_id: str, *, limit: int = 20, cursor: str | None = None) -> dict[str, Any]:
    cursor_at, cursor_id = _split_cursor(cursor)
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, type, title, message, link, is_read, created_at
                FROM notification
                WHERE user_id = :user_id
                  AND (
                    :cursor_at IS NULL
                    OR created_at < :cursor_at
                    OR (created_at = :cursor_at AND :cursor_id IS NOT NULL AND id < :cursor_id)
                  )
                ORDER BY created_at DESC, id DESC
                LIMIT :limit
                """
            ),
            {"user_id": user_id, "cursor_at": cursor_at, "cursor_id": cursor_id, "limit": limit},
        ).mappings().all()
        unread = db.execute(
            text("SELECT COUNT(*) FROM notification WHERE user_id = :user_id AND is_read = :is_read"),
            {"user_id": user_id, "is_read": False},
        ).scalar()
    items = [dict(r) for r in rows]
    for item in items:
        item["is_read"] = bool(item["is_read"])
    next_cursor = None
    if len(items) == limit:
        last = items[-1]
        next_cursor = f"{last['created_at']}|{last['id']}"
    return {
        "notifications": items,
        "unread_count": int(unread or 0),
        "next_cursor": next_cursor,
    }


def mark_notification_read(user_id: str, notification_id: str) -> bool:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE notification
                SET is_read = :is_read, read_at = COALESCE(read_at, :now)
                WHERE id = :id AND user_id = :user_id
                """
            ),
            {"id": notification_id, "user_id": user_id, "is_read": True, "now": _now_utc()},
        )
        db.commit()
    return result.rowcount > 0


def mark_all_notifications_read(user_id: str) -> int:
    with SessionLocal() as db:
        result = db.execute(
            text(
                """
                UPDATE notification
                SET is_read = :is_read, read_at = :now
                WHERE user_id = :user_id AND is_read = :unread
                """
            ),
            {"user_id": user_id, "is_read": True, "unread": False, "now": _now_utc()},
        )
        db.commit()
    return int(result.rowcount or 0)


def create_chat_message(*, request_id: str, sender_id: str, receiver_id: str, body: str) -> dict[str, Any]:
    message = {
        "id": str(uuid.uuid4()),
        "request_id": request_id,
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "body": body,
        "is_read": False,
        "created_at": _now_utc(),
    }
    with SessionLocal() as db:
        db.execute(
            text(
                """
                INSERT INTO chat_message (id, request_id, sender_id, receiver_id, body, is_read, created_at)
                VALUES (:id, :request_id, :sender_id, :receiver_id, :body, :is_read, :created_at)
                """
            ),
            message,
        )
        db.commit()
    return message


def get_conversation(user_id: str, other_user_id: str, limit: int = CONVERSATION_PAGE_MAX) -> list[dict[str, Any]]:
    """Return the newest ``limit`` messages between two users, oldest first.

    Only the incoming messages in the returned page are marked read.
    """
    with SessionLocal() as db:
        rows = db.execute(
            text(
                """
                SELECT id, request_id, sender_id, receiver_id, body, is_read, created_at
                FROM chat_message
                WHERE (sender_id = :a AND receiver_id = :b)
                   OR (sender_id = :b AND receiver_id = :a)
                ORDER BY created_at DESC, id DESC
                LIMIT :limit
                """
            ),
            {"a": user_id, "b": other_user_id, "limit": limit},
        ).mappings().all()
        unread_ids = [str(r["id"]) for r in rows if str(r["sender_id"]) == other_user_id and not r["is_read"]]
        if unread_ids:
            db.execute(
                text("UPDATE chat_message SET is_read = :is_read WHERE id IN :ids").bindparams(
                    bindparam("ids", expanding=True)
                ),
                {"ids": unread_ids, "is_read": True},
            )
        db.commit()
    out = [dict(r) for r in reversed(rows)]
    for item in out:
        item["is_read"] = bool(item["is_read"])
    return out
