"""
Compatibility profile store.

Answers are keyed by user, not by pairing: a single write counts towards
every pairing the user takes part in.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text

from app.database import for_update


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_compatibility_profile(db, user_id: str, *, lock: bool = False) -> dict[str, Any] | None:
    """Return a flat profile: ``religious_background`` plus one key per answer."""
    row = db.execute(
        text(
            "SELECT user_id, religious_background, answers, updated_at FROM compatibility_profile WHERE user_id = :user_id"
            + (for_update(db) if lock else "")
        ),
        {"user_id": user_id},
    ).mappings().first()
    if not row:
        return None
    answers = row["answers"]
    if isinstance(answers, (str, bytes)):
        answers = json.loads(answers)
    return {
        **(answers or {}),
        "user_id": row["user_id"],
        "religious_background": row["religious_background"],
        "updated_at": row["updated_at"],
    }


def put_compatibility_profile(db, user_id: str, religious_background: str, answers: dict[str, str]) -> dict[str, Any]:
    """Replace the stored answers for ``user_id`` with ``answers``."""
    now = _now_utc()
    db.execute(
        text(
            """
            INSERT INTO compatibility_profile (user_id, religious_background, answers, updated_at)
            VALUES (:user_id, :religious_background, :answers, :now)
            ON CONFLICT (user_id) DO UPDATE
            SET religious_background = excluded.religious_background,
                answers = excluded.answers,
                updated_at = excluded.updated_at
            """
        ),
        {
            "user_id": user_id,
            "religious_background": religious_background,
            "answers": json.dumps(answers),
            "now": now,
        },
    )
    return {**answers, "user_id": user_id, "religious_background": religious_background, "updated_at": now}


def answers_only(profile: dict[str, Any] | None) -> dict[str, Any]:
    if not profile:
        return {}
    return {k: v for k, v in profile.items() if k not in {"user_id", "religious_background", "updated_at"}}
