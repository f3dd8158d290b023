import logging
from dataclasses import dataclass, field
from typing import Any

from .. import repo
from .copy_templates import render_notification

logger = logging.getLogger(__name__)


@dataclass
class PendingNotification:
    user_id: str
    notification_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    dedupe_key: str | None = None


def notify(user_id: str, notification_type: str, payload: dict[str, Any] | None = None, *, dedupe_key: str | None = None) -> bool:
    """Persist a notification for ``user_id``. Best effort: never raises."""
    payload = payload or {}
    try:
        actor_id = payload.get("actor_id")
        context = dict(payload)
        if actor_id and not context.get("actor_name"):
            context["actor_name"] = repo.get_display_name(str(actor_id))
        rendered = render_notification(notification_type, context)
        repo.create_notification(
            user_id=user_id,
            notification_type=notification_type,
            title=rendered["title"],
            message=rendered["message"],
            link=rendered["link"],
            payload=payload,
            dedupe_key=dedupe_key,
        )
    except Exception:
        logger.exception("[notify] failed type=%s user_id=%s dedupe_key=%s", notification_type, user_id, dedupe_key)
        return False
    logger.info("[notify] queued type=%s user_id=%s", notification_type, user_id)
    return True


def dispatch_all(pending: list[PendingNotification]) -> int:
    sent = 0
    for item in pending:
        if notify(item.user_id, item.notification_type, item.payload, dedupe_key=item.dedupe_key):
            sent += 1
    return sent
