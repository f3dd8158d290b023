"""
Notification copy.

Turns a notification type plus a few facts about the pairing into the
title, body and deep link shown in the notification bell.
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# TEMPLATES - one entry per notification type
# =============================================================================

NOTIFICATION_TEMPLATES: dict[str, dict[str, str]] = {
    "request": {
        "title": "New connection request from {actor_name}",
        "message": "{request_message}",
        "fallback_message": "Wants to connect with you",
        "link": "/messaging/request/{request_id}",
    },
    "request_approved": {
        "title": "{actor_name} accepted your request",
        "message": "Complete the compatibility questionnaire to start talking.",
        "link": "/messaging/compatibility/{request_id}",
    },
    "request_rejected": {
        "title": "{actor_name} declined your request",
        "message": "This connection request was declined.",
        "link": "/messaging",
    },
    "connection_rejected": {
        "title": "{actor_name} ended the connection",
        "message": "{rejection_reason}",
        "fallback_message": "This connection is no longer active.",
        "link": "/messaging",
    },
    "compatibility_completed": {
        "title": "Compatibility questionnaire complete",
        "message": "You and {actor_name} have both answered. You can now message each other.",
        "link": "/messaging/compatibility/{request_id}",
    },
    "connected": {
        "title": "You are connected with {actor_name}",
        "message": "{actor_name} skipped the questionnaire. You can now message each other.",
        "link": "/messaging/{actor_id}",
    },
    "questionnaire": {
        "title": "Questions from {actor_name}",
        "message": "You have pending questions to answer.",
        "link": "/messaging/questionnaire/{request_id}",
    },
    "questionnaire_answered": {
        "title": "{actor_name} answered your questions",
        "message": "View their answers.",
        "link": "/messaging/questionnaire/{request_id}",
    },
    "message": {
        "title": "New message from {actor_name}",
        "message": "{preview}",
        "fallback_message": "You have a new message.",
        "link": "/messaging/{actor_id}",
    },
}

PREVIEW_LENGTH = 80


class _SafeDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


def _preview(body: Any) -> str:
    text = str(body or "").strip()
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[: PREVIEW_LENGTH - 1].rstrip() + "…"


def render_notification(notification_type: str, context: dict[str, Any]) -> dict[str, str]:
    template = NOTIFICATION_TEMPLATES.get(notification_type)
    if template is None:
        raise KeyError(f"unknown notification type: {notification_type}")

    values = _SafeDict({k: "" if v is None else str(v) for k, v in context.items()})
    values.setdefault("actor_name", "Someone")
    if not values["actor_name"]:
        values["actor_name"] = "Someone"
    values["preview"] = _preview(context.get("body"))

    message = template["message"].format_map(values).strip()
    if not message:
        message = template.get("fallback_message", "")
    return {
        "title": template["title"].format_map(values).strip(),
        "message": message,
        "link": template["link"].format_map(values),
    }
