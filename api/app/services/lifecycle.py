"""
Connection lifecycle engine.

The only code path that mutates ``connection_stage``. Every operation runs
in a single session: the pairing row is locked, the transition is checked
against the state machine, the stage and an audit event are written, and
the session commits once. Notifications go out after the commit and are
best effort.
"""

from __future__ import annotations

import logging
from typing import Any

from app import profile_store, questionnaire_repo, repo, request_repo
from app.database import SessionLocal

from . import completion, notifications, validation
from .errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from .events import list_connection_events, log_connection_event
from .notifications import PendingNotification
from .state_machine import (
    ACTION_APPROVE,
    ACTION_COMPATIBILITY_COMPLETED,
    ACTION_DECLINE,
    ACTION_QUESTIONS_ANSWERED,
    ACTION_REJECT,
    ACTION_SEND_QUESTIONS,
    ACTION_SKIP,
    LIVE_STAGES,
    STAGE_ACCEPTED,
    STAGE_CONNECTED,
    STAGE_NONE,
    STAGE_QUESTIONNAIRE_COMPLETED,
    STAGE_REJECTED,
    STAGES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    can_message_stage,
    can_transition,
    transition_stage,
)

logger = logging.getLogger(__name__)

DECISIONS = {"approve": ACTION_APPROVE, "approved": ACTION_APPROVE, "reject": ACTION_DECLINE, "rejected": ACTION_DECLINE}


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def can_message(request: dict[str, Any] | None) -> bool:
    """Gate consulted by the messaging channel before accepting a send."""
    if not request:
        return False
    return request.get("request_status") == STATUS_APPROVED and can_message_stage(str(request.get("connection_stage")))


def counterpart_of(request: dict[str, Any], user_id: str) -> str:
    return str(request["receiver_id"]) if str(request["sender_id"]) == user_id else str(request["sender_id"])


def _is_participant(request: dict[str, Any], user_id: str) -> bool:
    return user_id in {str(request["sender_id"]), str(request["receiver_id"])}


def _load_request(db, request_id: str, *, lock: bool = False) -> dict[str, Any]:
    request = request_repo.get(db, request_id, lock=lock)
    if not request:
        raise NotFound("Connection request not found")
    return request


def _load_for_participant(db, request_id: str, user_id: str, *, lock: bool = False) -> dict[str, Any]:
    request = _load_request(db, request_id, lock=lock)
    if not _is_participant(request, user_id):
        raise Forbidden("You are not part of this connection")
    return request


def _transition(
    db,
    request: dict[str, Any],
    action: str,
    actor_id: str | None,
    *,
    rejection_reason: str | None = None,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    current = str(request["connection_stage"])
    target = transition_stage(current, action)
    if target != current:
        request.update(request_repo.update_stage(db, str(request["id"]), target, rejection_reason=rejection_reason))
        if rejection_reason:
            request["rejection_reason"] = rejection_reason
    log_connection_event(
        db,
        request_id=str(request["id"]),
        event_type=action,
        actor_user_id=actor_id,
        from_stage=current,
        to_stage=target,
        payload=payload,
    )
    logger.info("[lifecycle] request_id=%s action=%s %s -> %s actor=%s", request["id"], action, current, target, actor_id)
    return request


def _dispatch(pending: list[PendingNotification]) -> None:
    if pending:
        notifications.dispatch_all(pending)


def serialize_request(
    request: dict[str, Any],
    *,
    viewer_id: str | None = None,
    questionnaires: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    out = {
        "id": str(request["id"]),
        "sender_id": str(request["sender_id"]),
        "receiver_id": str(request["receiver_id"]),
        "message": request.get("message"),
        "request_status": request.get("request_status"),
        "connection_stage": request.get("connection_stage"),
        "rejection_reason": request.get("rejection_reason"),
        "created_at": request.get("created_at"),
        "updated_at": request.get("updated_at"),
        "can_message": can_message(request),
    }
    if viewer_id is not None and questionnaires is not None:
        out["has_unanswered_inbound_questions"] = any(
            str(q["receiver_id"]) == viewer_id and q["status"] == questionnaire_repo.STATUS_PENDING
            for q in questionnaires
        )
    return out


def serialize_questionnaire(questionnaire: dict[str, Any], viewer_id: str | None = None) -> dict[str, Any]:
    out = {
        "id": str(questionnaire["id"]),
        "request_id": str(questionnaire["request_id"]),
        "sender_id": str(questionnaire["sender_id"]),
        "receiver_id": str(questionnaire["receiver_id"]),
        "questions": questionnaire["questions"],
        "status": questionnaire["status"],
        "created_at": questionnaire.get("created_at"),
        "updated_at": questionnaire.get("updated_at"),
    }
    if viewer_id is not None:
        out["direction"] = "sent" if str(questionnaire["sender_id"]) == viewer_id else "received"
    return out


# ---------------------------------------------------------------------------
# requests
# ---------------------------------------------------------------------------


def create_request(sender_id: str, receiver_id: str, message: str | None = None) -> dict[str, Any]:
    if sender_id == receiver_id:
        raise ValidationError("Cannot send request to yourself")
    cleaned_message = validation.request_message(message)

    receiver = repo.get_user_by_id(receiver_id)
    if not receiver or receiver.get("disabled_at") or not receiver.get("profile_active"):
        raise NotFound("User not found or profile not active")

    with SessionLocal() as db:
        if request_repo.find_open_between(db, sender_id, receiver_id):
            raise Conflict("A connection request already exists between you")
        request = request_repo.create(db, sender_id=sender_id, receiver_id=receiver_id, message=cleaned_message)
        log_connection_event(
            db,
            request_id=request["id"],
            event_type="request_created",
            actor_user_id=sender_id,
            from_stage=None,
            to_stage=STAGE_NONE,
        )
        db.commit()

    _dispatch(
        [
            PendingNotification(
                receiver_id,
                "request",
                {"request_id": request["id"], "actor_id": sender_id, "request_message": cleaned_message},
                dedupe_key=f"request:{request['id']}",
            )
        ]
    )
    return serialize_request(request, viewer_id=sender_id, questionnaires=[])


def get_request(request_id: str, viewer_id: str) -> dict[str, Any]:
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, viewer_id)
        questionnaires = questionnaire_repo.list_for_request(db, request_id)
    out = serialize_request(request, viewer_id=viewer_id, questionnaires=questionnaires)
    out["counterpart"] = repo.get_user_public_profile(counterpart_of(request, viewer_id))
    return out


def list_requests(user_id: str, direction: str = "received") -> list[dict[str, Any]]:
    if direction not in {"sent", "received"}:
        raise ValidationError("type must be one of: sent, received")
    with SessionLocal() as db:
        rows = request_repo.list_for_user(db, user_id, direction)
        questionnaires = {str(r["id"]): questionnaire_repo.list_for_request(db, str(r["id"])) for r in rows}
    out = []
    for r in rows:
        item = serialize_request(r, viewer_id=user_id, questionnaires=questionnaires[str(r["id"])])
        item["counterpart"] = repo.get_user_public_profile(counterpart_of(r, user_id))
        out.append(item)
    return out


def accept_or_reject(request_id: str, actor_id: str, decision: str, rejection_reason: str | None = None) -> dict[str, Any]:
    action = DECISIONS.get(str(decision or "").strip().lower())
    if action is None:
        raise ValidationError('Invalid decision. Must be "approve" or "reject"')
    reason = validation.rejection_reason(rejection_reason) if action == ACTION_DECLINE else None

    with SessionLocal() as db:
        request = _load_request(db, request_id, lock=True)
        if str(request["receiver_id"]) != actor_id:
            raise Forbidden("Only the receiver can respond to this request")
        if request["request_status"] != STATUS_PENDING:
            raise InvalidState("Request has already been processed")
        request = _transition(db, request, action, actor_id, rejection_reason=reason)
        db.commit()

    notification_type = "request_approved" if action == ACTION_APPROVE else "request_rejected"
    _dispatch(
        [
            PendingNotification(
                str(request["sender_id"]),
                notification_type,
                {"request_id": request_id, "actor_id": actor_id},
                dedupe_key=f"{notification_type}:{request_id}",
            )
        ]
    )
    return serialize_request(request)


def reject_connection(request_id: str, actor_id: str, reason: str | None = None) -> dict[str, Any]:
    cleaned_reason = validation.rejection_reason(reason)
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, actor_id, lock=True)
        request = _transition(db, request, ACTION_REJECT, actor_id, rejection_reason=cleaned_reason)
        db.commit()

    _dispatch(
        [
            PendingNotification(
                counterpart_of(request, actor_id),
                "connection_rejected",
                {"request_id": request_id, "actor_id": actor_id, "rejection_reason": cleaned_reason},
                dedupe_key=f"connection_rejected:{request_id}",
            )
        ]
    )
    return serialize_request(request)


def skip_compatibility(request_id: str, actor_id: str) -> dict[str, Any]:
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, actor_id, lock=True)
        request = _transition(db, request, ACTION_SKIP, actor_id)
        db.commit()

    _dispatch(
        [
            PendingNotification(
                counterpart_of(request, actor_id),
                "connected",
                {"request_id": request_id, "actor_id": actor_id},
                dedupe_key=f"connected:{request_id}",
            )
        ]
    )
    return serialize_request(request)


def apply_client_update(
    request_id: str,
    actor_id: str,
    *,
    status: str | None = None,
    connection_stage: str | None = None,
    rejection_reason: str | None = None,
) -> dict[str, Any]:
    """Map an advisory client update onto the engine's own transitions."""
    if status:
        if status not in {STATUS_APPROVED, STATUS_REJECTED}:
            raise ValidationError('Invalid status. Must be "approved" or "rejected"')
        return accept_or_reject(request_id, actor_id, status, rejection_reason)
    if not connection_stage:
        raise ValidationError("Nothing to update")
    if connection_stage not in STAGES:
        raise ValidationError("Invalid connection stage")
    if connection_stage == STAGE_REJECTED:
        return reject_connection(request_id, actor_id, rejection_reason)
    if connection_stage == STAGE_CONNECTED:
        return skip_compatibility(request_id, actor_id)
    if connection_stage in {STAGE_ACCEPTED, STAGE_QUESTIONNAIRE_COMPLETED}:
        return recheck_compatibility(request_id, actor_id)
    return get_request(request_id, actor_id)


# ---------------------------------------------------------------------------
# compatibility questionnaire
# ---------------------------------------------------------------------------


def get_compatibility_profile(user_id: str) -> dict[str, Any]:
    with SessionLocal() as db:
        profile = profile_store.get_compatibility_profile(db, user_id)
    return {
        "religious_background": (profile or {}).get("religious_background"),
        "answers": profile_store.answers_only(profile),
        "completion": completion.completion_summary(profile),
    }


def submit_compatibility_answers(
    user_id: str,
    fields: dict[str, Any],
    religious_background: str | None = None,
) -> dict[str, Any]:
    """Write the user's answers, then re-check every accepted pairing they are in.

    The pairing rows are locked before the profile write so a counterpart
    submitting at the same time runs its check after this commit and sees
    these answers.
    """
    pending: list[PendingNotification] = []
    advanced: list[str] = []
    with SessionLocal() as db:
        pairings = request_repo.lock_accepted_for_user(db, user_id)
        existing = profile_store.get_compatibility_profile(db, user_id, lock=True)
        stored_background = (existing or {}).get("religious_background")
        if stored_background and religious_background and religious_background != stored_background:
            raise ValidationError("religious_background cannot be changed once set")
        background = stored_background or religious_background
        if not background:
            raise ValidationError("religious_background is required")

        cleaned = validation.compatibility_answers(fields, background)
        permitted = set(completion.allowed_fields(background))
        merged = {k: v for k, v in profile_store.answers_only(existing).items() if k in permitted and v}
        for key, value in cleaned.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        profile = profile_store.put_compatibility_profile(db, user_id, background, merged)

        for pairing in pairings:
            other_id = counterpart_of(pairing, user_id)
            other_profile = profile_store.get_compatibility_profile(db, other_id)
            if not completion.both_complete(profile, other_profile):
                continue
            _transition(db, pairing, ACTION_COMPATIBILITY_COMPLETED, user_id)
            advanced.append(str(pairing["id"]))
            for recipient, counterpart in ((user_id, other_id), (other_id, user_id)):
                pending.append(
                    PendingNotification(
                        recipient,
                        "compatibility_completed",
                        {"request_id": str(pairing["id"]), "actor_id": counterpart},
                        dedupe_key=f"compatibility_completed:{pairing['id']}",
                    )
                )
        db.commit()

    _dispatch(pending)
    return {
        "religious_background": background,
        "answers": profile_store.answers_only(profile),
        "completion": completion.completion_summary(profile),
        "advanced_request_ids": advanced,
    }


def recheck_compatibility(request_id: str, actor_id: str) -> dict[str, Any]:
    """Re-evaluate an accepted pairing against both current profiles."""
    pending: list[PendingNotification] = []
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, actor_id, lock=True)
        stage = str(request["connection_stage"])
        if stage == STAGE_REJECTED:
            raise InvalidState("This connection has been rejected")
        if stage == STAGE_NONE:
            raise InvalidState("Request must be accepted first")
        if can_transition(stage, ACTION_COMPATIBILITY_COMPLETED):
            sender_profile = profile_store.get_compatibility_profile(db, str(request["sender_id"]))
            receiver_profile = profile_store.get_compatibility_profile(db, str(request["receiver_id"]))
            if completion.both_complete(sender_profile, receiver_profile):
                request = _transition(db, request, ACTION_COMPATIBILITY_COMPLETED, actor_id, payload={"source": "recheck"})
                for recipient in (str(request["sender_id"]), str(request["receiver_id"])):
                    pending.append(
                        PendingNotification(
                            recipient,
                            "compatibility_completed",
                            {"request_id": request_id, "actor_id": counterpart_of(request, recipient)},
                            dedupe_key=f"compatibility_completed:{request_id}",
                        )
                    )
        questionnaires = questionnaire_repo.list_for_request(db, request_id)
        db.commit()

    _dispatch(pending)
    return serialize_request(request, viewer_id=actor_id, questionnaires=questionnaires)


def compatibility_status(request_id: str, viewer_id: str) -> dict[str, Any]:
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, viewer_id)
        sender_profile = profile_store.get_compatibility_profile(db, str(request["sender_id"]))
        receiver_profile = profile_store.get_compatibility_profile(db, str(request["receiver_id"]))

    both = completion.both_complete(sender_profile, receiver_profile)
    out: dict[str, Any] = {
        "request_id": request_id,
        "connection_stage": request["connection_stage"],
        "both_complete": both,
        "sender": {"user_id": str(request["sender_id"]), **completion.completion_summary(sender_profile)},
        "receiver": {"user_id": str(request["receiver_id"]), **completion.completion_summary(receiver_profile)},
    }
    if both:
        is_sender = str(request["sender_id"]) == viewer_id
        other = receiver_profile if is_sender else sender_profile
        out["counterpart_answers"] = profile_store.answers_only(other)
    return out


# ---------------------------------------------------------------------------
# custom questionnaires
# ---------------------------------------------------------------------------


def send_custom_questionnaire(request_id: str, sender_id: str, questions: list[Any]) -> dict[str, Any]:
    cleaned = validation.custom_questions(questions)
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, sender_id, lock=True)
        if request["connection_stage"] not in LIVE_STAGES:
            raise InvalidState("Request must be accepted first")
        if questionnaire_repo.get_for_sender(db, request_id, sender_id):
            raise Conflict("You have already sent a questionnaire for this request")
        receiver_id = counterpart_of(request, sender_id)
        questionnaire = questionnaire_repo.create(
            db,
            request_id=request_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            questions=cleaned,
        )
        _transition(db, request, ACTION_SEND_QUESTIONS, sender_id, payload={"questionnaire_id": questionnaire["id"]})
        db.commit()

    _dispatch(
        [
            PendingNotification(
                receiver_id,
                "questionnaire",
                {"request_id": request_id, "questionnaire_id": questionnaire["id"], "actor_id": sender_id},
                dedupe_key=f"questionnaire:{questionnaire['id']}",
            )
        ]
    )
    return {"questionnaire": serialize_questionnaire(questionnaire, sender_id), "request": serialize_request(request)}


def answer_custom_questionnaire(
    questionnaire_id: str,
    actor_id: str,
    answers: list[Any],
    request_id: str | None = None,
) -> dict[str, Any]:
    with SessionLocal() as db:
        found = questionnaire_repo.get(db, questionnaire_id)
        if not found or (request_id and str(found["request_id"]) != request_id):
            raise NotFound("Questionnaire not found")
        request = _load_for_participant(db, str(found["request_id"]), actor_id, lock=True)
        if str(found["receiver_id"]) != actor_id:
            raise Forbidden("You can only answer questionnaires sent to you")
        if request["connection_stage"] not in LIVE_STAGES:
            raise InvalidState("This connection is no longer active")

        questionnaire = questionnaire_repo.get(db, questionnaire_id, lock=True)
        if questionnaire["status"] == questionnaire_repo.STATUS_ANSWERED:
            raise Conflict("This questionnaire has already been answered")
        cleaned = validation.custom_answers(answers, len(questionnaire["questions"]))
        updated = questionnaire_repo.mark_answered(db, questionnaire_id, cleaned)

        counts = questionnaire_repo.count_answered_for_request(db, str(request["id"]))
        if counts["total"] >= 2 and counts["answered"] == counts["total"]:
            _transition(db, request, ACTION_QUESTIONS_ANSWERED, actor_id, payload={"questionnaire_id": questionnaire_id})
        db.commit()

    _dispatch(
        [
            PendingNotification(
                str(updated["sender_id"]),
                "questionnaire_answered",
                {"request_id": str(request["id"]), "questionnaire_id": questionnaire_id, "actor_id": actor_id},
                dedupe_key=f"questionnaire_answered:{questionnaire_id}",
            )
        ]
    )
    return {"questionnaire": serialize_questionnaire(updated, actor_id), "request": serialize_request(request)}


def list_questionnaires(request_id: str, viewer_id: str) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        request = _load_for_participant(db, request_id, viewer_id)
        if request["connection_stage"] not in LIVE_STAGES:
            raise InvalidState("Request must be accepted first")
        rows = questionnaire_repo.list_for_request(db, request_id)
    return [serialize_questionnaire(q, viewer_id) for q in rows]


def list_events(request_id: str, viewer_id: str) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        _load_for_participant(db, request_id, viewer_id)
        rows = list_connection_events(db, request_id)
    return [
        {
            "id": str(r["id"]),
            "event_type": r["event_type"],
            "actor_user_id": str(r["actor_user_id"]) if r.get("actor_user_id") else None,
            "from_stage": r.get("from_stage"),
            "to_stage": r.get("to_stage"),
            "payload": r.get("payload") or {},
            "created_at": r.get("created_at"),
        }
        for r in rows
    ]


# ---------------------------------------------------------------------------
# messaging gate
# ---------------------------------------------------------------------------


def find_messaging_pairing(user_id: str, other_user_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        return request_repo.find_messaging_pairing(db, user_id, other_user_id)
