from .errors import InvalidState

STAGE_NONE = "none"
STAGE_ACCEPTED = "accepted"
STAGE_QUESTIONNAIRE_SENT = "questionnaire_sent"
STAGE_QUESTIONNAIRE_COMPLETED = "questionnaire_completed"
STAGE_CONNECTED = "connected"
STAGE_REJECTED = "rejected"

STAGES = (
    STAGE_NONE,
    STAGE_ACCEPTED,
    STAGE_QUESTIONNAIRE_SENT,
    STAGE_QUESTIONNAIRE_COMPLETED,
    STAGE_CONNECTED,
    STAGE_REJECTED,
)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

ACTION_APPROVE = "approve"
ACTION_DECLINE = "decline"
ACTION_REJECT = "reject"
ACTION_SKIP = "skip"
ACTION_COMPATIBILITY_COMPLETED = "compatibility_completed"
ACTION_SEND_QUESTIONS = "send_questions"
ACTION_QUESTIONS_ANSWERED = "questions_answered"

# Stages where the pairing has been accepted and is still live.
LIVE_STAGES = frozenset(
    {STAGE_ACCEPTED, STAGE_QUESTIONNAIRE_SENT, STAGE_QUESTIONNAIRE_COMPLETED, STAGE_CONNECTED}
)
MESSAGING_STAGES = frozenset({STAGE_QUESTIONNAIRE_COMPLETED, STAGE_CONNECTED})

_TRANSITIONS: dict[tuple[str, str], str] = {
    (STAGE_NONE, ACTION_APPROVE): STAGE_ACCEPTED,
    (STAGE_NONE, ACTION_DECLINE): STAGE_REJECTED,
    (STAGE_ACCEPTED, ACTION_COMPATIBILITY_COMPLETED): STAGE_QUESTIONNAIRE_COMPLETED,
    (STAGE_ACCEPTED, ACTION_SKIP): STAGE_CONNECTED,
    # New batches after the first keep the stage; unread questions are
    # surfaced per viewer instead of regressing the messaging gate.
    (STAGE_ACCEPTED, ACTION_SEND_QUESTIONS): STAGE_QUESTIONNAIRE_SENT,
    (STAGE_QUESTIONNAIRE_SENT, ACTION_SEND_QUESTIONS): STAGE_QUESTIONNAIRE_SENT,
    (STAGE_QUESTIONNAIRE_COMPLETED, ACTION_SEND_QUESTIONS): STAGE_QUESTIONNAIRE_COMPLETED,
    (STAGE_CONNECTED, ACTION_SEND_QUESTIONS): STAGE_CONNECTED,
}
for _stage in (STAGE_NONE, *LIVE_STAGES):
    _TRANSITIONS[(_stage, ACTION_REJECT)] = STAGE_REJECTED
for _stage in LIVE_STAGES:
    _TRANSITIONS[(_stage, ACTION_QUESTIONS_ANSWERED)] = STAGE_QUESTIONNAIRE_COMPLETED


def request_status_for(stage: str) -> str:
    if stage == STAGE_NONE:
        return STATUS_PENDING
    if stage == STAGE_REJECTED:
        return STATUS_REJECTED
    if stage in LIVE_STAGES:
        return STATUS_APPROVED
    raise ValueError(f"unknown connection stage: {stage}")


def can_transition(current: str, action: str) -> bool:
    return (current, action) in _TRANSITIONS


def transition_stage(current: str, action: str) -> str:
    """Return the stage reached by applying ``action`` to ``current``.

    Rejected pairings are terminal: every action against them fails.
    """
    if current == STAGE_REJECTED:
        raise InvalidState("This connection has been rejected")
    target = _TRANSITIONS.get((current, action))
    if target is None:
        raise InvalidState(f"Cannot {action.replace('_', ' ')} while connection is {current.replace('_', ' ')}")
    return target


def can_message_stage(stage: str) -> bool:
    return stage in MESSAGING_STAGES
