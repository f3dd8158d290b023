import pytest

from app.services.errors import InvalidState
from app.services.state_machine import (
    ACTION_APPROVE,
    ACTION_COMPATIBILITY_COMPLETED,
    ACTION_DECLINE,
    ACTION_QUESTIONS_ANSWERED,
    ACTION_REJECT,
    ACTION_SEND_QUESTIONS,
    ACTION_SKIP,
    STAGES,
    can_message_stage,
    can_transition,
    request_status_for,
    transition_stage,
)

ALL_ACTIONS = (
    ACTION_APPROVE,
    ACTION_DECLINE,
    ACTION_REJECT,
    ACTION_SKIP,
    ACTION_COMPATIBILITY_COMPLETED,
    ACTION_SEND_QUESTIONS,
    ACTION_QUESTIONS_ANSWERED,
)

STAGE_ORDER = {
    "none": 0,
    "accepted": 1,
    "questionnaire_sent": 2,
    "questionnaire_completed": 2,
    "connected": 2,
    "rejected": 3,
}


def test_receiver_decision_from_none():
    assert transition_stage("none", ACTION_APPROVE) == "accepted"
    assert transition_stage("none", ACTION_DECLINE) == "rejected"


def test_skip_only_from_accepted():
    assert transition_stage("accepted", ACTION_SKIP) == "connected"
    for stage in ("none", "questionnaire_sent", "questionnaire_completed", "connected"):
        with pytest.raises(InvalidState):
            transition_stage(stage, ACTION_SKIP)


def test_send_questions_keeps_stage_past_first_batch():
    assert transition_stage("accepted", ACTION_SEND_QUESTIONS) == "questionnaire_sent"
    assert transition_stage("questionnaire_sent", ACTION_SEND_QUESTIONS) == "questionnaire_sent"
    assert transition_stage("questionnaire_completed", ACTION_SEND_QUESTIONS) == "questionnaire_completed"
    assert transition_stage("connected", ACTION_SEND_QUESTIONS) == "connected"
    with pytest.raises(InvalidState):
        transition_stage("none", ACTION_SEND_QUESTIONS)


def test_rejected_is_terminal_for_every_action():
    for action in ALL_ACTIONS:
        assert not can_transition("rejected", action)
        with pytest.raises(InvalidState):
            transition_stage("rejected", action)


def test_reject_allowed_from_every_non_terminal_stage():
    for stage in STAGES:
        if stage == "rejected":
            continue
        assert transition_stage(stage, ACTION_REJECT) == "rejected"


def test_stage_never_moves_backwards():
    for stage in STAGES:
        for action in ALL_ACTIONS:
            if not can_transition(stage, action):
                continue
            target = transition_stage(stage, action)
            assert STAGE_ORDER[target] >= STAGE_ORDER[stage], (stage, action, target)


def test_request_status_is_derived_from_stage():
    assert request_status_for("none") == "pending"
    assert request_status_for("rejected") == "rejected"
    for stage in ("accepted", "questionnaire_sent", "questionnaire_completed", "connected"):
        assert request_status_for(stage) == "approved"
    with pytest.raises(ValueError):
        request_status_for("bogus")


def test_can_message_only_after_completion_or_skip():
    allowed = {stage for stage in STAGES if can_message_stage(stage)}
    assert allowed == {"questionnaire_completed", "connected"}
