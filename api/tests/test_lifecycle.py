import pytest

from app import repo
from app.services import lifecycle
from app.services.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError


def _approved_request(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b, "Salaam, would love to connect")
    lifecycle.accept_or_reject(created["id"], b, "approve")
    return created["id"], a, b


def test_create_request_starts_pending(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b, "  hello  ")

    assert created["request_status"] == "pending"
    assert created["connection_stage"] == "none"
    assert created["message"] == "hello"
    assert created["can_message"] is False


def test_create_request_guards(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    with pytest.raises(ValidationError):
        lifecycle.create_request(a, a)
    with pytest.raises(NotFound):
        lifecycle.create_request(a, "missing-user")

    lifecycle.create_request(a, b)
    with pytest.raises(Conflict):
        lifecycle.create_request(a, b)
    with pytest.raises(Conflict):
        lifecycle.create_request(b, a)


def test_create_request_to_inactive_profile_is_not_found(session_factory):
    a = repo.create_user("sender@example.com", "Sender")
    hidden = repo.create_user("hidden@example.com", "Hidden", profile_active=False)
    with pytest.raises(NotFound):
        lifecycle.create_request(a["id"], hidden["id"])


def test_only_receiver_can_decide(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b)

    with pytest.raises(Forbidden):
        lifecycle.accept_or_reject(created["id"], a, "approve")
    with pytest.raises(NotFound):
        lifecycle.accept_or_reject("nope", b, "approve")
    with pytest.raises(ValidationError):
        lifecycle.accept_or_reject(created["id"], b, "maybe")

    approved = lifecycle.accept_or_reject(created["id"], b, "approve")
    assert approved["request_status"] == "approved"
    assert approved["connection_stage"] == "accepted"

    with pytest.raises(InvalidState):
        lifecycle.accept_or_reject(created["id"], b, "reject")


def test_decline_is_terminal(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b)
    declined = lifecycle.accept_or_reject(created["id"], b, "reject", "Not a fit")

    assert declined["request_status"] == "rejected"
    assert declined["connection_stage"] == "rejected"
    assert declined["rejection_reason"] == "Not a fit"

    # A declined pairing no longer blocks a fresh request.
    again = lifecycle.create_request(a, b)
    assert again["id"] != created["id"]


def test_mutual_compatibility_scenario(users, muslim_answers):
    request_id, a, b = _approved_request(users)

    first = lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")
    assert first["completion"]["complete"] is True
    assert first["advanced_request_ids"] == []
    assert lifecycle.get_request(request_id, a)["connection_stage"] == "accepted"

    second = lifecycle.submit_compatibility_answers(b, muslim_answers, religious_background="Muslim")
    assert second["advanced_request_ids"] == [request_id]

    view = lifecycle.get_request(request_id, a)
    assert view["connection_stage"] == "questionnaire_completed"
    assert view["request_status"] == "approved"
    assert view["can_message"] is True


def test_mutual_compatibility_receiver_first(users, muslim_answers, non_religious_answers):
    request_id, a, b = _approved_request(users)

    first = lifecycle.submit_compatibility_answers(b, non_religious_answers, religious_background="Non-religious")
    assert first["completion"]["complete"] is True
    assert first["advanced_request_ids"] == []
    assert lifecycle.get_request(request_id, b)["connection_stage"] == "accepted"

    second = lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")
    assert second["advanced_request_ids"] == [request_id]

    view = lifecycle.get_request(request_id, b)
    assert view["connection_stage"] == "questionnaire_completed"
    assert view["can_message"] is True


def test_one_submission_counts_for_every_accepted_pairing(users, muslim_answers, non_religious_answers):
    a, b, c = users["alice"]["id"], users["bilal"]["id"], users["chen"]["id"]
    lifecycle.submit_compatibility_answers(b, muslim_answers, religious_background="Muslim")
    lifecycle.submit_compatibility_answers(c, non_religious_answers, religious_background="Non-religious")

    with_b = lifecycle.create_request(a, b)
    with_c = lifecycle.create_request(c, a)
    lifecycle.accept_or_reject(with_b["id"], b, "approve")
    lifecycle.accept_or_reject(with_c["id"], a, "approve")

    out = lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")
    assert sorted(out["advanced_request_ids"]) == sorted([with_b["id"], with_c["id"]])


def test_partial_submissions_merge_until_complete(users, muslim_answers):
    request_id, a, b = _approved_request(users)
    lifecycle.submit_compatibility_answers(b, muslim_answers, religious_background="Muslim")

    keys = list(muslim_answers)
    half = {k: muslim_answers[k] for k in keys[:3]}
    rest = {k: muslim_answers[k] for k in keys[3:]}

    out = lifecycle.submit_compatibility_answers(a, half, religious_background="Muslim")
    assert out["completion"]["complete"] is False
    assert out["advanced_request_ids"] == []

    out = lifecycle.submit_compatibility_answers(a, rest)
    assert out["completion"]["complete"] is True
    assert out["advanced_request_ids"] == [request_id]


def test_religious_background_is_required_and_immutable(users, muslim_answers):
    a = users["alice"]["id"]
    with pytest.raises(ValidationError):
        lifecycle.submit_compatibility_answers(a, muslim_answers)

    lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")
    with pytest.raises(ValidationError):
        lifecycle.submit_compatibility_answers(a, {}, religious_background="Other")

    assert lifecycle.get_compatibility_profile(a)["religious_background"] == "Muslim"


def test_muslim_only_fields_dropped_for_other_backgrounds(users, non_religious_answers):
    a = users["alice"]["id"]
    payload = {**non_religious_answers, "hijab_preference": "n/a", "sect_preference": "n/a"}
    out = lifecycle.submit_compatibility_answers(a, payload, religious_background="Non-religious")

    assert "hijab_preference" not in out["answers"]
    assert "sect_preference" not in out["answers"]
    assert out["completion"]["complete"] is True


def test_unknown_compatibility_fields_rejected(users):
    with pytest.raises(ValidationError):
        lifecycle.submit_compatibility_answers(users["alice"]["id"], {"favourite_colour": "blue"}, religious_background="Other")


def test_editing_answers_after_completion_does_not_regress_stage(users, muslim_answers):
    request_id, a, b = _approved_request(users)
    lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")
    lifecycle.submit_compatibility_answers(b, muslim_answers, religious_background="Muslim")

    out = lifecycle.submit_compatibility_answers(a, {"life_goals": ""})
    assert out["completion"]["complete"] is False
    assert lifecycle.get_request(request_id, a)["connection_stage"] == "questionnaire_completed"


def test_recheck_advances_when_both_profiles_already_complete(users, muslim_answers):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")
    lifecycle.submit_compatibility_answers(b, muslim_answers, religious_background="Muslim")

    created = lifecycle.create_request(a, b)
    with pytest.raises(InvalidState):
        lifecycle.recheck_compatibility(created["id"], a)

    lifecycle.accept_or_reject(created["id"], b, "approve")
    rechecked = lifecycle.recheck_compatibility(created["id"], a)
    assert rechecked["connection_stage"] == "questionnaire_completed"

    # No-op once past acceptance.
    assert lifecycle.recheck_compatibility(created["id"], b)["connection_stage"] == "questionnaire_completed"


def test_skip_connects_without_profiles(users):
    request_id, a, b = _approved_request(users)
    skipped = lifecycle.skip_compatibility(request_id, a)

    assert skipped["connection_stage"] == "connected"
    assert skipped["can_message"] is True
    with pytest.raises(InvalidState):
        lifecycle.skip_compatibility(request_id, b)


def test_skip_requires_participant_and_acceptance(users):
    a, b, c = users["alice"]["id"], users["bilal"]["id"], users["chen"]["id"]
    created = lifecycle.create_request(a, b)
    with pytest.raises(InvalidState):
        lifecycle.skip_compatibility(created["id"], a)

    lifecycle.accept_or_reject(created["id"], b, "approve")
    with pytest.raises(Forbidden):
        lifecycle.skip_compatibility(created["id"], c)


def test_reject_connection_is_terminal(users):
    request_id, a, b = _approved_request(users)
    lifecycle.skip_compatibility(request_id, a)

    rejected = lifecycle.reject_connection(request_id, b, "Moving on")
    assert rejected["connection_stage"] == "rejected"
    assert rejected["request_status"] == "rejected"
    assert rejected["rejection_reason"] == "Moving on"
    assert rejected["can_message"] is False

    with pytest.raises(InvalidState):
        lifecycle.reject_connection(request_id, a)
    with pytest.raises(InvalidState):
        lifecycle.skip_compatibility(request_id, a)
    with pytest.raises(InvalidState):
        lifecycle.send_custom_questionnaire(request_id, a, ["Still there?"])
    with pytest.raises(InvalidState):
        lifecycle.recheck_compatibility(request_id, a)


def test_client_update_is_advisory(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b)

    # A client claiming "connected" on a pending request cannot skip ahead.
    with pytest.raises(InvalidState):
        lifecycle.apply_client_update(created["id"], a, connection_stage="connected")

    approved = lifecycle.apply_client_update(created["id"], b, status="approved")
    assert approved["connection_stage"] == "accepted"

    # Claiming completion without profiles leaves the stage alone.
    assert lifecycle.apply_client_update(created["id"], a, connection_stage="questionnaire_completed")["connection_stage"] == "accepted"

    with pytest.raises(ValidationError):
        lifecycle.apply_client_update(created["id"], a, connection_stage="married")
    with pytest.raises(ValidationError):
        lifecycle.apply_client_update(created["id"], a)

    rejected = lifecycle.apply_client_update(created["id"], a, connection_stage="rejected", rejection_reason="bye")
    assert rejected["connection_stage"] == "rejected"


def test_list_requests_by_direction(users):
    a, b, c = users["alice"]["id"], users["bilal"]["id"], users["chen"]["id"]
    lifecycle.create_request(a, b)
    lifecycle.create_request(c, a)

    sent = lifecycle.list_requests(a, "sent")
    received = lifecycle.list_requests(a, "received")
    assert [r["receiver_id"] for r in sent] == [b]
    assert [r["sender_id"] for r in received] == [c]
    assert received[0]["counterpart"]["display_name"] == "Chen"

    with pytest.raises(ValidationError):
        lifecycle.list_requests(a, "both")


def test_get_request_is_participants_only(users):
    a, b, c = users["alice"]["id"], users["bilal"]["id"], users["chen"]["id"]
    created = lifecycle.create_request(a, b)
    with pytest.raises(Forbidden):
        lifecycle.get_request(created["id"], c)
    assert lifecycle.get_request(created["id"], b)["counterpart"]["id"] == a


def test_compatibility_status_hides_answers_until_both_complete(users, muslim_answers):
    request_id, a, b = _approved_request(users)
    lifecycle.submit_compatibility_answers(a, muslim_answers, religious_background="Muslim")

    status = lifecycle.compatibility_status(request_id, b)
    assert status["both_complete"] is False
    assert status["sender"]["complete"] is True
    assert status["receiver"]["complete"] is False
    assert "counterpart_answers" not in status

    lifecycle.submit_compatibility_answers(b, muslim_answers, religious_background="Muslim")
    status = lifecycle.compatibility_status(request_id, b)
    assert status["both_complete"] is True
    assert status["counterpart_answers"]["life_goals"] == muslim_answers["life_goals"]


def test_transitions_write_audit_events(users):
    request_id, a, b = _approved_request(users)
    lifecycle.skip_compatibility(request_id, a)

    events = lifecycle.list_events(request_id, b)
    assert [e["event_type"] for e in events] == ["request_created", "approve", "skip"]
    assert events[-1]["from_stage"] == "accepted"
    assert events[-1]["to_stage"] == "connected"
    assert events[-1]["actor_user_id"] == a


def test_failed_transition_leaves_no_trace(users):
    request_id, a, b = _approved_request(users)
    with pytest.raises(InvalidState):
        lifecycle.accept_or_reject(request_id, b, "approve")

    assert len(lifecycle.list_events(request_id, a)) == 2
    assert lifecycle.get_request(request_id, a)["connection_stage"] == "accepted"


def test_notifications_sent_to_counterparts(users):
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b, "hi there")
    lifecycle.accept_or_reject(created["id"], b, "approve")

    inbox_b = repo.list_notifications(b)
    inbox_a = repo.list_notifications(a)
    assert [n["type"] for n in inbox_b["notifications"]] == ["request"]
    assert inbox_b["notifications"][0]["title"] == "New connection request from Alice"
    assert inbox_b["notifications"][0]["message"] == "hi there"
    assert [n["type"] for n in inbox_a["notifications"]] == ["request_approved"]
    assert inbox_a["unread_count"] == 1


def test_notification_failure_does_not_roll_back_transition(users, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("notification store down")

    monkeypatch.setattr(repo, "create_notification", boom)
    a, b = users["alice"]["id"], users["bilal"]["id"]
    created = lifecycle.create_request(a, b)
    approved = lifecycle.accept_or_reject(created["id"], b, "approve")
    assert approved["connection_stage"] == "accepted"
