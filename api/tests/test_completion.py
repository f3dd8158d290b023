from app.services.completion import (
    both_complete,
    completion_summary,
    is_complete,
    missing_fields,
)


def test_empty_profile_is_incomplete():
    assert not is_complete(None)
    assert not is_complete({})
    assert "religious_background" in missing_fields(None)


def test_muslim_profile_requires_faith_fields(muslim_answers):
    profile = {"religious_background": "Muslim", **muslim_answers}
    assert is_complete(profile)

    profile.pop("sect_preference")
    assert missing_fields(profile) == ["sect_preference"]


def test_non_muslim_profile_requires_family_fields(non_religious_answers):
    profile = {"religious_background": "Non-religious", **non_religious_answers}
    assert is_complete(profile)

    profile["conflict_resolution"] = "   "
    assert missing_fields(profile) == ["conflict_resolution"]


def test_other_background_uses_non_muslim_requirements(non_religious_answers):
    assert is_complete({"religious_background": "Other", **non_religious_answers})


def test_unknown_background_is_incomplete(non_religious_answers):
    profile = {"religious_background": "Pastafarian", **non_religious_answers}
    assert missing_fields(profile) == ["religious_background"]


def test_both_complete_needs_both_sides(muslim_answers, non_religious_answers):
    a = {"religious_background": "Muslim", **muslim_answers}
    b = {"religious_background": "Non-religious", **non_religious_answers}
    assert both_complete(a, b)
    assert not both_complete(a, None)
    assert not both_complete({"religious_background": "Muslim"}, b)


def test_completion_summary_reports_labels_and_percentage(muslim_answers):
    profile = {"religious_background": "Muslim", **muslim_answers}
    del profile["life_goals"]
    del profile["hobbies_interests"]

    summary = completion_summary(profile)
    assert summary["complete"] is False
    assert summary["missing_fields"] == ["life_goals", "hobbies_interests"]
    assert summary["missing_labels"] == ["Life Goals", "Hobbies & Interests"]
    assert summary["percentage"] == 71
