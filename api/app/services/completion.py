"""
Compatibility questionnaire completion rules.

The compatibility answers live on the user's profile, so one submission
counts for every pairing that user takes part in. These helpers are pure
and are re-run from either participant's submission path.
"""

from __future__ import annotations

from typing import Any, Mapping

BACKGROUND_MUSLIM = "Muslim"
BACKGROUND_NON_RELIGIOUS = "Non-religious"
BACKGROUND_OTHER = "Other"
RELIGIOUS_BACKGROUNDS = (BACKGROUND_MUSLIM, BACKGROUND_NON_RELIGIOUS, BACKGROUND_OTHER)

# Display order of the long-form answers.
ANSWER_FIELDS = (
    "marriage_understanding",
    "life_goals",
    "religious_practice_importance",
    "children_preference",
    "partner_traits",
    "marriage_roles",
    "work_life_balance",
    "conflict_resolution",
    "happy_home_vision",
    "deal_breakers",
    "spiritual_growth",
    "hobbies_interests",
    "sect_preference",
    "prayer_practice",
    "hijab_preference",
)

# Only stored for Muslim profiles.
MUSLIM_ONLY_FIELDS = frozenset(
    {
        "religious_practice_importance",
        "spiritual_growth",
        "sect_preference",
        "prayer_practice",
        "hijab_preference",
    }
)

REQUIRED_COMMON = ("marriage_understanding", "life_goals", "partner_traits", "hobbies_interests")
REQUIRED_MUSLIM = ("religious_practice_importance", "spiritual_growth", "sect_preference")
REQUIRED_NON_MUSLIM = ("children_preference", "conflict_resolution")

FIELD_LABELS = {
    "marriage_understanding": "Marriage Understanding",
    "life_goals": "Life Goals",
    "religious_practice_importance": "Religious Practice",
    "children_preference": "Children Preference",
    "partner_traits": "Partner Traits",
    "marriage_roles": "Marriage Roles",
    "work_life_balance": "Work-Life Balance",
    "conflict_resolution": "Conflict Resolution",
    "happy_home_vision": "Happy Home Vision",
    "deal_breakers": "Deal Breakers",
    "spiritual_growth": "Spiritual Growth",
    "hobbies_interests": "Hobbies & Interests",
    "sect_preference": "Sect Preference",
    "prayer_practice": "Prayer Practice",
    "hijab_preference": "Hijab Preference",
}


def is_muslim(background: str | None) -> bool:
    return background == BACKGROUND_MUSLIM


def required_fields(background: str | None) -> tuple[str, ...]:
    if is_muslim(background):
        return REQUIRED_COMMON + REQUIRED_MUSLIM
    return REQUIRED_COMMON + REQUIRED_NON_MUSLIM


def allowed_fields(background: str | None) -> tuple[str, ...]:
    if is_muslim(background):
        return ANSWER_FIELDS
    return tuple(f for f in ANSWER_FIELDS if f not in MUSLIM_ONLY_FIELDS)


def _filled(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def missing_fields(profile: Mapping[str, Any] | None) -> list[str]:
    if not profile:
        return ["religious_background", *required_fields(None)]
    background = profile.get("religious_background")
    missing: list[str] = []
    if background not in RELIGIOUS_BACKGROUNDS:
        missing.append("religious_background")
    for field in required_fields(background):
        if not _filled(profile.get(field)):
            missing.append(field)
    return missing


def is_complete(profile: Mapping[str, Any] | None) -> bool:
    return not missing_fields(profile)


def both_complete(profile_a: Mapping[str, Any] | None, profile_b: Mapping[str, Any] | None) -> bool:
    return is_complete(profile_a) and is_complete(profile_b)


def completion_summary(profile: Mapping[str, Any] | None) -> dict[str, Any]:
    missing = missing_fields(profile)
    background = (profile or {}).get("religious_background")
    required = required_fields(background)
    filled = len([f for f in required if f not in missing])
    return {
        "complete": not missing,
        "religious_background": background,
        "missing_fields": missing,
        "missing_labels": [FIELD_LABELS.get(f, "Religious Background") for f in missing],
        "percentage": round(100 * filled / len(required)) if required else 100,
    }
