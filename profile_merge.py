from __future__ import annotations

import copy
import math
import re
from typing import Any


CONFIDENCE_WEIGHTS = {
    "institutions": 20,
    "positions": 15,
    "technical_skills": 15,
    "email": 10,
    "overall_gpa": 15,
    "study_fields": 15,
    "long_text": 10,
}
LONG_TEXT_THRESHOLD = 500

# Highest match wins; "Doctorate" counts as a PhD.
EDUCATION_PRECEDENCE = [
    ("PhD", ("phd", "doctorate")),
    ("Masters", ("master",)),
    ("Bachelors", ("bachelor",)),
]

COMPLETION_PREDICATES = 8


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def _as_list(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def _union(existing: list[str], incoming: list[str]) -> list[str]:
    # Order of first appearance is kept so stored lists stay stable across merges.
    return list(dict.fromkeys([*existing, *incoming]))


def _round_percent(value: float) -> int:
    # Halves round up: 5 of 8 predicates is 63, not 62.
    return int(math.floor(value + 0.5))


def _parse_gpa(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_year(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = re.match(r"\s*(\d{4})", str(value))
    return int(match.group(1)) if match else None


def empty_profile(user_id: str | None = None) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "academic_background": {
            "highest_education": "Unknown",
            "gpa": 0.0,
            "institutions": [],
            "test_scores": [],
        },
        "skills": {
            "technical": [],
            "languages": [],
            "soft_skills": [],
        },
        "preferences": {
            "study_fields": [],
            "preferred_countries": [],
            "career_goals": [],
            "budget_range": None,
            "scholarship_required": False,
        },
        "experience": [],
        "contact_info": {},
        "profile_completion": 0,
    }


def normalize_profile(profile: dict[str, Any] | None, user_id: str | None = None) -> dict[str, Any]:
    """Return a deep copy of ``profile`` with every section and key present."""
    base = empty_profile(user_id)
    if not profile:
        return base

    source = copy.deepcopy(profile)
    base["user_id"] = source.get("user_id") or user_id
    for section in ("academic_background", "skills", "preferences"):
        base[section].update(_as_dict(source.get(section)))
    base["experience"] = _as_list(source.get("experience"))
    base["contact_info"] = _as_dict(source.get("contact_info"))
    base["profile_completion"] = int(source.get("profile_completion") or 0)
    for section, key in (
        ("academic_background", "institutions"),
        ("academic_background", "test_scores"),
        ("skills", "technical"),
        ("skills", "languages"),
        ("skills", "soft_skills"),
        ("preferences", "study_fields"),
        ("preferences", "preferred_countries"),
        ("preferences", "career_goals"),
    ):
        base[section][key] = _as_list(base[section].get(key))
    return base


def compute_confidence_score(parsed_data: dict[str, Any], text: str | None) -> int:
    parsed = _as_dict(parsed_data)
    signals = {
        "institutions": bool(_as_list(_as_dict(parsed.get("education")).get("institutions"))),
        "positions": bool(_as_list(_as_dict(parsed.get("experience")).get("positions"))),
        "technical_skills": bool(_as_list(_as_dict(parsed.get("skills")).get("technical"))),
        "email": bool(_as_dict(parsed.get("contact")).get("email")),
        "overall_gpa": bool(_as_dict(parsed.get("academic_performance")).get("overall_gpa")),
        "study_fields": bool(_as_list(_as_dict(parsed.get("preferences")).get("study_fields"))),
        "long_text": len(text or "") > LONG_TEXT_THRESHOLD,
    }

    score = sum(CONFIDENCE_WEIGHTS[name] for name, present in signals.items() if present)
    max_score = sum(CONFIDENCE_WEIGHTS.values())
    return _round_percent(score / max_score * 100)


def derive_highest_education(degrees: list[str], current: str) -> str:
    lowered = [str(degree or "").lower() for degree in degrees]
    for label, markers in EDUCATION_PRECEDENCE:
        if any(marker in degree for degree in lowered for marker in markers):
            return label
    return current


def compute_profile_completion(profile: dict[str, Any]) -> int:
    academic = _as_dict(profile.get("academic_background"))
    skills = _as_dict(profile.get("skills"))
    preferences = _as_dict(profile.get("preferences"))
    contact = _as_dict(profile.get("contact_info"))

    predicates = [
        bool(_as_list(academic.get("institutions"))),
        bool(academic.get("gpa")),
        bool(_as_list(skills.get("technical"))),
        bool(_as_list(skills.get("languages"))),
        bool(_as_list(preferences.get("study_fields"))),
        bool(_as_list(preferences.get("career_goals"))),
        bool(_as_list(profile.get("experience"))),
        bool(contact.get("email")),
    ]
    return _round_percent(sum(predicates) / COMPLETION_PREDICATES * 100)


def _merge_education(profile: dict[str, Any], parsed: dict[str, Any]) -> None:
    institutions = _as_dict(parsed.get("education")).get("institutions")
    if institutions is None:
        return

    academic = profile["academic_background"]
    for inst in _as_list(institutions):
        inst = _as_dict(inst)
        academic["institutions"].append(
            {
                "name": inst.get("name"),
                "degree": inst.get("degree"),
                "field": inst.get("field"),
                "gpa": inst.get("gpa"),
                "graduation_year": _parse_year(inst.get("endDate") or inst.get("graduation_year")),
            }
        )

    degrees = [inst.get("degree") or "" for inst in academic["institutions"]]
    academic["highest_education"] = derive_highest_education(degrees, academic.get("highest_education") or "Unknown")


def _merge_academic_performance(profile: dict[str, Any], parsed: dict[str, Any]) -> None:
    performance = parsed.get("academic_performance")
    if not isinstance(performance, dict):
        return

    academic = profile["academic_background"]
    gpa = _parse_gpa(performance.get("overall_gpa")) if performance.get("overall_gpa") else None
    if gpa is not None:
        academic["gpa"] = gpa
    if performance.get("test_scores") is not None:
        academic["test_scores"].extend(_as_list(performance.get("test_scores")))


def _merge_skills(profile: dict[str, Any], parsed: dict[str, Any]) -> None:
    skills = parsed.get("skills")
    if not isinstance(skills, dict):
        return

    target = profile["skills"]
    if skills.get("technical") is not None:
        target["technical"] = _union(target["technical"], _as_list(skills["technical"]))
    if skills.get("languages") is not None:
        target["languages"].extend(_as_list(skills["languages"]))
    if skills.get("soft_skills") is not None:
        target["soft_skills"] = _union(target["soft_skills"], _as_list(skills["soft_skills"]))


def _merge_preferences(profile: dict[str, Any], parsed: dict[str, Any]) -> None:
    target = profile["preferences"]
    preferences = parsed.get("preferences")
    if isinstance(preferences, dict):
        if preferences.get("study_fields") is not None:
            target["study_fields"] = _union(target["study_fields"], _as_list(preferences["study_fields"]))
        if preferences.get("career_goals") is not None:
            target["career_goals"] = _union(target["career_goals"], _as_list(preferences["career_goals"]))

    # Statements also carry a top-level goal list.
    if parsed.get("career_goals"):
        target["career_goals"] = _union(target["career_goals"], _as_list(parsed["career_goals"]))


def _merge_experience(profile: dict[str, Any], parsed: dict[str, Any]) -> None:
    positions = _as_dict(parsed.get("experience")).get("positions")
    if positions is None:
        return

    for pos in _as_list(positions):
        pos = _as_dict(pos)
        profile["experience"].append(
            {
                "title": pos.get("title"),
                "company": pos.get("company"),
                "duration": pos.get("duration"),
                "description": pos.get("description"),
            }
        )


def _merge_contact(profile: dict[str, Any], parsed: dict[str, Any]) -> None:
    contact = parsed.get("contact")
    if not isinstance(contact, dict):
        return
    profile["contact_info"].update({key: value for key, value in contact.items() if value is not None})


def merge_profile_data(existing_profile: dict[str, Any] | None, parsed_document: dict[str, Any]) -> dict[str, Any]:
    """Fold one parsed document into a profile and return the new profile.

    ``existing_profile`` is never mutated. List sections (institutions, test
    scores, languages, experience) are appended, so merging the same document
    twice stores its entries twice. Skill, study-field and career-goal lists
    are unions.
    """
    user_id = parsed_document.get("user_id")
    profile = normalize_profile(existing_profile, user_id=user_id)
    parsed = _as_dict(parsed_document.get("parsed_data"))

    _merge_education(profile, parsed)
    _merge_academic_performance(profile, parsed)
    _merge_skills(profile, parsed)
    _merge_preferences(profile, parsed)
    _merge_experience(profile, parsed)
    _merge_contact(profile, parsed)

    profile["profile_completion"] = compute_profile_completion(profile)
    return profile
