from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any


WEIGHTS = {
    "academic_fit": 0.25,
    "program_fit": 0.30,
    "location_preference": 0.15,
    "financial_fit": 0.15,
    "requirements_fit": 0.15,
}

DEFAULT_REQUIRED_GPA = 2.5
DEFAULT_ACCEPTANCE_RATE = 50

REACH_LIMIT = 10
MATCH_LIMIT = 15
SAFETY_LIMIT = 10
TOP_LIMIT = 20
DEFAULT_SCAN_LIMIT = 500

RELATED_FIELDS = {
    "computer science": ["software engineering", "data science", "artificial intelligence", "cybersecurity"],
    "business": ["economics", "finance", "marketing", "management"],
    "engineering": ["mechanical engineering", "electrical engineering", "civil engineering"],
    "medicine": ["nursing", "public health", "pharmacy", "dentistry"],
    "psychology": ["sociology", "social work", "counseling"],
    "biology": ["biochemistry", "biotechnology", "marine biology", "environmental science"],
}

REGIONS = {
    "english_speaking": {"united states", "united kingdom", "canada", "australia", "new zealand", "ireland"},
    "european_union": {"germany", "france", "netherlands", "sweden", "denmark", "finland", "austria", "belgium"},
    "nordic": {"sweden", "norway", "denmark", "finland", "iceland"},
    "asia_pacific": {"japan", "south korea", "singapore", "hong kong", "taiwan"},
}

LOW_COST_COUNTRIES = {"germany", "france", "norway", "sweden", "finland"}
AFFORDABLE_TUITION_MARKERS = ("€500", "$3,000")

ENGLISH_TESTS = ("IELTS", "TOEFL")
LANGUAGE_TEST_RE = re.compile(r"\b(IELTS|TOEFL|DUOLINGO|PTE)\b\s*(\d{1,3}(?:\.\d)?)?", re.IGNORECASE)

REASONS = {
    "academic_fit": ("Strong academic profile match", "Academic requirements may be challenging"),
    "program_fit": ("Excellent program alignment with your interests", "Limited programs matching your field of interest"),
    "location_preference": ("Located in your preferred region", "Location may not align with your preferences"),
    "financial_fit": ("Good financial fit with scholarship opportunities", "May be financially challenging"),
    "requirements_fit": ("You meet all admission requirements", "Some admission requirements may need attention"),
}


@dataclass
class MatchingCriteria:
    academic_fit: float
    program_fit: float
    location_preference: float
    financial_fit: float
    requirements_fit: float

    def composite(self) -> int:
        total = sum(getattr(self, name) * weight for name, weight in WEIGHTS.items())
        # Halves round up; tiny float error is absorbed first.
        return int(math.floor(round(total, 6) + 0.5))


@dataclass
class UniversityMatch:
    university: dict[str, Any]
    match_score: int
    match_category: str  # reach | match | safety
    matching_criteria: MatchingCriteria
    match_reasons: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)

    @property
    def country(self) -> str:
        return str(self.university.get("country") or "")

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.university,
            "match_score": self.match_score,
            "match_category": self.match_category,
            "matching_criteria": asdict(self.matching_criteria),
            "match_reasons": list(self.match_reasons),
            "concerns": list(self.concerns),
        }


@dataclass
class MatchingRecommendations:
    total_matches: int
    reach_schools: list[UniversityMatch]
    match_schools: list[UniversityMatch]
    safety_schools: list[UniversityMatch]
    top_recommendations: list[UniversityMatch]
    insights: dict[str, list[str]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_matches": self.total_matches,
            "reach_schools": [m.to_dict() for m in self.reach_schools],
            "match_schools": [m.to_dict() for m in self.match_schools],
            "safety_schools": [m.to_dict() for m in self.safety_schools],
            "top_recommendations": [m.to_dict() for m in self.top_recommendations],
            "insights": {key: list(values) for key, values in self.insights.items()},
        }


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def _as_list(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _clamp(score: float) -> float:
    return min(100.0, max(0.0, score))


def student_gpa(profile: dict[str, Any]) -> float:
    return _to_float(_as_dict(profile.get("academic_background")).get("gpa"), 0.0) or 0.0


def required_gpa(university: dict[str, Any]) -> float:
    return _to_float(_as_dict(university.get("requirements")).get("gpa"), DEFAULT_REQUIRED_GPA) or DEFAULT_REQUIRED_GPA


def parse_acceptance_rate(value: Any) -> int:
    match = re.match(r"\s*(\d+)", str(value or ""))
    return int(match.group(1)) if match else DEFAULT_ACCEPTANCE_RATE


def parse_language_requirements(language_test: str | None) -> list[tuple[str, float | None]]:
    """Structured ``(test_name, minimum_score)`` pairs from a requirement string.

    ``"German B2 or IELTS 6.5"`` gives ``[("IELTS", 6.5)]``; tests named without
    a number keep ``None`` as their minimum.
    """
    pairs: list[tuple[str, float | None]] = []
    for name, minimum in LANGUAGE_TEST_RE.findall(language_test or ""):
        pairs.append((name.upper(), float(minimum) if minimum else None))
    return pairs


def _student_test_scores(profile: dict[str, Any]) -> dict[str, float]:
    scores: dict[str, float] = {}
    for entry in _as_list(_as_dict(profile.get("academic_background")).get("test_scores")):
        entry = _as_dict(entry)
        name = str(entry.get("test_name") or "").strip().upper()
        value = _to_float(entry.get("score"), -1.0)
        if name and value >= 0:
            scores[name] = max(value, scores.get(name, value))
    return scores


def score_academic(profile: dict[str, Any], university: dict[str, Any]) -> float:
    score = 50.0
    gpa = student_gpa(profile)
    required = required_gpa(university)

    if gpa >= required + 0.5:
        score += 30
    elif gpa >= required:
        score += 20
    elif gpa >= required - 0.3:
        score += 10
    else:
        score -= 20

    highest = str(_as_dict(profile.get("academic_background")).get("highest_education") or "").lower()
    levels = [str(level).lower() for level in _as_list(university.get("study_levels"))]
    if "bachelor" in highest and "master" in levels:
        score += 15
    elif "master" in highest and "doctoral" in levels:
        score += 15

    if _as_list(_as_dict(profile.get("academic_background")).get("test_scores")):
        score += 10

    return _clamp(score)


def _text_overlap(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def find_related_field_matches(study_fields: list[str], offerings: list[str]) -> list[str]:
    """Study fields that reach one of ``offerings`` only through ``RELATED_FIELDS``."""
    matched: list[str] = []
    for study_field in study_fields:
        field_lower = study_field.lower()
        for key, related in RELATED_FIELDS.items():
            if not (key in field_lower or field_lower in key):
                continue
            if any(_text_overlap(rel, offering) for rel in related for offering in offerings):
                matched.append(study_field)
                break
    return matched


def score_program(profile: dict[str, Any], university: dict[str, Any]) -> float:
    score = 30.0
    study_fields = [str(f) for f in _as_list(_as_dict(profile.get("preferences")).get("study_fields")) if str(f).strip()]
    courses = [str(c) for c in _as_list(university.get("courses"))]
    offerings = courses + [str(p) for p in _as_list(university.get("programs"))]

    if study_fields:
        direct = [f for f in study_fields if any(_text_overlap(f, offering) for offering in offerings)]
        score += 40 * (len(direct) / len(study_fields))

        remaining = [f for f in study_fields if f not in direct]
        related = find_related_field_matches(remaining, courses)
        score += 20 * (len(related) / len(study_fields))

    if len(courses) > 10:
        score += 10

    return _clamp(score)


def countries_share_region(first: str, second: str) -> bool:
    first, second = first.lower(), second.lower()
    return any(first in members and second in members for members in REGIONS.values())


def score_location(profile: dict[str, Any], university: dict[str, Any]) -> float:
    preferred = [str(c) for c in _as_list(_as_dict(profile.get("preferences")).get("preferred_countries")) if str(c).strip()]
    if not preferred:
        return 70.0

    score = 50.0
    country = str(university.get("country") or "").lower()
    if any(c.lower() == country for c in preferred):
        score += 40
    elif any(countries_share_region(c, country) for c in preferred):
        score += 20
    else:
        score -= 20
    return _clamp(score)


def tuition_is_affordable(tuition_fee: str, country: str) -> bool:
    if country.lower() in LOW_COST_COUNTRIES:
        return True
    if "free" in tuition_fee.lower():
        return True
    return any(marker in tuition_fee for marker in AFFORDABLE_TUITION_MARKERS)


def score_financial(profile: dict[str, Any], university: dict[str, Any]) -> float:
    score = 50.0
    fees = _as_dict(university.get("international_fees"))

    if _as_dict(profile.get("preferences")).get("scholarship_required"):
        if university.get("scholarships_available") or fees.get("scholarship_available"):
            score += 30
        else:
            score -= 30

    if tuition_is_affordable(str(fees.get("tuition_fee") or ""), str(university.get("country") or "")):
        score += 20

    return _clamp(score)


def english_requirement_met(profile: dict[str, Any], language_test: str | None) -> bool | None:
    """True/False when the student's scores can be compared, None when they cannot.

    Only requirements naming IELTS or TOEFL are considered; a student without a
    score on file for any named test is treated as meeting it.
    """
    requirements = [(name, minimum) for name, minimum in parse_language_requirements(language_test) if name in ENGLISH_TESTS]
    if not requirements:
        return None

    scores = _student_test_scores(profile)
    comparable = [(name, minimum) for name, minimum in requirements if name in scores]
    if not comparable:
        return True
    return any(minimum is None or scores[name] >= minimum for name, minimum in comparable)


def score_requirements(profile: dict[str, Any], university: dict[str, Any]) -> float:
    score = 60.0

    met = english_requirement_met(profile, _as_dict(university.get("requirements")).get("language_test"))
    if met is True:
        score += 20
    elif met is False:
        score -= 20

    if student_gpa(profile) >= required_gpa(university):
        score += 20
    else:
        score -= 20

    return _clamp(score)


def compute_criteria(profile: dict[str, Any], university: dict[str, Any]) -> MatchingCriteria:
    return MatchingCriteria(
        academic_fit=score_academic(profile, university),
        program_fit=score_program(profile, university),
        location_preference=score_location(profile, university),
        financial_fit=score_financial(profile, university),
        requirements_fit=score_requirements(profile, university),
    )


def determine_match_category(acceptance_rate: int, gpa: float, required: float, match_score: float) -> str:
    if acceptance_rate < 30 or gpa < required - 0.2 or match_score < 60:
        return "reach"
    if acceptance_rate > 70 and gpa > required + 0.3 and match_score > 80:
        return "safety"
    return "match"


def build_match_analysis(criteria: MatchingCriteria) -> tuple[list[str], list[str]]:
    reasons: list[str] = []
    concerns: list[str] = []
    for name in WEIGHTS:
        value = getattr(criteria, name)
        positive, negative = REASONS[name]
        if value > 70:
            reasons.append(positive)
        elif value < 50:
            concerns.append(negative)
    return reasons, concerns


def calculate_university_match(profile: dict[str, Any], university: dict[str, Any]) -> UniversityMatch:
    criteria = compute_criteria(profile, university)
    match_score = criteria.composite()
    category = determine_match_category(
        parse_acceptance_rate(university.get("acceptance_rate")),
        student_gpa(profile),
        required_gpa(university),
        match_score,
    )
    reasons, concerns = build_match_analysis(criteria)
    return UniversityMatch(
        university=university,
        match_score=match_score,
        match_category=category,
        matching_criteria=criteria,
        match_reasons=reasons,
        concerns=concerns,
    )


def top_countries(matches: list[UniversityMatch]) -> list[str]:
    # Counter keeps first-seen order for ties.
    counts = Counter(match.country for match in matches if match.country)
    return [country for country, _ in counts.most_common()]


def generate_insights(profile: dict[str, Any], top_matches: list[UniversityMatch]) -> dict[str, list[str]]:
    strongest: list[str] = []
    improvement: list[str] = []
    recommendations: list[str] = []

    gpa = student_gpa(profile)
    skills = _as_dict(profile.get("skills"))
    technical_count = len(_as_list(skills.get("technical")))
    language_count = len(_as_list(skills.get("languages")))

    if gpa > 3.5:
        strongest.append("Strong Academic Performance")
    if technical_count > 5:
        strongest.append("Diverse Technical Skills")
    if language_count > 1:
        strongest.append("Multilingual Abilities")

    if gpa < 3.0:
        improvement.append("Academic Performance")
        recommendations.append("Consider retaking courses to improve GPA")
    if technical_count < 3:
        improvement.append("Technical Skills")
        recommendations.append("Develop more technical skills relevant to your field")
    if not _as_list(_as_dict(profile.get("preferences")).get("study_fields")):
        improvement.append("Field Specialization")
        recommendations.append("Define your academic interests more clearly")

    countries = top_countries(top_matches)
    if countries:
        recommendations.append(f"Consider focusing on universities in {', '.join(countries[:3])}")

    average = sum(m.match_score for m in top_matches) / len(top_matches) if top_matches else 0.0
    if average > 80:
        recommendations.append("You have excellent university options - apply to a mix of reach and match schools")
    elif average > 60:
        recommendations.append("Consider improving your profile to access more competitive programs")
    else:
        recommendations.append("Focus on building a stronger academic and extracurricular profile")

    return {
        "strongest_areas": strongest,
        "improvement_areas": improvement,
        "recommendations": recommendations,
    }


def build_recommendations(
    profile: dict[str, Any],
    universities: list[dict[str, Any]],
    scan_limit: int = DEFAULT_SCAN_LIMIT,
) -> MatchingRecommendations:
    matches = [calculate_university_match(profile, university) for university in universities[:scan_limit]]
    # sorted() is stable, so equal scores keep catalog order.
    ranked = sorted(matches, key=lambda match: match.match_score, reverse=True)

    top = ranked[:TOP_LIMIT]
    return MatchingRecommendations(
        total_matches=len(ranked),
        reach_schools=[m for m in ranked if m.match_category == "reach"][:REACH_LIMIT],
        match_schools=[m for m in ranked if m.match_category == "match"][:MATCH_LIMIT],
        safety_schools=[m for m in ranked if m.match_category == "safety"][:SAFETY_LIMIT],
        top_recommendations=top,
        insights=generate_insights(profile, top),
    )
