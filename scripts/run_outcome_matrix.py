from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalog import DatabaseCatalogProvider, HttpCatalogProvider
from db import db_session
from matching import build_recommendations
from profile_merge import compute_profile_completion, normalize_profile


def catalog_provider():
    if os.getenv("DATABASE_URL"):
        return DatabaseCatalogProvider(db_session)
    return HttpCatalogProvider()


def scenario_profiles() -> list[dict[str, Any]]:
    scenarios = [
        {
            "name": "Strong CS bachelor aiming for North America",
            "academic_background": {
                "highest_education": "Bachelors",
                "gpa": 3.8,
                "test_scores": [{"test_name": "IELTS", "score": 7.5}],
            },
            "skills": {
                "technical": ["Python", "Java", "SQL", "Docker", "React", "Machine Learning"],
                "languages": [{"language": "English", "proficiency": "Fluent"}, {"language": "Malay", "proficiency": "Native"}],
            },
            "preferences": {"study_fields": ["Computer Science"], "preferred_countries": ["Canada", "United States"]},
        },
        {
            "name": "Average business student needing scholarship",
            "academic_background": {"highest_education": "Bachelors", "gpa": 3.0},
            "skills": {"technical": ["Excel"]},
            "preferences": {
                "study_fields": ["Business", "Finance"],
                "preferred_countries": ["Germany"],
                "scholarship_required": True,
            },
        },
        {
            "name": "Low GPA with weak English score",
            "academic_background": {
                "highest_education": "Unknown",
                "gpa": 2.4,
                "test_scores": [{"test_name": "IELTS", "score": 5.5}],
            },
            "skills": {"technical": []},
            "preferences": {"study_fields": [], "preferred_countries": ["Australia"]},
        },
        {
            "name": "Masters graduate looking for doctoral programs",
            "academic_background": {"highest_education": "Masters", "gpa": 3.6},
            "skills": {"technical": ["R Studio", "Statistics", "Python"]},
            "preferences": {"study_fields": ["Biology", "Environmental Science"], "preferred_countries": ["Netherlands"]},
        },
    ]
    profiles = []
    for scenario in scenarios:
        profile = normalize_profile({key: value for key, value in scenario.items() if key != "name"}, user_id="demo")
        profile["profile_completion"] = compute_profile_completion(profile)
        profiles.append({"name": scenario["name"], "profile": profile})
    return profiles


def main() -> None:
    universities = catalog_provider().universities()
    for scenario in scenario_profiles():
        result = build_recommendations(scenario["profile"], universities)

        print(f"\n=== {scenario['name']} ===")
        print(
            f"Scanned: {result.total_matches} | reach={len(result.reach_schools)} "
            f"match={len(result.match_schools)} safety={len(result.safety_schools)}"
        )
        for idx, match in enumerate(result.top_recommendations[:3], start=1):
            print(f"{idx}. {match.university['name']} ({match.country}) score={match.match_score} tier={match.match_category}")
        for line in result.insights["recommendations"]:
            print(f"- {line}")


if __name__ == "__main__":
    main()
