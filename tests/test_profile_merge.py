import copy

from profile_merge import (
    compute_confidence_score,
    compute_profile_completion,
    derive_highest_education,
    empty_profile,
    merge_profile_data,
)


def cv_document(**parsed_overrides) -> dict:
    parsed_data = {
        "education": {
            "institutions": [
                {
                    "name": "University of Toronto",
                    "degree": "Bachelor of Science",
                    "field": "Computer Science",
                    "gpa": 3.7,
                    "startDate": "2018",
                    "endDate": "2022",
                }
            ]
        },
        "experience": {
            "positions": [
                {"title": "Software Intern", "company": "Shopify", "duration": "Summer 2021", "description": "Built APIs"}
            ]
        },
        "skills": {
            "technical": ["Python", "SQL"],
            "languages": [{"language": "English", "proficiency": "Native"}],
            "soft_skills": ["Leadership"],
        },
        "contact": {"email": "sam@example.com", "phone": "+1 416 555 0100"},
    }
    parsed_data.update(parsed_overrides)
    return {
        "user_id": "student-1",
        "document_id": "doc-cv",
        "document_type": "cv",
        "parsed_data": parsed_data,
        "confidence_score": 60,
    }


def test_merge_into_missing_profile_initializes_everything() -> None:
    profile = merge_profile_data(None, {"user_id": "student-1", "parsed_data": {}})

    assert profile["user_id"] == "student-1"
    assert profile["academic_background"]["highest_education"] == "Unknown"
    assert profile["skills"] == {"technical": [], "languages": [], "soft_skills": []}
    assert profile["experience"] == []
    assert profile["profile_completion"] == 0


def test_merge_cv_populates_profile() -> None:
    profile = merge_profile_data(None, cv_document())

    institution = profile["academic_background"]["institutions"][0]
    assert institution["name"] == "University of Toronto"
    assert institution["graduation_year"] == 2022
    assert profile["academic_background"]["highest_education"] == "Bachelors"
    assert profile["skills"]["technical"] == ["Python", "SQL"]
    assert profile["experience"][0]["company"] == "Shopify"
    assert profile["contact_info"]["email"] == "sam@example.com"
    # institutions, technical, languages, experience, email
    assert profile["profile_completion"] == 63


def test_highest_education_uses_precedence_over_all_degrees() -> None:
    profile = merge_profile_data(None, cv_document())
    masters = cv_document(
        education={"institutions": [{"name": "McGill University", "degree": "Master of Science", "field": "Data Science"}]}
    )
    profile = merge_profile_data(profile, masters)
    assert profile["academic_background"]["highest_education"] == "Masters"

    diploma = cv_document(education={"institutions": [{"name": "Seneca College", "degree": "Diploma"}]})
    profile = merge_profile_data(profile, diploma)
    assert profile["academic_background"]["highest_education"] == "Masters"
    assert len(profile["academic_background"]["institutions"]) == 3

    assert derive_highest_education(["Doctorate in Physics", "Bachelor"], "Unknown") == "PhD"
    assert derive_highest_education(["Certificate"], "Masters") == "Masters"


def test_gpa_is_last_write_wins_and_test_scores_append() -> None:
    first = {"user_id": "s", "parsed_data": {"academic_performance": {"overall_gpa": 3.8, "test_scores": [{"test_name": "GRE", "score": "320"}]}}}
    second = {"user_id": "s", "parsed_data": {"academic_performance": {"overall_gpa": 3.2, "test_scores": [{"test_name": "GRE", "score": "320"}]}}}

    profile = merge_profile_data(merge_profile_data(None, first), second)

    assert profile["academic_background"]["gpa"] == 3.2
    assert len(profile["academic_background"]["test_scores"]) == 2


def test_unparseable_gpa_keeps_stored_value() -> None:
    first = {"user_id": "s", "parsed_data": {"academic_performance": {"overall_gpa": "3.6"}}}
    second = {"user_id": "s", "parsed_data": {"academic_performance": {"overall_gpa": "3.8/4.0"}}}

    profile = merge_profile_data(merge_profile_data(None, first), second)

    assert profile["academic_background"]["gpa"] == 3.6
    assert merge_profile_data(None, second)["academic_background"]["gpa"] == 0.0


def test_skill_and_preference_sets_stay_unique() -> None:
    profile = merge_profile_data(None, cv_document())
    profile = merge_profile_data(
        profile,
        cv_document(skills={"technical": ["SQL", "Docker", "Python"], "soft_skills": ["Leadership", "Communication"]}),
    )
    statement = {
        "user_id": "student-1",
        "parsed_data": {
            "preferences": {"study_fields": ["Computer Science", "Data Science"], "career_goals": ["Research Scientist"]},
            "career_goals": ["Research Scientist", "Professor"],
        },
    }
    profile = merge_profile_data(profile, statement)
    profile = merge_profile_data(profile, statement)

    assert profile["skills"]["technical"] == ["Python", "SQL", "Docker"]
    assert profile["skills"]["soft_skills"] == ["Leadership", "Communication"]
    assert profile["preferences"]["study_fields"] == ["Computer Science", "Data Science"]
    assert profile["preferences"]["career_goals"] == ["Research Scientist", "Professor"]


def test_repeated_merge_appends_list_sections_again() -> None:
    document = cv_document()
    once = merge_profile_data(None, document)
    twice = merge_profile_data(once, document)
    thrice = merge_profile_data(twice, document)

    experience = [len(p["experience"]) for p in (once, twice, thrice)]
    languages = [len(p["skills"]["languages"]) for p in (once, twice, thrice)]
    assert experience == [1, 2, 3]
    assert languages == [1, 2, 3]
    assert len(thrice["academic_background"]["institutions"]) == 3


def test_preferred_countries_are_untouched_by_documents() -> None:
    existing = empty_profile("student-1")
    existing["preferences"]["preferred_countries"] = ["Ireland"]

    profile = merge_profile_data(existing, {"user_id": "student-1", "parsed_data": {"preferences": {"study_fields": ["Law"]}}})

    assert profile["preferences"]["preferred_countries"] == ["Ireland"]


def test_contact_is_shallow_merged() -> None:
    existing = empty_profile("student-1")
    existing["contact_info"] = {"email": "old@example.com", "phone": "555-0100", "address": "Toronto"}

    profile = merge_profile_data(
        existing,
        {"user_id": "student-1", "parsed_data": {"contact": {"email": "new@example.com", "linkedin": None}}},
    )

    assert profile["contact_info"] == {"email": "new@example.com", "phone": "555-0100", "address": "Toronto"}


def test_merge_does_not_mutate_existing_profile() -> None:
    existing = merge_profile_data(None, cv_document())
    snapshot = copy.deepcopy(existing)

    merge_profile_data(existing, cv_document())

    assert existing == snapshot


def test_completion_matches_eight_predicates() -> None:
    profile = empty_profile("student-1")
    assert compute_profile_completion(profile) == 0

    profile["academic_background"]["institutions"] = [{"name": "X"}]
    profile["academic_background"]["gpa"] = 3.1
    profile["skills"]["technical"] = ["Python"]
    assert compute_profile_completion(profile) == 38

    profile["skills"]["languages"] = [{"language": "English"}]
    profile["preferences"]["study_fields"] = ["Law"]
    profile["preferences"]["career_goals"] = ["Consultant"]
    profile["experience"] = [{"title": "Intern"}]
    profile["contact_info"] = {"email": "a@b.co"}
    assert compute_profile_completion(profile) == 100


def test_stored_completion_is_reproducible() -> None:
    profile = merge_profile_data(None, cv_document())
    profile = merge_profile_data(profile, {"user_id": "student-1", "parsed_data": {"career_goals": ["Entrepreneur"]}})

    assert profile["profile_completion"] == compute_profile_completion(profile)


def test_confidence_counts_only_present_signals() -> None:
    parsed = {
        "skills": {
            "technical": ["Python", "Java", "SQL", "Docker", "React", "AWS"],
            "languages": [{"language": "English"}, {"language": "French"}],
        },
        "contact": {"email": "sam@example.com"},
    }

    # technical skills 15 + email 10; languages are not a signal.
    assert compute_confidence_score(parsed, "short text") == 25
    assert compute_confidence_score(parsed, "x" * 501) == 35
    assert compute_confidence_score(parsed, "x" * 500) == 25


def test_confidence_is_full_with_every_signal() -> None:
    parsed = cv_document()["parsed_data"]
    parsed["academic_performance"] = {"overall_gpa": 3.7}
    parsed["preferences"] = {"study_fields": ["Computer Science"]}

    assert compute_confidence_score(parsed, "y" * 600) == 100
    assert compute_confidence_score({}, "") == 0
