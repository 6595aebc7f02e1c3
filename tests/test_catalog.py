import re
from unittest.mock import Mock, patch

import pytest
import requests

from catalog import (
    APPLICATION_DEADLINES,
    COURSE_CATEGORIES,
    STUDY_LEVELS,
    HttpCatalogProvider,
    transform_university,
    university_code,
)
from errors import CatalogFetchFailure

RAW_ROWS = [
    {
        "name": "University of Toronto",
        "alpha_two_code": "CA",
        "country": "Canada",
        "domains": ["utoronto.ca"],
        "web_pages": ["https://www.utoronto.ca/"],
        "state-province": "Ontario",
    },
    {
        "name": "Technical University of Munich",
        "alpha_two_code": "DE",
        "country": "Germany",
        "domains": ["tum.de"],
        "web_pages": ["https://www.tum.de/"],
        "state-province": None,
    },
    {
        "name": "Universidad de Chile",
        "alpha_two_code": "CL",
        "country": "Chile",
        "domains": ["uchile.cl"],
        "web_pages": ["https://uchile.cl/"],
    },
]


def mock_response(payload=None, status_error=None) -> Mock:
    response = Mock()
    response.json.return_value = payload if payload is not None else RAW_ROWS
    if status_error:
        response.raise_for_status.side_effect = status_error
    else:
        response.raise_for_status.return_value = None
    return response


def make_provider() -> HttpCatalogProvider:
    return HttpCatalogProvider(url="https://catalog.test/universities.json", seed=7, timeout=5)


def test_transform_university_is_deterministic_for_a_seed() -> None:
    first = transform_university(RAW_ROWS[0], seed=42)
    second = transform_university(RAW_ROWS[0], seed=42)

    assert first == second


def test_transform_university_shape_and_ranges() -> None:
    university = transform_university(RAW_ROWS[0], seed=42)

    assert university["id"] == "university-of-toronto-canada"
    assert university["state_province"] == "Ontario"
    assert university["domains"] == ["utoronto.ca"]
    assert university["programs"] == university["courses"][:8]
    assert len(university["courses"]) == len(set(university["courses"]))

    rate = re.fullmatch(r"(\d+)%", university["acceptance_rate"])
    assert rate and 15 <= int(rate.group(1)) <= 84
    assert university["application_deadline"] in APPLICATION_DEADLINES

    requirements = university["requirements"]
    assert 2.5 <= requirements["gpa"] <= 4.0
    assert requirements["language_test"] in {"IELTS 6.5", "TOEFL 90"}
    assert 0 <= len(requirements["other_tests"]) <= 2

    assert 2 <= len(university["study_levels"]) <= 5
    assert set(university["study_levels"]) <= set(STUDY_LEVELS)
    assert university["tuition_range"] == "$12,000 - $35,000"
    assert university["international_fees"]["currency"] == "CAD"


def test_transform_university_uses_name_keywords_and_country_tables() -> None:
    munich = transform_university(RAW_ROWS[1], seed=42)

    assert "Computer Science" in munich["courses"]
    assert munich["requirements"]["language_test"] == "German B2 or IELTS 6.5"
    assert munich["international_fees"]["currency"] == "EUR"
    assert munich["state_province"] is None

    unknown = transform_university({"name": "Academia Example", "country": "Atlantis"}, seed=42)
    assert unknown["requirements"]["language_test"] == "IELTS 6.5"
    assert unknown["tuition_range"] == "$5,000 - $25,000"
    all_courses = {course for courses in COURSE_CATEGORIES.values() for course in courses}
    assert {"Business Administration", "Computer Science", "Mathematics", "Literature"} <= set(unknown["courses"])
    assert set(unknown["courses"]) - {"Business Administration", "Computer Science", "Mathematics", "Literature"} <= all_courses


def test_premium_names_get_premium_fees() -> None:
    harvard = transform_university({"name": "Harvard University", "country": "United States"}, seed=1)

    assert harvard["international_fees"]["tuition_fee"] == "$45,000 - $75,000"
    assert harvard["international_fees"]["total_estimate"] == "$60,000 - $95,000"


def test_university_code_slugifies_name_and_country() -> None:
    assert university_code("King's College London", "United Kingdom") == "king-s-college-london-united-kingdom"


def test_fetch_filters_allowed_countries_and_caches() -> None:
    provider = make_provider()

    with patch("catalog.requests.get", return_value=mock_response()) as get:
        rows = provider.fetch_universities()
        again = provider.fetch_universities()
        normalized = provider.universities()

    assert get.call_count == 1
    get.assert_called_once_with("https://catalog.test/universities.json", timeout=5)
    assert [row["name"] for row in rows] == ["University of Toronto", "Technical University of Munich"]
    assert again is rows
    assert [u["id"] for u in normalized] == [
        "university-of-toronto-canada",
        "technical-university-of-munich-germany",
    ]


def test_search_country_lookup_and_countries() -> None:
    provider = make_provider()

    with patch("catalog.requests.get", return_value=mock_response()):
        assert [row["name"] for row in provider.search("munich")] == ["Technical University of Munich"]
        assert [row["name"] for row in provider.search("ontario")] == ["University of Toronto"]
        assert [row["name"] for row in provider.by_country("canada")] == ["University of Toronto"]
        assert provider.countries() == ["Canada", "Germany"]


def test_network_failure_raises_catalog_fetch_failure() -> None:
    provider = make_provider()

    with patch("catalog.requests.get", side_effect=requests.ConnectionError("down")):
        with pytest.raises(CatalogFetchFailure) as excinfo:
            provider.universities()

    assert excinfo.value.retryable is True


def test_non_success_status_raises_and_is_not_cached() -> None:
    provider = make_provider()
    failing = mock_response(status_error=requests.HTTPError("503 Server Error"))

    with patch("catalog.requests.get", return_value=failing):
        with pytest.raises(CatalogFetchFailure):
            provider.fetch_universities()

    with patch("catalog.requests.get", return_value=mock_response()) as get:
        rows = provider.fetch_universities()

    assert get.call_count == 1
    assert len(rows) == 2


def test_non_list_payload_is_a_fetch_failure() -> None:
    provider = make_provider()

    with patch("catalog.requests.get", return_value=mock_response(payload={"error": "rate limited"})):
        with pytest.raises(CatalogFetchFailure):
            provider.fetch_universities()
