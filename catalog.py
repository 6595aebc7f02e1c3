from __future__ import annotations

import hashlib
import random
import re
from typing import Any, Callable, Iterable, Optional

import requests
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

import config
from errors import CatalogFetchFailure
from logger import get_logger
from models import University

logger = get_logger(component="catalog")


ALLOWED_COUNTRIES = frozenset(
    {
        "Australia",
        "China",
        "Hong Kong",
        "Macau",
        "Canada",
        "United States",
        "United States of America",
        "Ireland",
        "United Kingdom",
        "England",
        "Scotland",
        "Wales",
        "Northern Ireland",
        "Germany",
        "France",
        "Belgium",
        "Netherlands",
    }
)

COURSE_CATEGORIES: dict[str, list[str]] = {
    "Business & Management": [
        "Business Administration", "Marketing", "Finance", "Accounting", "International Business",
        "Entrepreneurship", "Human Resources", "Supply Chain Management", "Project Management", "Economics",
    ],
    "Engineering & Technology": [
        "Computer Science", "Software Engineering", "Electrical Engineering", "Mechanical Engineering",
        "Civil Engineering", "Chemical Engineering", "Aerospace Engineering", "Biomedical Engineering",
        "Data Science", "Artificial Intelligence", "Cybersecurity", "Information Technology",
    ],
    "Health & Medicine": [
        "Medicine", "Nursing", "Pharmacy", "Dentistry", "Veterinary Medicine", "Public Health",
        "Physical Therapy", "Occupational Therapy", "Medical Technology", "Health Administration", "Nutrition",
    ],
    "Arts & Humanities": [
        "Literature", "History", "Philosophy", "Art", "Music", "Theater", "Creative Writing", "Linguistics",
        "Archaeology", "Cultural Studies", "Fine Arts", "Graphic Design", "Film Studies",
    ],
    "Natural Sciences": [
        "Biology", "Chemistry", "Physics", "Mathematics", "Environmental Science", "Geology", "Astronomy",
        "Marine Biology", "Biotechnology", "Biochemistry", "Statistics", "Applied Mathematics",
    ],
    "Social Sciences": [
        "Psychology", "Sociology", "Political Science", "Anthropology", "International Relations",
        "Social Work", "Criminology", "Geography", "Urban Planning", "Public Administration",
    ],
    "Law & Legal Studies": [
        "Law", "Legal Studies", "Criminal Justice", "International Law", "Corporate Law",
        "Environmental Law", "Human Rights Law",
    ],
    "Education": [
        "Elementary Education", "Secondary Education", "Special Education", "Educational Psychology",
        "Curriculum Development", "Educational Leadership",
    ],
    "Communication & Media": [
        "Journalism", "Mass Communication", "Public Relations", "Broadcasting", "Digital Media",
        "Advertising", "Media Studies",
    ],
    "Agriculture & Environmental": [
        "Agriculture", "Forestry", "Environmental Studies", "Sustainable Development",
        "Agricultural Engineering", "Food Science", "Horticulture",
    ],
}

ALL_COURSES = sorted(course for courses in COURSE_CATEGORIES.values() for course in courses)

STUDY_LEVELS: dict[str, str] = {
    "certificate": "Certificate Programs",
    "diploma": "Diploma Programs",
    "associate": "Associate Degree",
    "bachelor": "Bachelor's Degree",
    "master": "Master's Degree",
    "doctoral": "Doctoral/PhD",
    "professional": "Professional Degrees",
}

# Keywords in an institution's name hint at what it teaches.
COURSE_KEYWORDS: dict[str, list[str]] = {
    "technology": ["Computer Science", "Information Technology", "Software Engineering", "Data Science"],
    "tech": ["Computer Science", "Information Technology", "Software Engineering", "Data Science"],
    "engineering": ["Mechanical Engineering", "Civil Engineering", "Electrical Engineering", "Chemical Engineering"],
    "medical": ["Medicine", "Nursing", "Public Health", "Medical Technology"],
    "medicine": ["Medicine", "Nursing", "Public Health", "Medical Technology"],
    "health": ["Public Health", "Nursing", "Health Administration", "Nutrition"],
    "business": ["Business Administration", "Marketing", "Finance", "Economics"],
    "management": ["Business Administration", "Project Management", "Human Resources"],
    "law": ["Law", "Legal Studies", "Criminal Justice"],
    "arts": ["Fine Arts", "Art", "Creative Writing", "Music"],
    "science": ["Biology", "Chemistry", "Physics", "Mathematics"],
    "agricultur": ["Agriculture", "Environmental Science", "Food Science"],
    "education": ["Elementary Education", "Secondary Education", "Educational Psychology"],
    "teacher": ["Elementary Education", "Secondary Education", "Educational Leadership"],
    "music": ["Music", "Theater", "Fine Arts"],
    "art": ["Fine Arts", "Art", "Graphic Design"],
    "design": ["Graphic Design", "Fine Arts", "Art"],
    "communication": ["Mass Communication", "Journalism", "Public Relations"],
    "journalism": ["Journalism", "Mass Communication", "Media Studies"],
    "psychology": ["Psychology", "Social Work", "Educational Psychology"],
    "social": ["Social Work", "Sociology", "Social Sciences"],
    "economics": ["Economics", "Business Administration", "Finance"],
    "finance": ["Finance", "Economics", "Business Administration"],
    "nursing": ["Nursing", "Public Health", "Health Administration"],
    "pharmacy": ["Pharmacy", "Medicine", "Biochemistry"],
    "dental": ["Dentistry", "Medicine", "Public Health"],
    "veterinary": ["Veterinary Medicine", "Biology", "Animal Science"],
    "environmental": ["Environmental Science", "Environmental Studies", "Sustainable Development"],
    "marine": ["Marine Biology", "Biology", "Environmental Science"],
    "international": ["International Relations", "International Business", "International Law"],
    "public": ["Public Administration", "Public Health", "Public Relations"],
    "applied": ["Applied Mathematics", "Applied Sciences", "Engineering"],
    "research": ["Research", "Biology", "Chemistry", "Physics"],
    "institute": ["Research", "Technology", "Science"],
    "polytechnic": ["Engineering", "Technology", "Applied Sciences"],
    "college": ["Liberal Arts", "General Studies", "Education"],
}

GENERAL_UNIVERSITY_COURSES = [
    "Business Administration", "Computer Science", "Psychology", "Biology",
    "Mathematics", "History", "Economics", "Literature",
]
DEFAULT_COURSES = ["Business Administration", "Computer Science", "Mathematics", "Literature"]

ENGLISH_SPEAKING_COUNTRIES = frozenset(
    {
        "United States", "United States of America", "United Kingdom", "England", "Scotland",
        "Wales", "Northern Ireland", "Canada", "Australia", "Ireland",
    }
)

LANGUAGE_TESTS = {
    "Germany": "German B2 or IELTS 6.5",
    "France": "French B2 or IELTS 6.5",
    "Belgium": "Dutch/French B2 or IELTS 6.5",
    "Netherlands": "IELTS 6.5",
    "China": "HSK 4 or IELTS 6.0",
    "Hong Kong": "IELTS 6.0",
    "Macau": "Chinese/Portuguese B2 or IELTS 6.0",
}

TUITION_RANGES = {
    "United States": "$20,000 - $60,000",
    "United States of America": "$20,000 - $60,000",
    "United Kingdom": "$15,000 - $45,000",
    "England": "$15,000 - $45,000",
    "Scotland": "$15,000 - $45,000",
    "Wales": "$15,000 - $45,000",
    "Northern Ireland": "$15,000 - $45,000",
    "Canada": "$12,000 - $35,000",
    "Australia": "$18,000 - $50,000",
    "Germany": "$500 - $3,000",
    "France": "$200 - $15,000",
    "Netherlands": "$2,000 - $20,000",
    "Belgium": "$1,000 - $15,000",
    "Ireland": "$10,000 - $30,000",
    "China": "$3,000 - $15,000",
    "Hong Kong": "$15,000 - $30,000",
    "Macau": "$8,000 - $20,000",
}
DEFAULT_TUITION_RANGE = "$5,000 - $25,000"

APPLICATION_DEADLINES = [
    "2025-01-15", "2025-02-01", "2025-03-15", "2025-04-01",
    "2025-05-15", "2025-06-01", "2025-12-01", "2025-11-15",
]

OTHER_TESTS = ["SAT", "GRE", "GMAT", "MCAT", "LSAT"]

PREMIUM_NAME_MARKERS = ("harvard", "oxford", "cambridge", "stanford")
PRIVATE_NAME_MARKERS = ("private", "international")

# (tuition, total) per tier. A tier a country lacks falls through to the next
# cheaper one: premium, then private, then public.
_US_FEES = {
    "currency": "USD",
    "application_fee": "$50 - $150",
    "living_costs": "$12,000 - $20,000",
    "tiers": {
        "premium": ("$45,000 - $75,000", "$60,000 - $95,000"),
        "private": ("$25,000 - $55,000", "$40,000 - $75,000"),
        "public": ("$15,000 - $35,000", "$30,000 - $55,000"),
    },
}


def _uk_fees(living_costs: str, premium_total: str, private_total: str, public_total: str) -> dict[str, Any]:
    return {
        "currency": "GBP",
        "application_fee": "£20 - £75",
        "living_costs": living_costs,
        "tiers": {
            "premium": ("£25,000 - £45,000", premium_total),
            "private": ("£18,000 - £35,000", private_total),
            "public": ("£12,000 - £25,000", public_total),
        },
    }


FEE_STRUCTURES: dict[str, dict[str, Any]] = {
    "United States": _US_FEES,
    "United States of America": _US_FEES,
    "United Kingdom": _uk_fees("£10,000 - £15,000", "£35,000 - £60,000", "£28,000 - £50,000", "£22,000 - £40,000"),
    "England": _uk_fees("£10,000 - £15,000", "£35,000 - £60,000", "£28,000 - £50,000", "£22,000 - £40,000"),
    "Scotland": _uk_fees("£9,000 - £14,000", "£34,000 - £59,000", "£27,000 - £49,000", "£21,000 - £39,000"),
    "Wales": _uk_fees("£9,000 - £13,000", "£34,000 - £58,000", "£27,000 - £48,000", "£21,000 - £38,000"),
    "Northern Ireland": _uk_fees("£8,000 - £12,000", "£33,000 - £57,000", "£26,000 - £47,000", "£20,000 - £37,000"),
    "Canada": {
        "currency": "CAD",
        "application_fee": "$50 - $200",
        "living_costs": "$12,000 - $18,000",
        "tiers": {
            "premium": ("$35,000 - $60,000", "$50,000 - $78,000"),
            "private": ("$20,000 - $45,000", "$35,000 - $63,000"),
            "public": ("$12,000 - $30,000", "$25,000 - $48,000"),
        },
    },
    "Australia": {
        "currency": "AUD",
        "application_fee": "$50 - $150",
        "living_costs": "$15,000 - $25,000",
        "tiers": {
            "premium": ("$40,000 - $65,000", "$55,000 - $90,000"),
            "private": ("$25,000 - $50,000", "$40,000 - $75,000"),
            "public": ("$18,000 - $35,000", "$33,000 - $60,000"),
        },
    },
    "Germany": {
        "currency": "EUR",
        "application_fee": "€50 - €150",
        "living_costs": "€8,000 - €12,000",
        "tiers": {
            "private": ("€15,000 - €35,000", "€23,000 - €47,000"),
            "public": ("€500 - €3,500", "€8,500 - €15,500"),
        },
    },
    "France": {
        "currency": "EUR",
        "application_fee": "€30 - €100",
        "living_costs": "€9,000 - €15,000",
        "tiers": {
            "private": ("€8,000 - €25,000", "€17,000 - €40,000"),
            "public": ("€2,770 - €3,770", "€12,000 - €19,000"),
        },
    },
    "Netherlands": {
        "currency": "EUR",
        "application_fee": "€50 - €100",
        "living_costs": "€10,000 - €15,000",
        "tiers": {
            "premium": ("€15,000 - €25,000", "€25,000 - €40,000"),
            "public": ("€8,000 - €18,000", "€18,000 - €33,000"),
        },
    },
    "Belgium": {
        "currency": "EUR",
        "application_fee": "€50 - €100",
        "living_costs": "€8,000 - €12,000",
        "tiers": {
            "private": ("€8,000 - €20,000", "€16,000 - €32,000"),
            "public": ("€835 - €4,175", "€9,000 - €16,000"),
        },
    },
    "Ireland": {
        "currency": "EUR",
        "application_fee": "€50 - €150",
        "living_costs": "€9,000 - €15,000",
        "tiers": {
            "premium": ("€20,000 - €35,000", "€29,000 - €50,000"),
            "public": ("€10,000 - €25,000", "€19,000 - €40,000"),
        },
    },
    "China": {
        "currency": "CNY",
        "application_fee": "¥400 - 800",
        "living_costs": "¥20,000 - 40,000",
        "tiers": {
            "private": ("¥30,000 - 80,000", "¥50,000 - 120,000"),
            "public": ("¥15,000 - 40,000", "¥35,000 - 80,000"),
        },
    },
    "Hong Kong": {
        "currency": "HKD",
        "application_fee": "HK$300 - 500",
        "living_costs": "HK$80,000 - 120,000",
        "tiers": {"public": ("HK$140,000 - 280,000", "HK$220,000 - 400,000")},
    },
    "Macau": {
        "currency": "MOP",
        "application_fee": "MOP$200 - 500",
        "living_costs": "MOP$40,000 - 80,000",
        "tiers": {"public": ("MOP$50,000 - 120,000", "MOP$90,000 - 200,000")},
    },
}

DEFAULT_FEES: dict[str, Any] = {
    "currency": "EUR",
    "application_fee": "€50 - €150",
    "living_costs": "€6,000 - €12,000",
    "tiers": {
        "private": ("€8,000 - €25,000", "€14,000 - €37,000"),
        "public": ("€3,000 - €15,000", "€9,000 - €27,000"),
    },
}


def university_code(name: str, country: str) -> str:
    return f"{re.sub(r'[^a-z0-9]', '-', name.lower())}-{re.sub(r'[^a-z0-9]', '-', country.lower())}"


def _rng_for(name: str, country: str, seed: int) -> random.Random:
    digest = hashlib.sha256(f"{seed}|{name}|{country}".encode("utf-8")).hexdigest()
    return random.Random(int(digest[:16], 16))


def extract_courses(name: str, rng: random.Random) -> list[str]:
    lowered = name.lower()
    courses: list[str] = []
    for keyword, keyword_courses in COURSE_KEYWORDS.items():
        if keyword in lowered:
            courses.extend(keyword_courses)

    if not courses:
        if "university" in lowered or "college" in lowered:
            courses.extend(GENERAL_UNIVERSITY_COURSES)
        elif "institute" in lowered:
            courses.extend(["Computer Science", "Engineering", "Research", "Technology", "Applied Sciences", "Data Science"])
        else:
            courses.extend(DEFAULT_COURSES)

    extra_pool = [course for course in ALL_COURSES if course not in courses]
    courses.extend(rng.sample(extra_pool, rng.randint(2, 6)))
    return list(dict.fromkeys(courses))


def _fee_tier(country: str, name: str, rng: random.Random) -> str:
    lowered = name.lower()
    # Both draws always happen so later fields do not shift with the name.
    private_roll, premium_roll = rng.random(), rng.random()
    is_private = any(m in lowered for m in PRIVATE_NAME_MARKERS) or private_roll > 0.7
    is_premium = any(m in lowered for m in PREMIUM_NAME_MARKERS) or premium_roll > 0.9

    tiers = FEE_STRUCTURES.get(country, DEFAULT_FEES)["tiers"]
    if is_premium and "premium" in tiers:
        return "premium"
    if is_private and "private" in tiers:
        return "private"
    return "public"


def generate_international_fees(country: str, name: str, rng: random.Random) -> dict[str, Any]:
    structure = FEE_STRUCTURES.get(country, DEFAULT_FEES)
    tuition_fee, total_estimate = structure["tiers"][_fee_tier(country, name, rng)]
    scholarship_available = rng.random() > 0.4
    aid_roll = rng.random()
    aid_percentage = rng.randint(10, 59)
    return {
        "tuition_fee": tuition_fee,
        "application_fee": structure["application_fee"],
        "living_costs": structure["living_costs"],
        "total_estimate": total_estimate,
        "currency": structure["currency"],
        "scholarship_available": scholarship_available,
        "financial_aid_percentage": f"{aid_percentage}%" if aid_roll > 0.6 else None,
    }


def language_test_for(country: str, rng: random.Random) -> str:
    if country in ENGLISH_SPEAKING_COUNTRIES:
        return "IELTS 6.5" if rng.random() > 0.5 else "TOEFL 90"
    return LANGUAGE_TESTS.get(country, "IELTS 6.5")


def transform_university(raw: dict[str, Any], seed: int) -> dict[str, Any]:
    """Normalize one raw catalog row into the University shape used by matching.

    Enrichment fields (fees, acceptance rate, deadline, requirements, levels)
    are drawn from a generator seeded by ``seed`` and the row's name/country,
    so the same row always yields the same University.
    """
    name = str(raw.get("name") or "").strip()
    country = str(raw.get("country") or "").strip()
    state_province = raw.get("state-province") or raw.get("state_province")
    rng = _rng_for(name, country, seed)

    courses = extract_courses(name, rng)
    fees = generate_international_fees(country, name, rng)
    acceptance_rate = f"{rng.randint(15, 84)}%"
    deadline = rng.choice(APPLICATION_DEADLINES)
    scholarships_available = rng.random() > 0.3
    gpa = round(rng.random() * 1.5 + 2.5, 1)
    language_test = language_test_for(country, rng)
    other_tests = rng.sample(OTHER_TESTS, rng.randint(0, 2))
    study_levels = rng.sample(list(STUDY_LEVELS), rng.randint(2, 5))

    location = f"{country}, {state_province}" if state_province else country
    return {
        "id": university_code(name, country),
        "name": name,
        "country": country,
        "state_province": state_province,
        "description": f"{name} is an institution located in {location}.",
        "domains": list(raw.get("domains") or []),
        "web_pages": list(raw.get("web_pages") or []),
        "programs": courses[:8],
        "courses": courses,
        "study_levels": study_levels,
        "tuition_range": TUITION_RANGES.get(country, DEFAULT_TUITION_RANGE),
        "international_fees": fees,
        "acceptance_rate": acceptance_rate,
        "application_deadline": deadline,
        "scholarships_available": scholarships_available,
        "requirements": {"gpa": gpa, "language_test": language_test, "other_tests": other_tests},
    }


class HttpCatalogProvider:
    """University catalog loaded from the public university-domains list.

    The raw list is fetched once per provider and kept in memory; the
    normalized catalog is derived from it on first use.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        allowed_countries: Iterable[str] = ALLOWED_COUNTRIES,
        seed: Optional[int] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.url = url or config.catalog_url()
        self.allowed_countries = frozenset(allowed_countries)
        self.seed = config.catalog_seed() if seed is None else seed
        self.timeout = config.http_timeout() if timeout is None else timeout
        self._raw: Optional[list[dict[str, Any]]] = None
        self._universities: Optional[list[dict[str, Any]]] = None

    def fetch_universities(self) -> list[dict[str, Any]]:
        if self._raw is not None:
            return self._raw

        logger.info("Fetching university catalog", url=self.url)
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("University catalog fetch failed", url=self.url, error=str(exc))
            raise CatalogFetchFailure("Failed to fetch universities data") from exc

        if not isinstance(payload, list):
            logger.error("University catalog payload is not a list", url=self.url)
            raise CatalogFetchFailure("Failed to fetch universities data")

        self._raw = [row for row in payload if isinstance(row, dict) and row.get("country") in self.allowed_countries]
        logger.info("University catalog loaded", total=len(payload), allowed=len(self._raw))
        return self._raw

    def universities(self) -> list[dict[str, Any]]:
        if self._universities is None:
            self._universities = [transform_university(row, self.seed) for row in self.fetch_universities()]
        return self._universities

    def by_country(self, country: str) -> list[dict[str, Any]]:
        wanted = country.lower()
        return [row for row in self.fetch_universities() if str(row.get("country", "")).lower() == wanted]

    def search(self, query: str) -> list[dict[str, Any]]:
        term = query.lower()
        results = []
        for row in self.fetch_universities():
            haystacks = (row.get("name"), row.get("country"), row.get("state-province"))
            if any(term in str(value).lower() for value in haystacks if value):
                results.append(row)
        return results

    def countries(self) -> list[str]:
        return sorted({str(row.get("country")) for row in self.fetch_universities()})


def university_row_to_dict(row: University) -> dict[str, Any]:
    return {
        "id": row.university_code,
        "name": row.name,
        "country": row.country,
        "state_province": row.state_province,
        "domains": list(row.domains or []),
        "web_pages": list(row.web_pages or []),
        "programs": list(row.programs or []),
        "courses": list(row.courses or []),
        "study_levels": list(row.study_levels or []),
        "tuition_range": row.tuition_range,
        "international_fees": dict(row.fees_json or {}),
        "acceptance_rate": row.acceptance_rate,
        "application_deadline": row.application_deadline,
        "scholarships_available": bool(row.scholarships_available),
        "requirements": {
            "gpa": float(row.gpa_requirement) if row.gpa_requirement is not None else None,
            "language_test": row.language_test,
            "other_tests": list(row.other_tests or []),
        },
    }


def university_dict_to_row_values(university: dict[str, Any]) -> dict[str, Any]:
    requirements = university.get("requirements") or {}
    return {
        "university_code": university["id"],
        "active": True,
        "name": university["name"],
        "country": university["country"],
        "state_province": university.get("state_province"),
        "domains": list(university.get("domains") or []),
        "web_pages": list(university.get("web_pages") or []),
        "programs": list(university.get("programs") or []),
        "courses": list(university.get("courses") or []),
        "study_levels": list(university.get("study_levels") or []),
        "gpa_requirement": requirements.get("gpa"),
        "language_test": requirements.get("language_test"),
        "other_tests": list(requirements.get("other_tests") or []),
        "acceptance_rate": university.get("acceptance_rate"),
        "application_deadline": university.get("application_deadline"),
        "tuition_range": university.get("tuition_range"),
        "fees_json": dict(university.get("international_fees") or {}),
        "scholarships_available": bool(university.get("scholarships_available")),
    }


class DatabaseCatalogProvider:
    """Catalog read from the ``universities`` table (active rows, stable order)."""

    def __init__(self, session_factory: Callable[..., Any]) -> None:
        self.session_factory = session_factory
        self._universities: Optional[list[dict[str, Any]]] = None

    def universities(self) -> list[dict[str, Any]]:
        if self._universities is None:
            try:
                with self.session_factory() as db:
                    rows = db.scalars(
                        select(University).where(University.active.is_(True)).order_by(University.university_code)
                    ).all()
                    self._universities = [university_row_to_dict(row) for row in rows]
            except SQLAlchemyError as exc:
                logger.error("University catalog query failed", error=str(exc))
                raise CatalogFetchFailure("Failed to load universities from the database") from exc
            logger.info("University catalog loaded", source="database", total=len(self._universities))
        return self._universities
