"""
Keyword and pattern rules that turn a document's extracted text into the
``parsed_data`` shape consumed by :mod:`profile_merge`.

Text extraction itself (OCR, PDF parsing) happens upstream; everything here
works on plain text and is deterministic.
"""

from __future__ import annotations

import re
from typing import Any


TECHNICAL_SKILLS = [
    "Python",
    "JavaScript",
    "TypeScript",
    "Java",
    "C++",
    "C#",
    "Rust",
    "SQL",
    "React",
    "Node.js",
    "Django",
    "Flask",
    "Spring Boot",
    "Machine Learning",
    "Deep Learning",
    "Data Analysis",
    "AWS",
    "Google Cloud",
    "Azure",
    "Docker",
    "Kubernetes",
    "PostgreSQL",
    "MongoDB",
    "Redis",
    "MATLAB",
    "Excel",
]

SOFT_SKILL_MARKERS = {
    "Leadership": ("leadership", "led a team"),
    "Collaboration": ("collaboration", "collaborated"),
    "Communication": ("communication",),
    "Analytical Thinking": ("analytical",),
    "Creativity": ("creative",),
    "Problem Solving": ("problem solving", "problem-solving"),
}

STUDY_FIELDS = [
    "Computer Science",
    "Artificial Intelligence",
    "Machine Learning",
    "Data Science",
    "Software Engineering",
    "Electrical Engineering",
    "Mechanical Engineering",
    "Civil Engineering",
    "Business Administration",
    "Economics",
    "Finance",
    "Marketing",
    "Medicine",
    "Public Health",
    "Nursing",
    "Psychology",
    "Biology",
    "Biotechnology",
    "Environmental Science",
    "Law",
]

CAREER_GOAL_MARKERS = {
    "Research Scientist": ("research scientist",),
    "Academic Career": ("phd", "academic career"),
    "Professor": ("professor",),
    "Healthcare Technology": ("healthcare",),
    "Entrepreneur": ("entrepreneur", "start my own", "startup"),
    "Consultant": ("consultant", "consulting"),
    "Software Engineer": ("software engineer",),
}

RESEARCH_INTERESTS = [
    "Natural Language Processing",
    "Computer Vision",
    "Ethical AI",
    "Reinforcement Learning",
    "Robotics",
    "Bioinformatics",
]

ACHIEVEMENT_MARKERS = {
    "Dean's List": ("dean's list",),
    "Magna Cum Laude": ("magna cum laude",),
    "Summa Cum Laude": ("summa cum laude",),
    "Published Research": ("published",),
    "Academic Award": ("award",),
}

TEST_NAMES = ("GRE", "GMAT", "TOEFL", "IELTS", "SAT", "ACT", "DUOLINGO")

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.\w{2,}")
PHONE_RE = re.compile(r"(?:phone|tel|mobile)\s*[:\-]?\s*(\+?\d[\d\s\-().]{7,}\d)", re.IGNORECASE)
LINKEDIN_RE = re.compile(r"linkedin\.com/in/[\w\-]+", re.IGNORECASE)
GPA_RE = re.compile(r"(?:cumulative\s+|overall\s+)?GPA\s*[:\-]?\s*(\d(?:\.\d{1,2})?)", re.IGNORECASE)
CUMULATIVE_GPA_RE = re.compile(r"(?:cumulative|overall)\s+GPA\s*[:\-]?\s*(\d(?:\.\d{1,2})?)", re.IGNORECASE)
TITLE_WORDS = r"[A-Z][A-Za-z]*(?:\s+[A-Z][A-Za-z]*)*"
DEGREE_RE = re.compile(
    r"(Bachelor|Master|Doctorate|Doctor|PhD|Associate|Diploma)(?:'s)?"
    r"(?:\s+of\s+(" + TITLE_WORDS + r"))?"
    r"(?:\s+in\s+(" + TITLE_WORDS + r"))?"
)
INSTITUTION_RE = re.compile(
    r"^(.*?\b(?:University|College|Institute|School|Academy)\b.*?)(?:,\s*(?:\d{4}|Summer|Spring|Fall|Winter)\b.*)?$"
)
GENERIC_DEGREE_SUBJECTS = {"science", "arts", "engineering", "laws", "philosophy", "business administration"}
YEAR_RANGE_RE = re.compile(r"(\d{4})\s*[-–]\s*(\d{4}|Present)", re.IGNORECASE)
LANGUAGE_ENTRY_RE = re.compile(r"([A-Z][a-z]+)\s*\(([^)]+)\)")
TEST_SCORE_RE = re.compile(r"\b(" + "|".join(TEST_NAMES) + r")\b[^\d\n]{0,20}(\d{1,3}(?:\.\d)?)")
SECTION_RE = re.compile(r"^\s*([A-Z][A-Z &]{3,})\s*$")


def _lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def _contains_term(text: str, term: str, ignore_case: bool = False) -> bool:
    pattern = r"(?<![A-Za-z0-9])" + re.escape(term) + r"(?![A-Za-z0-9+#])"
    return re.search(pattern, text, re.IGNORECASE if ignore_case else 0) is not None


def _marker_hits(text: str, markers: dict[str, tuple[str, ...]]) -> list[str]:
    lowered = (text or "").lower()
    return [label for label, needles in markers.items() if any(needle in lowered for needle in needles)]


def _section(text: str, name: str) -> list[str]:
    """Lines under an upper-case heading such as ``EXPERIENCE``, up to the next heading."""
    collected: list[str] = []
    inside = False
    for line in _lines(text):
        heading = SECTION_RE.match(line)
        if heading:
            if inside:
                break
            inside = heading.group(1).strip().upper() == name.upper()
            continue
        if inside:
            collected.append(line)
    return collected


def _degree_parts(line: str) -> tuple[str, str] | None:
    """Split ``Master of Science in Computer Science`` into degree and field.

    Only lines that start with a degree word count, so prose such as
    "during my master's program" is ignored.
    """
    match = DEGREE_RE.match(line.strip())
    if not match:
        return None
    head, subject, field = match.group(1), match.group(2) or "", match.group(3) or ""
    degree = f"{head} of {subject}" if subject else head
    if subject and not field and subject.lower() not in GENERIC_DEGREE_SUBJECTS:
        field = subject
    return degree, field


def extract_education(text: str) -> dict[str, Any]:
    lines = _lines(text)
    institutions: list[dict[str, Any]] = []
    for idx, line in enumerate(lines):
        parts = _degree_parts(line)
        if not parts:
            continue
        degree, field = parts
        window = lines[idx + 1 : idx + 4]
        inst_name = None
        start = end = None
        gpa = None
        for follow in window:
            if _degree_parts(follow):
                break
            if inst_name is None:
                inst_match = INSTITUTION_RE.search(follow)
                if inst_match:
                    inst_name = inst_match.group(1).strip().rstrip(",")
            years = YEAR_RANGE_RE.search(follow)
            if years and start is None:
                start, end = years.group(1), years.group(2)
            gpa_match = GPA_RE.search(follow)
            if gpa_match and gpa is None:
                gpa = float(gpa_match.group(1))
        if inst_name is None:
            continue
        institutions.append(
            {
                "name": inst_name,
                "degree": degree,
                "field": field,
                "gpa": gpa,
                "startDate": start,
                "endDate": end,
            }
        )
    return {"institutions": institutions, "certifications": []}


def extract_education_from_transcript(text: str) -> dict[str, Any]:
    lines = _lines(text)
    institution = next((m.group(1).strip() for m in map(INSTITUTION_RE.search, lines) if m), None)
    degree_line = next((line for line in lines if line.lower().startswith(("degree:", "degree conferred:"))), None)
    if not institution or not degree_line:
        return {"institutions": []}

    parts = _degree_parts(degree_line.split(":", 1)[1])
    if not parts:
        return {"institutions": []}
    degree, field = parts
    gpa_match = CUMULATIVE_GPA_RE.search(text) or GPA_RE.search(text)
    year_match = re.search(r"graduation date:\s*\w*\s*(\d{4})", text, re.IGNORECASE)
    return {
        "institutions": [
            {
                "name": institution,
                "degree": degree,
                "field": field,
                "gpa": float(gpa_match.group(1)) if gpa_match else None,
                "endDate": year_match.group(1) if year_match else None,
            }
        ]
    }


def extract_experience(text: str) -> dict[str, Any]:
    lines = _section(text, "EXPERIENCE")
    positions: list[dict[str, Any]] = []
    idx = 0
    while idx < len(lines) - 1:
        title, company_line = lines[idx], lines[idx + 1]
        if title.startswith(("-", "•", "*")) or company_line.startswith(("-", "•", "*")):
            idx += 1
            continue
        company, _, duration = company_line.partition(",")
        description = None
        nxt = idx + 2
        while nxt < len(lines) and lines[nxt].startswith(("-", "•", "*")):
            if description is None:
                description = lines[nxt].lstrip("-•* ").strip()
            nxt += 1
        positions.append(
            {
                "title": title,
                "company": company.strip(),
                "duration": duration.strip() or None,
                "description": description,
            }
        )
        idx = nxt
    return {"positions": positions}


def extract_languages(text: str) -> list[dict[str, str]]:
    languages: list[dict[str, str]] = []
    for line in _lines(text):
        if not line.lower().startswith("languages:"):
            continue
        for name, proficiency in LANGUAGE_ENTRY_RE.findall(line.split(":", 1)[1]):
            languages.append({"language": name, "proficiency": proficiency.strip()})
    return languages


def extract_skills(text: str) -> dict[str, Any]:
    technical = [skill for skill in TECHNICAL_SKILLS if _contains_term(text or "", skill)]
    return {
        "technical": technical,
        "languages": extract_languages(text),
        "soft_skills": _marker_hits(text, SOFT_SKILL_MARKERS),
    }


def extract_skills_from_recommendation(text: str) -> dict[str, Any]:
    return {"technical": [], "languages": [], "soft_skills": _marker_hits(text, SOFT_SKILL_MARKERS)}


def extract_contact(text: str) -> dict[str, str]:
    contact: dict[str, str] = {}
    email = EMAIL_RE.search(text or "")
    if email:
        contact["email"] = email.group(0)
    phone = PHONE_RE.search(text or "")
    if phone:
        contact["phone"] = phone.group(1).strip()
    linkedin = LINKEDIN_RE.search(text or "")
    if linkedin:
        contact["linkedin"] = linkedin.group(0)
    return contact


def extract_academic_performance(text: str) -> dict[str, Any]:
    performance: dict[str, Any] = {}
    gpa = CUMULATIVE_GPA_RE.search(text or "") or GPA_RE.search(text or "")
    if gpa:
        performance["overall_gpa"] = float(gpa.group(1))

    test_scores = []
    seen: set[str] = set()
    for name, score in TEST_SCORE_RE.findall(text or ""):
        key = name.upper()
        if key in seen:
            continue
        seen.add(key)
        test_scores.append({"test_name": key, "score": score})
    performance["test_scores"] = test_scores
    performance["achievements"] = extract_achievements(text)
    return performance


def extract_preferences(text: str) -> dict[str, Any]:
    return {
        "study_fields": [field for field in STUDY_FIELDS if _contains_term(text or "", field, ignore_case=True)],
        "career_goals": extract_career_goals(text),
        "research_interests": [topic for topic in RESEARCH_INTERESTS if _contains_term(text or "", topic, ignore_case=True)],
    }


def extract_career_goals(text: str) -> list[str]:
    return _marker_hits(text, CAREER_GOAL_MARKERS)


def extract_achievements(text: str) -> list[str]:
    return _marker_hits(text, ACHIEVEMENT_MARKERS)


def analyze_document_text(text: str, document_type: str) -> dict[str, Any]:
    analysis: dict[str, Any] = {"raw_text": text}

    if document_type == "cv":
        analysis["education"] = extract_education(text)
        analysis["experience"] = extract_experience(text)
        analysis["skills"] = extract_skills(text)
        analysis["contact"] = extract_contact(text)
    elif document_type == "transcript":
        analysis["academic_performance"] = extract_academic_performance(text)
        analysis["education"] = extract_education_from_transcript(text)
    elif document_type == "statement":
        analysis["preferences"] = extract_preferences(text)
        analysis["career_goals"] = extract_career_goals(text)
    elif document_type == "recommendation":
        analysis["skills"] = extract_skills_from_recommendation(text)
        analysis["achievements"] = extract_achievements(text)
    else:
        analysis["education"] = extract_education(text)
        analysis["skills"] = extract_skills(text)

    return analysis
