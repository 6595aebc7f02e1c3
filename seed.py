from __future__ import annotations

import os
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from auth import get_user_by_email
from catalog import HttpCatalogProvider, university_dict_to_row_values
from db import db_session, init_schema
from logger import get_logger
from models import AuditLog, StudentProfile, University, User
from profile_merge import compute_profile_completion, empty_profile

logger = get_logger(component="seed")


def _existing_by_code(db: Session, codes: list[str]) -> dict[str, University]:
    if not codes:
        return {}
    return {row.university_code: row for row in db.scalars(select(University).where(University.university_code.in_(codes))).all()}


def preview_diff(db: Session, universities: list[dict[str, Any]]) -> dict[str, int]:
    existing = _existing_by_code(db, [u["id"] for u in universities])
    to_update = sum(1 for u in universities if u["id"] in existing)
    return {"insert": len(universities) - to_update, "update": to_update}


def upsert_universities(
    db: Session,
    universities: list[dict[str, Any]],
    actor_user_id: str | None = None,
    source: str = "catalog",
) -> dict[str, int]:
    # Duplicate names within one country collapse onto one code; last row wins.
    rows = {u["id"]: university_dict_to_row_values(u) for u in universities}
    existing_map = _existing_by_code(db, list(rows))

    inserted = 0
    updated = 0
    for code, values in rows.items():
        existing = existing_map.get(code)
        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            updated += 1
        else:
            db.add(University(**values))
            inserted += 1

    db.add(
        AuditLog(
            user_id=uuid.UUID(actor_user_id) if actor_user_id else None,
            action="universities_upsert",
            details_json={"source": source, "inserted": inserted, "updated": updated},
        )
    )
    logger.info("Universities upserted", source=source, inserted=inserted, updated=updated)
    return {"inserted": inserted, "updated": updated}


def seed_universities_if_empty(db: Session, provider: Optional[HttpCatalogProvider] = None) -> dict[str, int]:
    total = db.scalar(select(func.count()).select_from(University))
    if total and total > 0:
        return {"inserted": 0, "updated": 0}

    provider = provider or HttpCatalogProvider()
    return upsert_universities(db, provider.universities(), source=provider.url)


def seed_demo_student(db: Session) -> User:
    email = os.getenv("UNIMATCH_DEMO_STUDENT_EMAIL", "student@unimatch.local")
    user = get_user_by_email(db, email)
    if not user:
        user = User(role="student", email=email)
        db.add(user)
        db.flush()

    profile = db.scalar(select(StudentProfile).where(StudentProfile.user_id == user.id))
    if not profile:
        data = empty_profile(str(user.id))
        data["contact_info"] = {"email": email}
        data["preferences"]["preferred_countries"] = ["Canada", "Germany"]
        data["preferences"]["study_fields"] = ["Computer Science"]
        db.add(
            StudentProfile(
                user_id=user.id,
                academic_background=data["academic_background"],
                skills=data["skills"],
                preferences=data["preferences"],
                experience=data["experience"],
                contact_info=data["contact_info"],
                profile_completion=compute_profile_completion(data),
            )
        )
    return user


def main() -> None:
    init_schema()
    with db_session() as db:
        result = seed_universities_if_empty(db)
        student = seed_demo_student(db)
        print(f"Universities: inserted={result['inserted']} updated={result['updated']}")
        print(f"Demo student: {student.email} ({student.id})")


if __name__ == "__main__":
    main()
