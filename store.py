from __future__ import annotations

import uuid
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from db import db_session
from errors import PersistenceFailure
from logger import get_logger
from models import ParsedDocument, StudentProfile
from profile_merge import normalize_profile

logger = get_logger(component="profile_store")

PROFILE_SECTIONS = ("academic_background", "skills", "preferences", "experience", "contact_info")


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def profile_row_to_dict(row: StudentProfile) -> dict[str, Any]:
    return normalize_profile(
        {
            "user_id": str(row.user_id),
            "academic_background": row.academic_background,
            "skills": row.skills,
            "preferences": row.preferences,
            "experience": row.experience,
            "contact_info": row.contact_info,
            "profile_completion": row.profile_completion,
        }
    )


def parsed_document_row_to_dict(row: ParsedDocument) -> dict[str, Any]:
    return {
        "user_id": str(row.user_id),
        "document_id": row.document_id,
        "document_type": row.document_type,
        "parsed_data": dict(row.parsed_data or {}),
        "confidence_score": row.confidence_score,
        "processing_status": row.processing_status,
    }


class ProfileStore:
    """Student profiles and parsed documents, keyed by student id.

    Every call opens its own session from ``session_factory``; reads return
    plain dicts so callers never hold ORM objects.
    """

    def __init__(self, session_factory: Callable[..., Any] = db_session) -> None:
        self.session_factory = session_factory

    def get_profile(self, user_id: str) -> Optional[dict[str, Any]]:
        try:
            with self.session_factory() as db:
                row = db.scalar(select(StudentProfile).where(StudentProfile.user_id == _as_uuid(user_id)))
                return profile_row_to_dict(row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Profile read failed", user_id=str(user_id), error=str(exc))
            raise PersistenceFailure(f"Could not read profile for {user_id}") from exc

    def upsert_profile(self, user_id: str, profile: dict[str, Any]) -> dict[str, Any]:
        values = {section: profile.get(section) for section in PROFILE_SECTIONS}
        values["profile_completion"] = int(profile.get("profile_completion") or 0)
        try:
            with self.session_factory() as db:
                row = db.scalar(select(StudentProfile).where(StudentProfile.user_id == _as_uuid(user_id)))
                if row:
                    for key, value in values.items():
                        setattr(row, key, value)
                else:
                    row = StudentProfile(user_id=_as_uuid(user_id), **values)
                    db.add(row)
                db.flush()
                saved = profile_row_to_dict(row)
        except SQLAlchemyError as exc:
            logger.error("Profile upsert failed", user_id=str(user_id), error=str(exc))
            raise PersistenceFailure(f"Could not save profile for {user_id}") from exc

        logger.info("Profile saved", user_id=str(user_id), profile_completion=saved["profile_completion"])
        return saved

    def save_parsed_document(self, document: dict[str, Any]) -> dict[str, Any]:
        try:
            with self.session_factory() as db:
                row = ParsedDocument(
                    user_id=_as_uuid(document["user_id"]),
                    document_id=str(document["document_id"]),
                    document_type=document["document_type"],
                    parsed_data=document.get("parsed_data") or {},
                    confidence_score=int(document.get("confidence_score") or 0),
                    processing_status=document.get("processing_status") or "completed",
                )
                db.add(row)
                db.flush()
                saved = parsed_document_row_to_dict(row)
        except SQLAlchemyError as exc:
            logger.error(
                "Parsed document save failed",
                user_id=str(document.get("user_id")),
                document_id=document.get("document_id"),
                error=str(exc),
            )
            raise PersistenceFailure(f"Could not save parsed document {document.get('document_id')}") from exc

        logger.info(
            "Parsed document saved",
            user_id=saved["user_id"],
            document_id=saved["document_id"],
            document_type=saved["document_type"],
            confidence_score=saved["confidence_score"],
        )
        return saved

    def list_parsed_documents(self, user_id: str) -> list[dict[str, Any]]:
        try:
            with self.session_factory() as db:
                rows = db.scalars(
                    select(ParsedDocument)
                    .where(ParsedDocument.user_id == _as_uuid(user_id))
                    .order_by(ParsedDocument.created_at, ParsedDocument.id)
                ).all()
                return [parsed_document_row_to_dict(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Parsed document listing failed", user_id=str(user_id), error=str(exc))
            raise PersistenceFailure(f"Could not list parsed documents for {user_id}") from exc
