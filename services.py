"""
Presentation-facing operations.

Services are plain objects built with their collaborators; nothing here is a
module-level singleton:

    store = ProfileStore()
    profiles = ProfileService(store, static_identity(user_id))
    recommendations = RecommendationService(store, HttpCatalogProvider())
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import config
from auth import IdentityResolver, resolve_student_id
from errors import NotAuthenticated, PersistenceFailure, ProfileNotFound, UnsupportedDocumentType
from extraction import analyze_document_text
from logger import get_logger
from matching import MatchingRecommendations, build_recommendations
from models import DOCUMENT_TYPES
from profile_merge import compute_confidence_score, empty_profile, merge_profile_data

logger = get_logger(component="services")

# Preferences only the student sets directly; documents never carry them.
USER_SET_PREFERENCES = ("preferred_countries", "budget_range", "scholarship_required")


class ProfileRepository(Protocol):
    def get_profile(self, user_id: str) -> Optional[dict[str, Any]]: ...

    def upsert_profile(self, user_id: str, profile: dict[str, Any]) -> dict[str, Any]: ...

    def save_parsed_document(self, document: dict[str, Any]) -> dict[str, Any]: ...

    def list_parsed_documents(self, user_id: str) -> list[dict[str, Any]]: ...


class UniversityCatalog(Protocol):
    def universities(self) -> list[dict[str, Any]]: ...


class ProfileService:
    def __init__(self, store: ProfileRepository, identity_resolver: IdentityResolver) -> None:
        self.store = store
        self.identity_resolver = identity_resolver

    def get_student_profile(self, user_id: str) -> Optional[dict[str, Any]]:
        return self.store.get_profile(user_id)

    def get_parsed_documents(self, user_id: str) -> list[dict[str, Any]]:
        return self.store.list_parsed_documents(user_id)

    def merge_parsed_document_into_profile(self, parsed_document: dict[str, Any]) -> dict[str, Any]:
        """Merge one parsed document into the acting student's profile.

        Raises ``NotAuthenticated`` before anything is read or written. A failed
        profile read or write is logged and the merged profile is returned
        anyway: the parsed document it came from is already stored.
        """
        user_id = resolve_student_id(self.identity_resolver)
        return self._merge_for(user_id, parsed_document)

    def _merge_for(self, user_id: str, parsed_document: dict[str, Any]) -> dict[str, Any]:
        document = {**parsed_document, "user_id": user_id}
        try:
            existing = self.store.get_profile(user_id)
        except PersistenceFailure as exc:
            # Never write a profile rebuilt from one document over one we could not read.
            logger.warning(
                "Profile read failed after parse",
                user_id=user_id,
                document_id=parsed_document.get("document_id"),
                error=str(exc),
            )
            return merge_profile_data(None, document)

        merged = merge_profile_data(existing, document)
        try:
            merged = self.store.upsert_profile(user_id, merged)
        except PersistenceFailure as exc:
            logger.warning(
                "Profile update skipped after parse",
                user_id=user_id,
                document_id=parsed_document.get("document_id"),
                error=str(exc),
            )
            return merged

        logger.info(
            "Parsed document merged",
            user_id=user_id,
            document_id=parsed_document.get("document_id"),
            profile_completion=merged["profile_completion"],
        )
        return merged

    def parse_document(
        self,
        document_id: str,
        document_type: str,
        text: str,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        if document_type not in DOCUMENT_TYPES:
            raise UnsupportedDocumentType(document_type)
        acting_id = resolve_student_id(self.identity_resolver)
        if user_id and str(user_id) != acting_id:
            raise NotAuthenticated("Cannot parse documents for another user")

        parsed_data = analyze_document_text(text or "", document_type)
        document = {
            "user_id": acting_id,
            "document_id": document_id,
            "document_type": document_type,
            "parsed_data": parsed_data,
            "confidence_score": compute_confidence_score(parsed_data, text),
            "processing_status": "completed",
        }

        # PersistenceFailure propagates; there is nothing to merge without it.
        saved = self.store.save_parsed_document(document)
        self._merge_for(acting_id, saved)
        return saved

    def rebuild_profile(self, user_id: str) -> dict[str, Any]:
        """Recompute a profile from every stored document, oldest first.

        Starts from an empty profile so entries are not doubled; preferences
        the student set by hand are carried over.
        """
        existing = self.store.get_profile(user_id) or {}
        profile = empty_profile(user_id)
        for key in USER_SET_PREFERENCES:
            if key in (existing.get("preferences") or {}):
                profile["preferences"][key] = existing["preferences"][key]

        documents = self.store.list_parsed_documents(user_id)
        for document in documents:
            profile = merge_profile_data(profile, {**document, "user_id": user_id})

        saved = self.store.upsert_profile(user_id, profile)
        logger.info("Profile rebuilt", user_id=user_id, documents=len(documents))
        return saved


class RecommendationService:
    def __init__(self, store: ProfileRepository, catalog: UniversityCatalog, scan_limit: Optional[int] = None) -> None:
        self.store = store
        self.catalog = catalog
        self.scan_limit = config.catalog_scan_limit() if scan_limit is None else scan_limit

    def generate_recommendations(self, student_id: str) -> MatchingRecommendations:
        profile = self.store.get_profile(student_id)
        if not profile:
            raise ProfileNotFound(student_id)

        # CatalogFetchFailure propagates: no partial recommendations.
        universities = self.catalog.universities()
        recommendations = build_recommendations(profile, universities, scan_limit=self.scan_limit)

        logger.info(
            "Recommendations generated",
            student_id=student_id,
            scanned=recommendations.total_matches,
            reach=len(recommendations.reach_schools),
            match=len(recommendations.match_schools),
            safety=len(recommendations.safety_schools),
        )
        return recommendations
