import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from auth import DatabaseIdentityResolver, resolve_student_id
from catalog import (
    DatabaseCatalogProvider,
    transform_university,
    university_dict_to_row_values,
    university_row_to_dict,
)
from errors import CatalogFetchFailure, NotAuthenticated, PersistenceFailure
from models import AuditLog, ParsedDocument, StudentProfile, University, User
from profile_merge import empty_profile
from seed import preview_diff, upsert_universities
from store import ProfileStore

STUDENT_ID = "0b6a4f0e-31f4-4b7e-8a51-2f0c4d9f6b2e"


def session_factory_with(db: MagicMock) -> MagicMock:
    factory = MagicMock()
    factory.return_value.__enter__.return_value = db
    factory.return_value.__exit__.return_value = False
    return factory


def db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_get_profile_returns_none_when_missing() -> None:
    db = MagicMock()
    db.scalar.return_value = None

    assert ProfileStore(session_factory_with(db)).get_profile(STUDENT_ID) is None


def test_get_profile_normalizes_row() -> None:
    db = MagicMock()
    db.scalar.return_value = StudentProfile(
        user_id=uuid.UUID(STUDENT_ID),
        academic_background={"gpa": 3.4},
        skills={"technical": ["Python"]},
        preferences={},
        experience=[],
        contact_info={"email": "a@b.co"},
        profile_completion=38,
    )

    profile = ProfileStore(session_factory_with(db)).get_profile(STUDENT_ID)

    assert profile["user_id"] == STUDENT_ID
    assert profile["academic_background"]["gpa"] == 3.4
    assert profile["academic_background"]["institutions"] == []
    assert profile["skills"]["languages"] == []
    assert profile["profile_completion"] == 38


def test_upsert_profile_inserts_new_row() -> None:
    db = MagicMock()
    db.scalar.return_value = None
    profile = empty_profile(STUDENT_ID)
    profile["skills"]["technical"] = ["Python"]
    profile["profile_completion"] = 13

    saved = ProfileStore(session_factory_with(db)).upsert_profile(STUDENT_ID, profile)

    added = db.add.call_args[0][0]
    assert isinstance(added, StudentProfile)
    assert added.user_id == uuid.UUID(STUDENT_ID)
    assert saved["skills"]["technical"] == ["Python"]
    assert saved["profile_completion"] == 13


def test_upsert_profile_updates_existing_row() -> None:
    db = MagicMock()
    row = StudentProfile(user_id=uuid.UUID(STUDENT_ID), experience=[], profile_completion=0)
    db.scalar.return_value = row
    profile = empty_profile(STUDENT_ID)
    profile["experience"] = [{"title": "Intern"}]
    profile["profile_completion"] = 13

    ProfileStore(session_factory_with(db)).upsert_profile(STUDENT_ID, profile)

    db.add.assert_not_called()
    assert row.experience == [{"title": "Intern"}]
    assert row.profile_completion == 13


def test_store_errors_become_persistence_failures() -> None:
    db = MagicMock()
    db.scalar.side_effect = db_error()
    db.flush.side_effect = db_error()
    store = ProfileStore(session_factory_with(db))

    with pytest.raises(PersistenceFailure):
        store.get_profile(STUDENT_ID)
    with pytest.raises(PersistenceFailure):
        store.upsert_profile(STUDENT_ID, empty_profile(STUDENT_ID))
    with pytest.raises(PersistenceFailure):
        store.save_parsed_document(
            {"user_id": STUDENT_ID, "document_id": "doc-1", "document_type": "cv", "parsed_data": {}}
        )


def test_save_parsed_document_adds_row() -> None:
    db = MagicMock()

    saved = ProfileStore(session_factory_with(db)).save_parsed_document(
        {
            "user_id": STUDENT_ID,
            "document_id": "doc-1",
            "document_type": "transcript",
            "parsed_data": {"academic_performance": {"overall_gpa": 3.5}},
            "confidence_score": 25,
        }
    )

    added = db.add.call_args[0][0]
    assert isinstance(added, ParsedDocument)
    assert saved["document_type"] == "transcript"
    assert saved["confidence_score"] == 25
    assert saved["processing_status"] == "completed"


def test_university_row_round_trip_through_catalog_dict() -> None:
    university = transform_university({"name": "University of Galway", "country": "Ireland"}, seed=3)
    row = University(**university_dict_to_row_values(university))

    restored = university_row_to_dict(row)

    assert restored["id"] == university["id"]
    assert restored["courses"] == university["courses"]
    assert restored["requirements"]["gpa"] == university["requirements"]["gpa"]
    assert restored["international_fees"] == university["international_fees"]


def test_database_catalog_provider_reads_and_caches() -> None:
    db = MagicMock()
    db.scalars.return_value.all.return_value = [
        University(university_code="a-canada", name="A", country="Canada", gpa_requirement=3.1, acceptance_rate="40%")
    ]
    factory = session_factory_with(db)
    provider = DatabaseCatalogProvider(factory)

    first = provider.universities()
    second = provider.universities()

    assert first is second
    assert factory.call_count == 1
    assert first[0]["requirements"]["gpa"] == 3.1
    assert first[0]["courses"] == []


def test_database_catalog_provider_wraps_errors() -> None:
    db = MagicMock()
    db.scalars.side_effect = db_error()

    with pytest.raises(CatalogFetchFailure):
        DatabaseCatalogProvider(session_factory_with(db)).universities()


def test_upsert_universities_inserts_updates_and_audits() -> None:
    existing = University(university_code="known-canada", name="Known", country="Canada")
    db = MagicMock()
    db.scalars.return_value.all.return_value = [existing]
    universities = [
        transform_university({"name": "Known", "country": "Canada"}, seed=1),
        transform_university({"name": "Fresh College", "country": "Australia"}, seed=1),
    ]

    assert preview_diff(db, universities) == {"insert": 1, "update": 1}
    result = upsert_universities(db, universities, source="test")

    assert result == {"inserted": 1, "updated": 1}
    assert existing.courses == universities[0]["courses"]
    added = [call[0][0] for call in db.add.call_args_list]
    assert isinstance(added[0], University)
    assert added[0].university_code == "fresh-college-australia"
    assert isinstance(added[-1], AuditLog)
    assert added[-1].details_json == {"source": "test", "inserted": 1, "updated": 1}


def test_identity_resolver_returns_existing_user() -> None:
    db = MagicMock()
    db.get.return_value = User(id=uuid.UUID(STUDENT_ID), email="student@example.com")
    resolver = DatabaseIdentityResolver(STUDENT_ID, session_factory_with(db))

    assert resolve_student_id(resolver) == STUDENT_ID
    db.get.assert_called_once_with(User, uuid.UUID(STUDENT_ID))


def test_identity_resolver_rejects_deleted_user() -> None:
    db = MagicMock()
    db.get.return_value = None
    resolver = DatabaseIdentityResolver(STUDENT_ID, session_factory_with(db))

    with pytest.raises(NotAuthenticated):
        resolve_student_id(resolver)


def test_identity_resolver_skips_lookup_for_bad_or_missing_id() -> None:
    db = MagicMock()
    factory = session_factory_with(db)

    assert DatabaseIdentityResolver(None, factory)() is None
    factory.assert_not_called()
    assert DatabaseIdentityResolver("not-a-uuid", factory)() is None
    db.get.assert_not_called()
