from __future__ import annotations


class MatchingError(Exception):
    """Base class for failures surfaced to the presentation layer."""


class NotAuthenticated(MatchingError):
    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class ProfileNotFound(MatchingError):
    def __init__(self, user_id: str | None = None) -> None:
        self.user_id = user_id
        super().__init__("Student profile not found. Complete your profile first.")


class CatalogFetchFailure(MatchingError):
    """The university catalog could not be loaded. Safe to retry."""

    retryable = True


class PersistenceFailure(MatchingError):
    pass


class UnsupportedDocumentType(MatchingError, ValueError):
    def __init__(self, document_type: str) -> None:
        self.document_type = document_type
        super().__init__(f"Unsupported document type: {document_type}")
