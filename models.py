from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


DOCUMENT_TYPES = ("cv", "transcript", "statement", "recommendation", "certificate", "other")


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="student")  # student | admin
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile = relationship("StudentProfile", back_populates="user", uselist=False)


class StudentProfile(Base):
    __tablename__ = "student_profiles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, unique=True)
    academic_background: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    skills: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    preferences: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    experience: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    contact_info: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    profile_completion: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="profile")

    __table_args__ = (
        CheckConstraint("profile_completion between 0 and 100", name="ck_student_profiles_completion"),
        Index("ix_student_profiles_user_id", "user_id", unique=True),
    )


class ParsedDocument(Base):
    __tablename__ = "parsed_documents"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    document_id: Mapped[str] = mapped_column(String(120), nullable=False)
    document_type: Mapped[str] = mapped_column(String(20), nullable=False)
    parsed_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processing_status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "document_type in ('cv', 'transcript', 'statement', 'recommendation', 'certificate', 'other')",
            name="ck_parsed_documents_type",
        ),
        CheckConstraint("confidence_score between 0 and 100", name="ck_parsed_documents_confidence"),
        Index("ix_parsed_documents_user_id", "user_id"),
    )


class University(Base):
    __tablename__ = "universities"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    university_code: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    state_province: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    domains: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    web_pages: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    programs: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    courses: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    study_levels: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    gpa_requirement: Mapped[Optional[float]] = mapped_column(Numeric(3, 1), nullable=True)
    language_test: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    other_tests: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    acceptance_rate: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    application_deadline: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tuition_range: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    fees_json: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    scholarships_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_universities_university_code", "university_code", unique=True),
        Index("ix_universities_country", "country"),
        Index("ix_universities_active", "active"),
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    details_json: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
