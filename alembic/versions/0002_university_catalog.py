"""add university catalog table

Revision ID: 0002_university_catalog
Revises: 0001_initial
Create Date: 2026-02-15 21:15:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002_university_catalog"
down_revision: Union[str, Sequence[str], None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "universities",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("university_code", sa.String(length=255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("state_province", sa.String(length=120), nullable=True),
        sa.Column("domains", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("web_pages", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("programs", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("courses", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("study_levels", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("gpa_requirement", sa.Numeric(3, 1), nullable=True),
        sa.Column("language_test", sa.String(length=120), nullable=True),
        sa.Column("other_tests", postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column("acceptance_rate", sa.String(length=10), nullable=True),
        sa.Column("application_deadline", sa.String(length=20), nullable=True),
        sa.Column("tuition_range", sa.String(length=80), nullable=True),
        sa.Column("fees_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("scholarships_available", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("university_code"),
    )
    op.create_index("ix_universities_university_code", "universities", ["university_code"], unique=True)
    op.create_index("ix_universities_country", "universities", ["country"], unique=False)
    op.create_index("ix_universities_active", "universities", ["active"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_universities_active", table_name="universities")
    op.drop_index("ix_universities_country", table_name="universities")
    op.drop_index("ix_universities_university_code", table_name="universities")
    op.drop_table("universities")
