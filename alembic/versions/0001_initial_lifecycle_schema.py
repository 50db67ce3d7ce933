"""initial lifecycle schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

Creates users, courses, jobs, applications and admissions.

Concurrency guards live in the schema:
- uq_applications_student_target: one application per (student, listing)
- uq_admissions_student_course: one admission per (student, course)
- uq_admissions_one_accepted_per_student: partial unique index allowing at
  most one accepted admission per student
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enum labels are the Python member names
user_role = postgresql.ENUM(
    "STUDENT", "INSTITUTE", "COMPANY", "ADMIN", name="user_role", create_type=False
)
listing_status = postgresql.ENUM("ACTIVE", "CLOSED", name="listing_status", create_type=False)
listing_type = postgresql.ENUM("COURSE", "JOB", name="listing_type", create_type=False)
job_type = postgresql.ENUM(
    "FULL_TIME", "PART_TIME", "CONTRACT", "INTERNSHIP", name="job_type", create_type=False
)
application_status = postgresql.ENUM(
    "PENDING",
    "SHORTLISTED",
    "INTERVIEWING",
    "ACCEPTED",
    "REJECTED",
    "WITHDRAWN",
    name="application_status",
    create_type=False,
)
admission_status = postgresql.ENUM("OFFERED", name="admission_status", create_type=False)
admission_response = postgresql.ENUM(
    "ACCEPTED", "DECLINED", name="admission_response", create_type=False
)

ENUMS = (
    user_role,
    listing_status,
    listing_type,
    job_type,
    application_status,
    admission_status,
    admission_response,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("approval_remarks", sa.Text(), nullable=True),
        sa.Column("profile", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("institution_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("duration", sa.String(100), nullable=True),
        sa.Column("fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("eligibility", sa.Text(), nullable=True),
        sa.Column("seats", sa.Integer(), nullable=False),
        sa.Column("status", listing_status, nullable=False, server_default="ACTIVE"),
        sa.Column("application_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("seats > 0", name="ck_courses_seats_positive"),
    )
    op.create_index("ix_courses_institution_id", "courses", ["institution_id"])
    op.create_index("ix_courses_status", "courses", ["status"])

    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("requirements", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("skills", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("job_type", job_type, nullable=False, server_default="FULL_TIME"),
        sa.Column("experience", sa.String(100), nullable=False, server_default="Entry level"),
        sa.Column("salary", sa.JSON(), nullable=True),
        sa.Column("positions", sa.Integer(), nullable=True),
        sa.Column("status", listing_status, nullable=False, server_default="ACTIVE"),
        sa.Column("closing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_jobs_company_id", "jobs", ["company_id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])

    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("target_type", listing_type, nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("status", application_status, nullable=False, server_default="PENDING"),
        sa.Column("cover_letter", sa.Text(), nullable=True),
        sa.Column("resume_url", sa.String(500), nullable=True),
        sa.Column("documents", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("withdrawn_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "student_id", "target_type", "target_id", name="uq_applications_student_target"
        ),
    )
    op.create_index(
        "ix_applications_target", "applications", ["target_type", "target_id", "status"]
    )
    op.create_index(
        "ix_applications_student_owner",
        "applications",
        ["student_id", "owner_id", "target_type"],
    )
    op.create_index("ix_applications_owner_id", "applications", ["owner_id"])

    op.create_table(
        "admissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("institution_id", sa.Uuid(), nullable=False),
        sa.Column("application_id", sa.Uuid(), nullable=False),
        sa.Column("status", admission_status, nullable=False, server_default="OFFERED"),
        sa.Column("student_response", admission_response, nullable=True),
        sa.Column("offered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "course_id", name="uq_admissions_student_course"),
    )
    op.create_index(
        "uq_admissions_one_accepted_per_student",
        "admissions",
        ["student_id"],
        unique=True,
        postgresql_where=sa.text("student_response = 'ACCEPTED'"),
    )
    op.create_index("ix_admissions_institution_id", "admissions", ["institution_id"])
    op.create_index("ix_admissions_course_id", "admissions", ["course_id"])


def downgrade() -> None:
    op.drop_table("admissions")
    op.drop_table("applications")
    op.drop_table("jobs")
    op.drop_table("courses")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
