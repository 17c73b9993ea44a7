"""initial schema

Revision ID: 3b1f0c2a9d4e
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f0c2a9d4e"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

UUID = postgresql.UUID(as_uuid=True)
UUID_ARRAY = postgresql.ARRAY(postgresql.UUID(as_uuid=True))
EMPTY_ARRAY = sa.text("'{}'")
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column(
            "roles",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default=EMPTY_ARRAY,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("telegram_id", sa.String(length=64), nullable=True),
        sa.Column("groups", UUID_ARRAY, nullable=False, server_default=EMPTY_ARRAY),
        sa.Column(
            "settings",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", TS, nullable=True),
    )
    op.create_table(
        "groups",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("students", UUID_ARRAY, nullable=False, server_default=EMPTY_ARRAY),
    )
    op.create_table(
        "courses",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("teacher_id", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", TS, nullable=True),
    )
    op.create_table(
        "modules",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "course_id",
            UUID,
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_modules_course_id", "modules", ["course_id"])
    op.create_table(
        "lessons",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "module_id",
            UUID,
            sa.ForeignKey("modules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("points", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_lessons_module_id", "lessons", ["module_id"])
    op.create_table(
        "streams",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", TS, nullable=False),
        sa.Column("end_date", TS, nullable=False),
        sa.Column("students", UUID_ARRAY, nullable=False, server_default=EMPTY_ARRAY),
    )
    op.create_table(
        "tariffs",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column(
            "accessible_modules",
            UUID_ARRAY,
            nullable=False,
            server_default=EMPTY_ARRAY,
        ),
        sa.Column(
            "includes_homeworks", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column(
            "includes_points", sa.Boolean(), nullable=False, server_default="false"
        ),
    )
    op.create_table(
        "enrollments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("stream_id", UUID, sa.ForeignKey("streams.id"), nullable=True),
        sa.Column("tariff_id", UUID, sa.ForeignKey("tariffs.id"), nullable=True),
        sa.Column(
            "completed_modules",
            UUID_ARRAY,
            nullable=False,
            server_default=EMPTY_ARRAY,
        ),
        sa.Column(
            "completed_lessons",
            UUID_ARRAY,
            nullable=False,
            server_default=EMPTY_ARRAY,
        ),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("deadline", TS, nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("enrolled_at", TS, nullable=True),
        sa.UniqueConstraint("student_id", "course_id"),
    )
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_table(
        "homeworks",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("lesson_id", UUID, sa.ForeignKey("lessons.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "category", sa.String(length=16), nullable=False, server_default="theory"
        ),
        sa.Column("deadline", TS, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", TS, nullable=True),
    )
    op.create_table(
        "submissions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("homework_id", UUID, sa.ForeignKey("homeworks.id"), nullable=False),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("teacher_comment", sa.Text(), nullable=True),
        sa.Column("is_reviewed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", TS, nullable=True),
        sa.UniqueConstraint("homework_id", "student_id"),
    )
    op.create_table(
        "quizzes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("lesson_id", UUID, sa.ForeignKey("lessons.id"), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column(
            "questions",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("time_limit", sa.Integer(), nullable=True),
    )
    op.create_table(
        "quiz_submissions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("quiz_id", UUID, sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "answers",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("submitted_at", TS, nullable=False),
        sa.UniqueConstraint("quiz_id", "student_id"),
    )
    op.create_table(
        "notifications",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("key", sa.String(length=128), nullable=True, unique=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "recipients", UUID_ARRAY, nullable=False, server_default=EMPTY_ARRAY
        ),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_sent", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("sent_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("quiz_submissions")
    op.drop_table("quizzes")
    op.drop_table("submissions")
    op.drop_table("homeworks")
    op.drop_index("ix_enrollments_course_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_table("tariffs")
    op.drop_table("streams")
    op.drop_index("ix_lessons_module_id", table_name="lessons")
    op.drop_table("lessons")
    op.drop_index("ix_modules_course_id", table_name="modules")
    op.drop_table("modules")
    op.drop_table("courses")
    op.drop_table("groups")
    op.drop_table("users")
