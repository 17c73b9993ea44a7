"""fractional course grade

Revision ID: 7c2e5d81f0a3
Revises: 3b1f0c2a9d4e
Create Date: 2026-10-19 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c2e5d81f0a3"
down_revision: str | Sequence[str] | None = "3b1f0c2a9d4e"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.alter_column(
        "enrollments",
        "grade",
        type_=sa.Float(),
        existing_type=sa.Integer(),
        existing_nullable=True,
    )


def downgrade() -> None:
    op.alter_column(
        "enrollments",
        "grade",
        type_=sa.Integer(),
        existing_type=sa.Float(),
        existing_nullable=True,
        postgresql_using="round(grade)::integer",
    )
