"""objective_people

Link table between objectives and the key people they involve.

Revision ID: 0002_objective_people
Revises: 0001_initial
Create Date: 2026-10-16 14:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0002_objective_people"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade():
    existing_tables = set(sa_inspect(op.get_bind()).get_table_names())
    if "objective_people" in existing_tables:
        return
    op.create_table(
        "objective_people",
        sa.Column("objective_id", sa.Integer(), nullable=False),
        sa.Column("person_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["objective_id"], ["objectives.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("objective_id", "person_id"),
    )
    op.create_index("ix_objective_people_person_id", "objective_people", ["person_id"])


def downgrade():
    existing_tables = set(sa_inspect(op.get_bind()).get_table_names())
    if "objective_people" in existing_tables:
        op.drop_index("ix_objective_people_person_id", table_name="objective_people")
        op.drop_table("objective_people")
