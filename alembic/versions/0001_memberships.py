"""Membership table keyed by (group, connection).

Revision ID: 0001_memberships
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

from groupcast.config import get_settings

revision = "0001_memberships"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # connection_id is intentionally left unindexed; it is only scanned on disconnect.
    op.create_table(
        get_settings().table_name,
        sa.Column("group_id", sa.String(), primary_key=True),
        sa.Column("connection_id", sa.String(), primary_key=True),
    )


def downgrade():
    op.drop_table(get_settings().table_name)
