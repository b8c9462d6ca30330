"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the durable URL store schema:
    - urls: alias -> original URL
    - url_stats: one statistics row per alias
    """
    # The store creates these tables itself on first start, so an existing
    # database may already have them
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'urls' not in existing_tables:
        op.create_table(
            'urls',
            sa.Column('short_url', sa.String(), nullable=False),
            sa.Column('original_url', sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint('short_url')
        )

    if 'url_stats' not in existing_tables:
        op.create_table(
            'url_stats',
            sa.Column('short_url', sa.String(), nullable=False),
            sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_ips', sa.Text(), nullable=False, server_default=''),
            sa.Column('referrers', sa.Text(), nullable=False, server_default=''),
            sa.Column('last_geo_location', sa.Text(), nullable=False, server_default=''),
            sa.ForeignKeyConstraint(['short_url'], ['urls.short_url']),
            sa.PrimaryKeyConstraint('short_url')
        )


def downgrade() -> None:
    """Drop the URL store schema."""
    op.drop_table('url_stats')
    op.drop_table('urls')
