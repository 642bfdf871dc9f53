"""Local fallback mirror of cache entries.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'local_cache_entries',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('namespace', sa.String(length=32), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_index('ix_local_cache_entries_namespace', 'local_cache_entries', ['namespace'])
    op.create_index('ix_local_cache_entries_expires_at', 'local_cache_entries', ['expires_at'])


def downgrade() -> None:
    op.drop_index('ix_local_cache_entries_expires_at', table_name='local_cache_entries')
    op.drop_index('ix_local_cache_entries_namespace', table_name='local_cache_entries')
    op.drop_table('local_cache_entries')
