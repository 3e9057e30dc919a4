"""create_garmin_activity_tables

Revision ID: a3c5e7f9b1d2
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = 'a3c5e7f9b1d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('garminauth',
        sa.Column('id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('garmin_display_name', sa.String(), nullable=True),
        sa.Column('oauth_token_encrypted', sa.String(), nullable=False),
        sa.Column('token_created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_garminauth_user_id', 'garminauth', ['user_id'], unique=True)

    op.create_table('garminactivity',
        sa.Column('id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('activity_id', sa.BigInteger(), nullable=False),
        sa.Column('activity_name', sa.String(), nullable=False),
        sa.Column('activity_type', sa.String(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration', sa.Float(), nullable=False),
        sa.Column('distance', sa.Float(), nullable=False),
        sa.Column('elevation_gain', sa.Float(), nullable=True),
        sa.Column('fit_file_path', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'activity_id', name='uq_garmin_activity_user_activity'),
    )
    op.create_index('ix_garminactivity_user_id', 'garminactivity', ['user_id'])
    op.create_index('ix_garminactivity_activity_id', 'garminactivity', ['activity_id'])

    op.create_table('usersyncstatus',
        sa.Column('user_id', sqlmodel.sql.sqltypes.GUID(), nullable=False),
        sa.Column('last_sync_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
    )


def downgrade() -> None:
    op.drop_table('usersyncstatus')
    op.drop_index('ix_garminactivity_activity_id', table_name='garminactivity')
    op.drop_index('ix_garminactivity_user_id', table_name='garminactivity')
    op.drop_table('garminactivity')
    op.drop_index('ix_garminauth_user_id', table_name='garminauth')
    op.drop_table('garminauth')
