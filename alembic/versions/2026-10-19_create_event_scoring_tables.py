"""Create event scoring tables

Revision ID: 7f3a91c2d4e8
Revises: 
Create Date: 2026-10-19 09:12:44.517203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '7f3a91c2d4e8'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_table(
        'rules',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('rule_type', sa.String(), nullable=False),
        sa.Column('config', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'event_rules',
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('rule_id', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['rule_id'], ['rules.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('event_id', 'rule_id')
    )
    op.create_table(
        'event_participants',
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('total_km', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_points', sa.Float(), nullable=False, server_default='0'),
        sa.Column('active_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('event_id', 'user_id')
    )
    op.create_index('ix_event_participants_user_id', 'event_participants', ['user_id'])
    op.create_table(
        'event_activities',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('activity_date', sa.Date(), nullable=False),
        sa.Column('source_activity_id', sa.BigInteger(), nullable=True),
        sa.Column('activity_type', sa.String(), nullable=False),
        sa.Column('start_local', sa.DateTime(), nullable=False),
        sa.Column('distance_meters', sa.Float(), nullable=False),
        sa.Column('distance_km', sa.Float(), nullable=False),
        sa.Column('moving_time_seconds', sa.Integer(), nullable=False),
        sa.Column('pace_min_per_km', sa.Float(), nullable=True),
        sa.Column('base_points', sa.Float(), nullable=False),
        sa.Column('final_points', sa.Float(), nullable=False),
        sa.Column('bonus_type', sa.String(), nullable=True),
        sa.Column('bonus_message', sa.String(), nullable=True),
        sa.Column('bonus_multiplier', sa.Float(), nullable=False, server_default='1'),
        sa.Column('rejected_bonuses', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'event_id', 'activity_date',
            name='uq_event_activity_user_event_date'
        )
    )
    op.create_index('ix_event_activities_user_id', 'event_activities', ['user_id'])
    op.create_index('ix_event_activities_event_id', 'event_activities', ['event_id'])
    op.create_index(
        'ix_event_activities_source_activity_id', 'event_activities', ['source_activity_id']
    )
    op.create_table(
        'user_streaks',
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_active_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('event_id', 'user_id')
    )
    op.create_table(
        'event_completions',
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('active_days', sa.Integer(), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('required_days', sa.Integer(), nullable=False),
        sa.Column('grace_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('missed_days', sa.Integer(), nullable=False),
        sa.Column('completion_percentage', sa.Float(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('badge_type', sa.String(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('event_id', 'user_id')
    )
    op.create_table(
        'event_penalties',
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('active_days', sa.Integer(), nullable=False),
        sa.Column('missed_days', sa.Integer(), nullable=False),
        sa.Column('penalty_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('event_id', 'user_id')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('event_penalties')
    op.drop_table('event_completions')
    op.drop_table('user_streaks')
    op.drop_index('ix_event_activities_source_activity_id', table_name='event_activities')
    op.drop_index('ix_event_activities_event_id', table_name='event_activities')
    op.drop_index('ix_event_activities_user_id', table_name='event_activities')
    op.drop_table('event_activities')
    op.drop_index('ix_event_participants_user_id', table_name='event_participants')
    op.drop_table('event_participants')
    op.drop_table('event_rules')
    op.drop_table('rules')
    op.drop_index('ix_events_status', table_name='events')
    op.drop_table('events')
    op.drop_table('users')
