"""
Initial schema

This migration creates:
1. users - Accounts, device id, last known location, online mirror
2. friendships - Friend requests / friendships, unique per (user_id, friend_id)
3. location_channels - Geofenced channels, 0 < radius <= 10 km
4. channel_participants - Channel membership, composite primary key
5. active_calls - Live 1:1 and group calls

Revision ID: 20261018_initial_schema
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261018_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('device_id', sa.String(length=255), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('location_updated_at', sa.DateTime(), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('last_seen', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_is_online', 'users', ['is_online'])

    op.create_table(
        'friendships',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('friend_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'friend_id', name='uq_friendship_pair'),
    )
    op.create_index('ix_friendships_user_id', 'friendships', ['user_id'])
    op.create_index('ix_friendships_friend_id', 'friendships', ['friend_id'])

    op.create_table(
        'location_channels',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('radius', sa.Float(), nullable=False),
        sa.Column('created_by', sa.String(length=36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('radius > 0 AND radius <= 10', name='ck_channel_radius'),
    )

    op.create_table(
        'channel_participants',
        sa.Column('channel_id', sa.String(length=36),
                  sa.ForeignKey('location_channels.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(length=36),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_channel_participants_user_id', 'channel_participants', ['user_id'])

    op.create_table(
        'active_calls',
        sa.Column('id', sa.String(length=128), primary_key=True),
        sa.Column('caller_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('callee_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('channel_id', sa.String(length=36),
                  sa.ForeignKey('location_channels.id', ondelete='CASCADE'), nullable=True),
        sa.Column('is_group', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('audio_stream_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_active_calls_caller_id', 'active_calls', ['caller_id'])
    op.create_index('ix_active_calls_callee_id', 'active_calls', ['callee_id'])
    op.create_index('ix_active_calls_channel_id', 'active_calls', ['channel_id'])


def downgrade():
    op.drop_table('active_calls')
    op.drop_table('channel_participants')
    op.drop_table('location_channels')
    op.drop_table('friendships')
    op.drop_table('users')
