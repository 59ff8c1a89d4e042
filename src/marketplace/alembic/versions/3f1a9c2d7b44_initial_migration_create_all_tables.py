"""Initial migration: Create all tables

Revision ID: 3f1a9c2d7b44
Revises: 
Create Date: 2025-01-06 10:12:31.208114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b44'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE_ROWS = "is_deleted = false"
ACTIVE_OFFER_ROWS = f"status IN ('pending', 'countered') AND {LIVE_ROWS}"
ACCEPTED_OFFER_ROWS = f"status = 'accepted' AND {LIVE_ROWS}"


def _base_columns():
    return [
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    ]


def _partial_unique_index(name, table, columns, predicate):
    op.create_index(
        name, table, columns,
        unique=True,
        sqlite_where=sa.text(predicate),
        postgresql_where=sa.text(predicate),
    )


def upgrade() -> None:
    """Upgrade schema."""
    # Create users table
    op.create_table('users',
        *_base_columns(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('role', sa.String(), nullable=False, server_default='buyer'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('ratings_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ratings_sum', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
    )
    op.create_index('ix_users_is_deleted', 'users', ['is_deleted'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    # Create properties table
    op.create_table('properties',
        *_base_columns(),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('property_type', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='draft'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('price_type', sa.String(), nullable=False, server_default='sale'),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Integer(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('agent_id', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('ratings_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ratings_sum', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('favorites_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('views_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('boost_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('boost_computed_at', sa.DateTime(), nullable=True),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='0'),
    )
    for column in ('is_deleted', 'property_type', 'status', 'price', 'city', 'owner_id', 'agent_id',
                   'views_count', 'boost_score'):
        op.create_index(f'ix_properties_{column}', 'properties', [column])
    op.create_index('ix_properties_price_bedrooms', 'properties', ['price', 'bedrooms'])
    op.create_index('ix_properties_city_price', 'properties', ['city', 'price'])

    # Create offers table
    op.create_table('offers',
        *_base_columns(),
        sa.Column('property_id', sa.String(), sa.ForeignKey('properties.id'), nullable=False),
        sa.Column('buyer_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('status_reason', sa.String(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
    )
    for column in ('is_deleted', 'property_id', 'buyer_id', 'status'):
        op.create_index(f'ix_offers_{column}', 'offers', [column])
    op.create_index('ix_offers_property_buyer', 'offers', ['property_id', 'buyer_id'])
    _partial_unique_index('uq_offers_active_buyer_property', 'offers', ['buyer_id', 'property_id'], ACTIVE_OFFER_ROWS)
    _partial_unique_index('uq_offers_accepted_property', 'offers', ['property_id'], ACCEPTED_OFFER_ROWS)

    # Create bookings table
    op.create_table('bookings',
        *_base_columns(),
        sa.Column('property_id', sa.String(), sa.ForeignKey('properties.id'), nullable=False),
        sa.Column('buyer_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('ends_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
    )
    for column in ('is_deleted', 'property_id', 'buyer_id', 'scheduled_date'):
        op.create_index(f'ix_bookings_{column}', 'bookings', [column])
    op.create_index('ix_bookings_property_scheduled_date', 'bookings', ['property_id', 'scheduled_date'])
    op.create_index('ix_bookings_property_status', 'bookings', ['property_id', 'status'])

    # Create reviews table
    op.create_table('reviews',
        *_base_columns(),
        sa.Column('property_id', sa.String(), sa.ForeignKey('properties.id'), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
    )
    for column in ('is_deleted', 'property_id', 'user_id'):
        op.create_index(f'ix_reviews_{column}', 'reviews', [column])
    _partial_unique_index('uq_reviews_live_property_user', 'reviews', ['property_id', 'user_id'], LIVE_ROWS)

    # Create favorites table
    op.create_table('favorites',
        *_base_columns(),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('property_id', sa.String(), sa.ForeignKey('properties.id'), nullable=False),
    )
    for column in ('is_deleted', 'user_id', 'property_id'):
        op.create_index(f'ix_favorites_{column}', 'favorites', [column])
    _partial_unique_index('uq_favorites_live_user_property', 'favorites', ['user_id', 'property_id'], LIVE_ROWS)

    # Create notifications table
    op.create_table('notifications',
        *_base_columns(),
        sa.Column('recipient_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('entity_type', sa.String(), nullable=True),
        sa.Column('entity_id', sa.String(), nullable=True),
    )
    for column in ('is_deleted', 'recipient_id', 'type', 'is_read'):
        op.create_index(f'ix_notifications_{column}', 'notifications', [column])
    op.create_index('ix_notifications_recipient_is_read', 'notifications', ['recipient_id', 'is_read'])

    # Create analytics table
    op.create_table('analytics',
        *_base_columns(),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
    )
    for column in ('is_deleted', 'entity_type', 'entity_id', 'event_type', 'user_id'):
        op.create_index(f'ix_analytics_{column}', 'analytics', [column])
    op.create_index('ix_analytics_entity_event', 'analytics', ['entity_type', 'entity_id', 'event_type'])
    op.create_index('ix_analytics_created_at', 'analytics', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    # Drop tables in reverse order of dependencies
    op.drop_table('analytics')
    op.drop_table('notifications')
    op.drop_table('favorites')
    op.drop_table('reviews')
    op.drop_table('bookings')
    op.drop_table('offers')
    op.drop_table('properties')
    op.drop_table('users')
