"""Initial channel sync schema

Revision ID: 0001
Revises:
Create Date: 2025-08-02 12:30:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Room stock is written by the hotel management application
    op.create_table('rooms',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('hotel_id', sa.String(length=64), nullable=False),
        sa.Column('number', sa.String(length=20), nullable=False),
        sa.Column('room_type', sa.String(length=20), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hotel_id', 'number', name='uq_room_hotel_number')
    )
    op.create_index(op.f('ix_rooms_hotel_id'), 'rooms', ['hotel_id'], unique=False)
    op.create_index(op.f('ix_rooms_room_type'), 'rooms', ['room_type'], unique=False)

    # Create ota_channels table
    op.create_table('ota_channels',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('hotel_id', sa.String(length=64), nullable=False),
        sa.Column('channel_type', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('property_id', sa.String(length=128), nullable=True),
        sa.Column('api_endpoint', sa.String(length=512), nullable=True),
        sa.Column('credentials', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'error', 'testing')",
            name='ck_channel_status_valid'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hotel_id', 'channel_type', 'property_id', name='uq_channel_hotel_type_property')
    )
    op.create_index(op.f('ix_ota_channels_hotel_id'), 'ota_channels', ['hotel_id'], unique=False)
    op.create_index(op.f('ix_ota_channels_channel_type'), 'ota_channels', ['channel_type'], unique=False)
    op.create_index(op.f('ix_ota_channels_status'), 'ota_channels', ['status'], unique=False)

    # Create channel_rate_plans table
    op.create_table('channel_rate_plans',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_type', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_rate', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('weekend_surcharge', sa.Numeric(precision=10, scale=2), server_default='0', nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), server_default='0', nullable=False),
        sa.Column('discount_percentage', sa.Numeric(precision=6, scale=2), server_default='0', nullable=False),
        sa.Column('seasonal_rates', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('base_rate >= 0', name='ck_rate_plan_base_rate_non_negative'),
        sa.CheckConstraint('tax_rate >= 0', name='ck_rate_plan_tax_rate_non_negative'),
        sa.ForeignKeyConstraint(['channel_id'], ['ota_channels.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('channel_id', 'room_type', name='uq_rate_plan_channel_room_type')
    )
    op.create_index(op.f('ix_channel_rate_plans_channel_id'), 'channel_rate_plans', ['channel_id'], unique=False)

    # Create channel_room_mappings table
    op.create_table('channel_room_mappings',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_type', sa.String(length=20), nullable=False),
        sa.Column('room_id', sa.String(length=64), nullable=True),
        sa.Column('external_room_id', sa.String(length=128), nullable=False),
        sa.Column('external_rate_plan_id', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['channel_id'], ['ota_channels.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('channel_id', 'room_type', name='uq_room_mapping_channel_room_type')
    )
    op.create_index(op.f('ix_channel_room_mappings_channel_id'), 'channel_room_mappings', ['channel_id'], unique=False)

    # Sync logs survive channel deletion
    op.create_table('channel_sync_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('hotel_id', sa.String(length=64), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('sync_type', sa.String(length=20), nullable=False),
        sa.Column('direction', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('records_processed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('records_successful', sa.Integer(), server_default='0', nullable=False),
        sa.Column('records_failed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('request_payload', sa.JSON(), nullable=True),
        sa.Column('response_payload', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.CheckConstraint('records_processed >= 0', name='ck_sync_log_processed_non_negative'),
        sa.CheckConstraint('records_successful >= 0', name='ck_sync_log_successful_non_negative'),
        sa.CheckConstraint('records_failed >= 0', name='ck_sync_log_failed_non_negative'),
        sa.CheckConstraint(
            "status IN ('pending', 'success', 'failed', 'partial')",
            name='ck_sync_log_status_valid'
        ),
        sa.ForeignKeyConstraint(['channel_id'], ['ota_channels.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_channel_sync_logs_hotel_id'), 'channel_sync_logs', ['hotel_id'], unique=False)
    op.create_index(op.f('ix_channel_sync_logs_channel_id'), 'channel_sync_logs', ['channel_id'], unique=False)
    op.create_index(op.f('ix_channel_sync_logs_status'), 'channel_sync_logs', ['status'], unique=False)
    op.create_index(op.f('ix_channel_sync_logs_started_at'), 'channel_sync_logs', ['started_at'], unique=False)

    # Create channel_bookings table
    op.create_table('channel_bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('hotel_id', sa.String(length=64), nullable=False),
        sa.Column('channel_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('external_reservation_id', sa.String(length=128), nullable=False),
        sa.Column('guest_name', sa.String(length=255), nullable=False),
        sa.Column('guest_email', sa.String(length=255), nullable=True),
        sa.Column('check_in', sa.Date(), nullable=False),
        sa.Column('check_out', sa.Date(), nullable=False),
        sa.Column('room_type', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='EUR', nullable=False),
        sa.Column('commission_amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('raw_payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['channel_id'], ['ota_channels.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('channel_id', 'external_reservation_id', name='uq_channel_booking_external_id')
    )
    op.create_index(op.f('ix_channel_bookings_hotel_id'), 'channel_bookings', ['hotel_id'], unique=False)
    op.create_index(op.f('ix_channel_bookings_channel_id'), 'channel_bookings', ['channel_id'], unique=False)
    op.create_index(op.f('ix_channel_bookings_status'), 'channel_bookings', ['status'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('channel_bookings')
    op.drop_table('channel_sync_logs')
    op.drop_table('channel_room_mappings')
    op.drop_table('channel_rate_plans')
    op.drop_table('ota_channels')
    op.drop_table('rooms')
