"""Create hosts, availability windows, meetings and booking slots

Revision ID: 3c1e7a5b9d20
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e7a5b9d20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('has_full_license', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('timezone', sa.String(), nullable=False, server_default='UTC'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'user_availability',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_user_availability_day'),
        sa.CheckConstraint('start_time < end_time', name='ck_user_availability_order'),
    )
    op.create_index('idx_user_availability_host_day', 'user_availability', ['host_id', 'day_of_week'])

    op.create_table(
        'meetings',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('timezone', sa.String(), nullable=False, server_default='UTC'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('booker_name', sa.String(), nullable=True),
        sa.Column('booker_email', sa.String(), nullable=True),
        sa.Column('meeting_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('end_time > start_time', name='ck_meetings_order'),
    )
    op.create_index('idx_meetings_host_start', 'meetings', ['host_id', 'start_time'])
    # One live meeting per host and start instant; cancelled rows do not count
    op.create_index(
        'uq_meetings_host_start_live',
        'meetings',
        ['host_id', 'start_time'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        'booking_slots',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('is_booked', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('booked_by_email', sa.String(), nullable=True),
        sa.Column('booked_by_name', sa.String(), nullable=True),
        sa.Column('meeting_id', sa.String(), sa.ForeignKey('meetings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('host_id', 'slot_date', 'start_time', name='uq_booking_slots_host_date_start'),
    )


def downgrade() -> None:
    op.drop_table('booking_slots')
    op.drop_index('uq_meetings_host_start_live', table_name='meetings')
    op.drop_index('idx_meetings_host_start', table_name='meetings')
    op.drop_table('meetings')
    op.drop_index('idx_user_availability_host_day', table_name='user_availability')
    op.drop_table('user_availability')
    op.drop_table('users')
