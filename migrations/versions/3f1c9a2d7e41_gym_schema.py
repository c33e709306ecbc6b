"""gym_schema

Revision ID: 3f1c9a2d7e41
Revises:
Create Date: 2026-10-18 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2d7e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('admin_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_admin_action_logs_id', 'admin_action_logs', ['id'])

    op.create_table(
        'packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('promo_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('promo_expires_at', sa.DateTime(), nullable=True),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('pt_sessions_quota', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_packages_id', 'packages', ['id'])

    op.create_table(
        'promo_codes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.String(), nullable=False),
        sa.Column('value', sa.Numeric(12, 2), nullable=False),
        sa.Column('max_discount', sa.Numeric(12, 2), nullable=True),
        sa.Column('min_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('starts_at', sa.DateTime(), nullable=True),
        sa.Column('ends_at', sa.DateTime(), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_promo_codes_id', 'promo_codes', ['id'])
    op.create_index('ix_promo_codes_code', 'promo_codes', ['code'], unique=True)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id'), nullable=False),
        sa.Column('promo_code_id', sa.Integer(), sa.ForeignKey('promo_codes.id'), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('payment_gateway', sa.String(), nullable=False, server_default='midtrans'),
        sa.Column('payment_token', sa.String(), nullable=True),
        sa.Column('payment_gateway_response', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_order_id', 'transactions', ['order_id'], unique=True)
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])

    op.create_table(
        'user_memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id'), nullable=False),
        sa.Column('transaction_id', sa.Integer(), sa.ForeignKey('transactions.id'), nullable=False, unique=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
    )
    op.create_index('ix_user_memberships_id', 'user_memberships', ['id'])
    op.create_index('ix_user_memberships_user_id', 'user_memberships', ['user_id'])

    op.create_table(
        'trainer_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('specialties', sa.String(), nullable=True),
        sa.Column('rate', sa.Numeric(12, 2), nullable=True),
        sa.Column('rating', sa.Numeric(3, 2), nullable=True),
    )
    op.create_index('ix_trainer_profiles_id', 'trainer_profiles', ['id'])

    op.create_table(
        'trainer_availabilities',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('trainer_id', sa.Integer(), sa.ForeignKey('trainer_profiles.id'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
    )
    op.create_index('ix_trainer_availabilities_id', 'trainer_availabilities', ['id'])
    op.create_index('ix_trainer_availabilities_trainer_id', 'trainer_availabilities', ['trainer_id'])

    op.create_table(
        'pt_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('trainer_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('status', sa.String(), nullable=False, server_default='BOOKED'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('exercises', sa.JSON(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_pt_sessions_id', 'pt_sessions', ['id'])
    op.create_index('ix_pt_sessions_trainer_id', 'pt_sessions', ['trainer_id'])
    op.create_index('ix_pt_sessions_member_id', 'pt_sessions', ['member_id'])
    op.create_index('ix_pt_sessions_scheduled_at', 'pt_sessions', ['scheduled_at'])

    op.create_table(
        'gym_classes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('instructor', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_gym_classes_id', 'gym_classes', ['id'])
    op.create_index('ix_gym_classes_start_time', 'gym_classes', ['start_time'])

    op.create_table(
        'class_bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('class_id', sa.Integer(), sa.ForeignKey('gym_classes.id'), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='booked'),
        sa.Column('checkin_code', sa.String(), nullable=False),
        sa.Column('checked_in_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_class_bookings_id', 'class_bookings', ['id'])
    op.create_index('ix_class_bookings_user_id', 'class_bookings', ['user_id'])
    op.create_index('ix_class_bookings_class_id', 'class_bookings', ['class_id'])
    op.create_index('ix_class_bookings_checkin_code', 'class_bookings', ['checkin_code'], unique=True)
    # ### end Alembic commands ###


def downgrade() -> None:
    op.drop_table('class_bookings')
    op.drop_table('gym_classes')
    op.drop_table('pt_sessions')
    op.drop_table('trainer_availabilities')
    op.drop_table('trainer_profiles')
    op.drop_table('user_memberships')
    op.drop_table('transactions')
    op.drop_table('promo_codes')
    op.drop_table('packages')
    op.drop_table('admin_action_logs')
    op.drop_table('users')
    # ### end Alembic commands ###
