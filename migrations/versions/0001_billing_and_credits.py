"""billing reconciliation, plan catalog and credit pricing tables

Revision ID: 0001_billing_and_credits
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_billing_and_credits'
down_revision = None
branch_labels = None
depends_on = None


def _ts(name, nullable=True, default_now=False):
    kwargs = {"server_default": sa.text("now()")} if default_now else {}
    return sa.Column(name, postgresql.TIMESTAMP(timezone=True), nullable=nullable, **kwargs)


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _ts('created_at', nullable=False, default_now=True),
        _ts('updated_at', nullable=False, default_now=True),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=64), nullable=True),
        sa.Column('subscription_tier', sa.String(length=32), nullable=False, server_default=sa.text("'free'")),
        sa.Column('status', sa.String(length=32), nullable=False, server_default=sa.text("'active'")),
        _ts('created_at', nullable=False, default_now=True),
        _ts('updated_at', nullable=False, default_now=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete="SET NULL"),
    )
    op.create_index('ix_customers_user_id', 'customers', ['user_id'])
    op.create_index('ix_customers_email', 'customers', ['email'])
    op.create_index('ix_customers_stripe_customer_id', 'customers', ['stripe_customer_id'], unique=True)

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('stripe_subscription_id', sa.String(length=64), nullable=False),
        sa.Column('stripe_price_id', sa.String(length=64), nullable=True),
        sa.Column('tier', sa.String(length=32), nullable=False, server_default=sa.text("'free'")),
        sa.Column('status', sa.String(length=32), nullable=False, server_default=sa.text("'incomplete'")),
        sa.Column('stripe_status', sa.String(length=32), nullable=True),
        _ts('current_period_start'),
        _ts('current_period_end'),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _ts('trial_start'),
        _ts('trial_end'),
        _ts('started_at', nullable=False, default_now=True),
        _ts('created_at', nullable=False, default_now=True),
        _ts('updated_at', nullable=False, default_now=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete="RESTRICT"),
    )
    op.create_index('ix_subscriptions_customer_id', 'subscriptions', ['customer_id'])
    # Upsert target for webhook reconciliation
    op.create_index('ix_subscriptions_stripe_subscription_id', 'subscriptions', ['stripe_subscription_id'], unique=True)
    op.create_index('ix_subscriptions_stripe_price_id', 'subscriptions', ['stripe_price_id'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])
    op.create_index('ix_subscriptions_current_period_end', 'subscriptions', ['current_period_end'])

    op.create_table(
        'billing_event_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('stripe_event_id', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=80), nullable=False),
        sa.Column('signature_valid', sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('retries', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('notes', sa.String(length=255), nullable=True),
        _ts('processed_at'),
        _ts('created_at', nullable=False, default_now=True),
    )
    op.create_index('ix_billing_event_logs_stripe_event_id', 'billing_event_logs', ['stripe_event_id'], unique=True)
    op.create_index('ix_billing_event_logs_type', 'billing_event_logs', ['type'])

    op.create_table(
        'plan_tiers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('billing_cycle', sa.String(length=16), nullable=False, server_default=sa.text("'month'")),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column('credits_monthly', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('is_popular', sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column('features', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column('stripe_price_id', sa.String(length=64), nullable=True),
        _ts('created_at', nullable=False, default_now=True),
        _ts('updated_at', nullable=False, default_now=True),
        sa.UniqueConstraint('name', name='uq_plan_tiers_name'),
    )
    op.create_index('ix_plan_tiers_stripe_price_id', 'plan_tiers', ['stripe_price_id'])

    op.create_table(
        'packs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_premium', sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _ts('created_at', nullable=False, default_now=True),
        _ts('updated_at', nullable=False, default_now=True),
    )

    op.create_table(
        'samples',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pack_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('sample_type', sa.String(length=16), nullable=False, server_default=sa.text("'One-shot'")),
        sa.Column('has_stems', sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column('credit_cost_override', sa.Integer(), nullable=True),
        _ts('created_at', nullable=False, default_now=True),
        _ts('updated_at', nullable=False, default_now=True),
        sa.ForeignKeyConstraint(['pack_id'], ['packs.id'], ondelete="CASCADE"),
        sa.CheckConstraint("sample_type IN ('One-shot', 'Loop')", name='ck_samples_sample_type'),
    )
    op.create_index('ix_samples_pack_id', 'samples', ['pack_id'])

    op.create_table(
        'credit_rules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('one_shot_standard', sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column('loop_standard', sa.Integer(), nullable=False, server_default=sa.text("3")),
        sa.Column('one_shot_premium', sa.Integer(), nullable=False, server_default=sa.text("8")),
        sa.Column('loop_premium', sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column('stems_bundle', sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column('full_pack_download', sa.Integer(), nullable=False, server_default=sa.text("8")),
        sa.Column('allow_pack_overrides', sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _ts('updated_at', nullable=False, default_now=True),
    )


def downgrade():
    op.drop_table('credit_rules')
    op.drop_index('ix_samples_pack_id', table_name='samples')
    op.drop_table('samples')
    op.drop_table('packs')
    op.drop_index('ix_plan_tiers_stripe_price_id', table_name='plan_tiers')
    op.drop_table('plan_tiers')
    op.drop_index('ix_billing_event_logs_type', table_name='billing_event_logs')
    op.drop_index('ix_billing_event_logs_stripe_event_id', table_name='billing_event_logs')
    op.drop_table('billing_event_logs')
    op.drop_index('ix_subscriptions_current_period_end', table_name='subscriptions')
    op.drop_index('ix_subscriptions_status', table_name='subscriptions')
    op.drop_index('ix_subscriptions_stripe_price_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_stripe_subscription_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_customer_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('ix_customers_stripe_customer_id', table_name='customers')
    op.drop_index('ix_customers_email', table_name='customers')
    op.drop_index('ix_customers_user_id', table_name='customers')
    op.drop_table('customers')
    op.drop_table('users')
