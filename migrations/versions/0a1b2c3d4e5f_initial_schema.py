"""initial schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:12:41.207318

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0a1b2c3d4e5f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('user',
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('email', sa.String(), nullable=False),
    sa.Column('role', sa.String(length=32), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("role IN ('group_admin', 'acc_admin', 'training_center_admin', 'instructor')"),
    sa.CheckConstraint("status IN ('pending', 'active', 'suspended', 'inactive')"),
    sa.PrimaryKeyConstraint('user_id'),
    sa.UniqueConstraint('email'),
    comment='Represents a login. ACC administrators are linked to their ACC by having the same e-mail address.'
    )
    op.create_table('acc',
    sa.Column('acc_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('legal_name', sa.String(), nullable=False),
    sa.Column('registration_number', sa.String(), nullable=True),
    sa.Column('country', sa.String(), nullable=False),
    sa.Column('email', sa.String(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('commission_percentage', sa.Numeric(precision=5, scale=2), nullable=True, comment='The share of the gross amount which is due to the ACC.'),
    sa.Column('stripe_account_id', sa.String(), nullable=True, comment='The ID of the connected Stripe account.'),
    sa.Column('stripe_connect_status', sa.String(length=16), nullable=True),
    sa.Column('stripe_last_status_check_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("status IN ('pending', 'approved', 'active', 'suspended', 'expired', 'rejected')"),
    sa.CheckConstraint("stripe_connect_status IN ('pending', 'connected', 'failed', 'inactive', 'updating')"),
    sa.CheckConstraint('commission_percentage IS NULL OR commission_percentage >= 0 AND commission_percentage <= 100'),
    sa.PrimaryKeyConstraint('acc_id'),
    sa.UniqueConstraint('email'),
    sa.UniqueConstraint('registration_number'),
    comment='An accreditation body, which authorizes training centers and instructors to run its courses.'
    )
    op.create_table('training_center',
    sa.Column('training_center_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('email', sa.String(), nullable=False),
    sa.Column('country', sa.String(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('stripe_account_id', sa.String(), nullable=True),
    sa.Column('stripe_connect_status', sa.String(length=16), nullable=True),
    sa.Column('stripe_last_status_check_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("status IN ('pending', 'active', 'suspended', 'inactive')"),
    sa.CheckConstraint("stripe_connect_status IN ('pending', 'connected', 'failed', 'inactive', 'updating')"),
    sa.PrimaryKeyConstraint('training_center_id'),
    sa.UniqueConstraint('email')
    )
    op.create_table('transaction',
    sa.Column('transaction_id', sa.Integer(), nullable=False),
    sa.Column('transaction_type', sa.String(length=32), nullable=False),
    sa.Column('payer_type', sa.String(length=32), nullable=False),
    sa.Column('payer_id', sa.Integer(), nullable=False),
    sa.Column('payee_type', sa.String(length=32), nullable=True),
    sa.Column('payee_id', sa.Integer(), nullable=True),
    sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
    sa.Column('commission_amount', sa.Numeric(precision=10, scale=2), nullable=True),
    sa.Column('provider_amount', sa.Numeric(precision=10, scale=2), nullable=True),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('payment_method', sa.String(length=16), nullable=False),
    sa.Column('payment_gateway_transaction_id', sa.String(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('description', sa.String(), nullable=True),
    sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("transaction_type IN ('subscription', 'code_purchase', 'material_purchase', 'course_purchase', 'instructor_authorization', 'commission', 'settlement')"),
    sa.CheckConstraint("status IN ('pending', 'completed', 'failed', 'refunded')"),
    sa.CheckConstraint("payment_method IN ('wallet', 'credit_card', 'bank_transfer')"),
    sa.CheckConstraint("payee_type IS NULL OR payee_type IN ('group', 'acc', 'training_center', 'instructor')"),
    sa.PrimaryKeyConstraint('transaction_id')
    )
    op.create_table('retry_transfer_signal',
    sa.Column('inserted_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('signal_id', sa.Integer(), nullable=False),
    sa.Column('transfer_id', sa.Integer(), nullable=False),
    sa.Column('base_delay_seconds', sa.Integer(), nullable=False),
    sa.PrimaryKeyConstraint('signal_id')
    )
    op.create_table('payout_transaction_signal',
    sa.Column('inserted_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('signal_id', sa.Integer(), nullable=False),
    sa.Column('transaction_id', sa.Integer(), nullable=False),
    sa.PrimaryKeyConstraint('signal_id')
    )
    op.create_table('acc_subscription',
    sa.Column('subscription_id', sa.Integer(), nullable=False),
    sa.Column('acc_id', sa.Integer(), nullable=False),
    sa.Column('subscription_start_date', sa.DATE(), nullable=False),
    sa.Column('subscription_end_date', sa.DATE(), nullable=False),
    sa.Column('renewal_date', sa.DATE(), nullable=True),
    sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
    sa.Column('payment_status', sa.String(length=16), nullable=False),
    sa.Column('payment_date', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('auto_renew', sa.BOOLEAN(), nullable=False),
    sa.CheckConstraint("payment_status IN ('pending', 'paid', 'overdue')"),
    sa.CheckConstraint('subscription_end_date >= subscription_start_date'),
    sa.CheckConstraint('amount >= 0'),
    sa.ForeignKeyConstraint(['acc_id'], ['acc.acc_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('subscription_id')
    )
    with op.batch_alter_table('acc_subscription', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_acc_subscription_acc_id'), ['acc_id'], unique=False)

    op.create_table('course',
    sa.Column('course_id', sa.Integer(), nullable=False),
    sa.Column('acc_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('code', sa.String(), nullable=False),
    sa.Column('duration_hours', sa.Integer(), nullable=True),
    sa.Column('max_capacity', sa.Integer(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.CheckConstraint("status IN ('active', 'inactive', 'archived')"),
    sa.ForeignKeyConstraint(['acc_id'], ['acc.acc_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('course_id'),
    sa.UniqueConstraint('acc_id', 'code')
    )
    with op.batch_alter_table('course', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_course_acc_id'), ['acc_id'], unique=False)

    op.create_table('discount_code',
    sa.Column('discount_code_id', sa.Integer(), nullable=False),
    sa.Column('acc_id', sa.Integer(), nullable=False),
    sa.Column('code', sa.String(), nullable=False),
    sa.Column('discount_type', sa.String(length=16), nullable=False),
    sa.Column('discount_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
    sa.Column('start_date', sa.DATE(), nullable=True),
    sa.Column('end_date', sa.DATE(), nullable=True),
    sa.Column('total_quantity', sa.Integer(), nullable=True),
    sa.Column('used_quantity', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("status IN ('active', 'expired', 'depleted', 'inactive')"),
    sa.CheckConstraint("discount_type IN ('time_limited', 'quantity_based')"),
    sa.CheckConstraint('discount_percentage > 0 AND discount_percentage <= 100'),
    sa.CheckConstraint('used_quantity >= 0'),
    sa.ForeignKeyConstraint(['acc_id'], ['acc.acc_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('discount_code_id'),
    sa.UniqueConstraint('code')
    )
    with op.batch_alter_table('discount_code', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_discount_code_acc_id'), ['acc_id'], unique=False)

    op.create_table('instructor',
    sa.Column('instructor_id', sa.Integer(), nullable=False),
    sa.Column('training_center_id', sa.Integer(), nullable=False),
    sa.Column('first_name', sa.String(), nullable=False),
    sa.Column('last_name', sa.String(), nullable=False),
    sa.Column('email', sa.String(), nullable=False),
    sa.Column('phone', sa.String(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('stripe_account_id', sa.String(), nullable=True),
    sa.Column('stripe_connect_status', sa.String(length=16), nullable=True),
    sa.Column('stripe_last_status_check_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.CheckConstraint("status IN ('pending', 'active', 'suspended', 'inactive')"),
    sa.CheckConstraint("stripe_connect_status IN ('pending', 'connected', 'failed', 'inactive', 'updating')"),
    sa.ForeignKeyConstraint(['training_center_id'], ['training_center.training_center_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('instructor_id'),
    sa.UniqueConstraint('email')
    )
    with op.batch_alter_table('instructor', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_instructor_training_center_id'), ['training_center_id'], unique=False)

    op.create_table('trainee',
    sa.Column('trainee_id', sa.Integer(), nullable=False),
    sa.Column('training_center_id', sa.Integer(), nullable=False),
    sa.Column('first_name', sa.String(), nullable=False),
    sa.Column('last_name', sa.String(), nullable=False),
    sa.Column('email', sa.String(), nullable=True),
    sa.Column('id_number', sa.String(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.CheckConstraint("status IN ('active', 'inactive', 'suspended')"),
    sa.ForeignKeyConstraint(['training_center_id'], ['training_center.training_center_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('trainee_id')
    )
    with op.batch_alter_table('trainee', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_trainee_training_center_id'), ['training_center_id'], unique=False)

    op.create_table('notification',
    sa.Column('notification_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('type', sa.String(), nullable=False),
    sa.Column('title', sa.String(), nullable=False),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('data', sa.JSON(), nullable=True),
    sa.Column('is_read', sa.BOOLEAN(), nullable=False),
    sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('notification_id')
    )
    with op.batch_alter_table('notification', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_notification_user_id'), ['user_id'], unique=False)

    op.create_table('transfer',
    sa.Column('transfer_id', sa.Integer(), nullable=False),
    sa.Column('transaction_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=True),
    sa.Column('payee_type', sa.String(length=32), nullable=True),
    sa.Column('payee_id', sa.Integer(), nullable=True),
    sa.Column('gross_amount', sa.Numeric(precision=10, scale=2), nullable=False),
    sa.Column('commission_amount', sa.Numeric(precision=10, scale=2), nullable=False),
    sa.Column('net_amount', sa.Numeric(precision=10, scale=2), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('stripe_transfer_id', sa.String(), nullable=True),
    sa.Column('stripe_account_id', sa.String(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('retry_count', sa.Integer(), nullable=False),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('failed_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('retry_scheduled_for', sa.TIMESTAMP(timezone=True), nullable=True, comment='When not NULL, a retry job will be enqueued at the given moment.'),
    sa.Column('retry_base_delay', sa.Integer(), nullable=True, comment='The base delay (in seconds) for the exponential backoff.'),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("status IN ('pending', 'processing', 'completed', 'failed', 'retrying')"),
    sa.CheckConstraint('retry_count >= 0'),
    sa.CheckConstraint('net_amount >= 0'),
    sa.CheckConstraint("retry_scheduled_for IS NULL OR status = 'failed' AND retry_base_delay > 0"),
    sa.ForeignKeyConstraint(['transaction_id'], ['transaction.transaction_id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['user.user_id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('transfer_id'),
    sa.UniqueConstraint('stripe_transfer_id'),
    comment='A payout of earnings to a payee\'s connected Stripe account. A failed transfer is retried automatically, with an exponential backoff, until `retry_count` reaches the maximum number of automatic retries.'
    )
    with op.batch_alter_table('transfer', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_transfer_transaction_id'), ['transaction_id'], unique=True)
        batch_op.create_index('idx_transfer_retry_scheduled_for', ['retry_scheduled_for'], unique=False, postgresql_where=sa.text('retry_scheduled_for IS NOT NULL'))

    op.create_table('training_class',
    sa.Column('training_class_id', sa.Integer(), nullable=False),
    sa.Column('training_center_id', sa.Integer(), nullable=False),
    sa.Column('course_id', sa.Integer(), nullable=False),
    sa.Column('instructor_id', sa.Integer(), nullable=True),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('start_date', sa.DATE(), nullable=True),
    sa.Column('end_date', sa.DATE(), nullable=True),
    sa.Column('enrolled_count', sa.Integer(), nullable=False),
    sa.Column('location', sa.String(length=16), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.CheckConstraint("status IN ('scheduled', 'in_progress', 'completed', 'cancelled')"),
    sa.CheckConstraint("location IN ('physical', 'online')"),
    sa.CheckConstraint('enrolled_count >= 0'),
    sa.ForeignKeyConstraint(['course_id'], ['course.course_id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['instructor_id'], ['instructor.instructor_id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['training_center_id'], ['training_center.training_center_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('training_class_id'),
    comment='A class held by a training center. The status is recalculated from the start and end dates, except for cancelled classes.'
    )
    with op.batch_alter_table('training_class', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_training_class_training_center_id'), ['training_center_id'], unique=False)

    op.create_table('commission_ledger',
    sa.Column('ledger_id', sa.Integer(), nullable=False),
    sa.Column('transaction_id', sa.Integer(), nullable=False),
    sa.Column('acc_id', sa.Integer(), nullable=True),
    sa.Column('training_center_id', sa.Integer(), nullable=True),
    sa.Column('instructor_id', sa.Integer(), nullable=True),
    sa.Column('group_commission_amount', sa.Numeric(precision=10, scale=2), nullable=False),
    sa.Column('group_commission_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
    sa.Column('acc_commission_amount', sa.Numeric(precision=10, scale=2), nullable=True),
    sa.Column('acc_commission_percentage', sa.Numeric(precision=5, scale=2), nullable=True),
    sa.Column('settlement_status', sa.String(length=16), nullable=False),
    sa.Column('settlement_date', sa.DATE(), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("settlement_status IN ('pending', 'paid')"),
    sa.ForeignKeyConstraint(['acc_id'], ['acc.acc_id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['instructor_id'], ['instructor.instructor_id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['training_center_id'], ['training_center.training_center_id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['transaction_id'], ['transaction.transaction_id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('ledger_id'),
    comment="Records the platform's commission on a transaction, until it gets settled."
    )
    with op.batch_alter_table('commission_ledger', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_commission_ledger_transaction_id'), ['transaction_id'], unique=False)

    op.create_table('certificate',
    sa.Column('certificate_id', sa.Integer(), nullable=False),
    sa.Column('certificate_number', sa.String(), nullable=False),
    sa.Column('course_id', sa.Integer(), nullable=False),
    sa.Column('training_center_id', sa.Integer(), nullable=False),
    sa.Column('training_class_id', sa.Integer(), nullable=True),
    sa.Column('instructor_id', sa.Integer(), nullable=True),
    sa.Column('trainee_name', sa.String(), nullable=False),
    sa.Column('trainee_id_number', sa.String(), nullable=True),
    sa.Column('issue_date', sa.DATE(), nullable=False),
    sa.Column('expiry_date', sa.DATE(), nullable=True),
    sa.Column('verification_code', sa.String(), nullable=False),
    sa.Column('certificate_pdf_url', sa.String(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('type', sa.String(length=16), nullable=True, comment='Derived from `instructor_id` and `trainee_name`. Recalculated on save when not set, or when one of those columns changes.'),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.CheckConstraint("status IN ('valid', 'revoked', 'expired')"),
    sa.CheckConstraint("type IS NULL OR type IN ('instructor', 'trainee')"),
    sa.ForeignKeyConstraint(['course_id'], ['course.course_id'], ),
    sa.ForeignKeyConstraint(['instructor_id'], ['instructor.instructor_id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['training_center_id'], ['training_center.training_center_id'], ),
    sa.ForeignKeyConstraint(['training_class_id'], ['training_class.training_class_id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('certificate_id'),
    sa.UniqueConstraint('certificate_number'),
    sa.UniqueConstraint('verification_code')
    )
    with op.batch_alter_table('certificate', schema=None) as batch_op:
        batch_op.create_index('idx_certificate_expiry_date', ['status', 'expiry_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_certificate_training_center_id'), ['training_center_id'], unique=False)


def downgrade():
    with op.batch_alter_table('certificate', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_certificate_training_center_id'))
        batch_op.drop_index('idx_certificate_expiry_date')

    op.drop_table('certificate')
    with op.batch_alter_table('commission_ledger', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_commission_ledger_transaction_id'))

    op.drop_table('commission_ledger')
    with op.batch_alter_table('training_class', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_training_class_training_center_id'))

    op.drop_table('training_class')
    with op.batch_alter_table('transfer', schema=None) as batch_op:
        batch_op.drop_index('idx_transfer_retry_scheduled_for', postgresql_where=sa.text('retry_scheduled_for IS NOT NULL'))
        batch_op.drop_index(batch_op.f('ix_transfer_transaction_id'))

    op.drop_table('transfer')
    with op.batch_alter_table('notification', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_notification_user_id'))

    op.drop_table('notification')
    with op.batch_alter_table('trainee', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_trainee_training_center_id'))

    op.drop_table('trainee')
    with op.batch_alter_table('instructor', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_instructor_training_center_id'))

    op.drop_table('instructor')
    with op.batch_alter_table('discount_code', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_discount_code_acc_id'))

    op.drop_table('discount_code')
    with op.batch_alter_table('course', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_course_acc_id'))

    op.drop_table('course')
    with op.batch_alter_table('acc_subscription', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_acc_subscription_acc_id'))

    op.drop_table('acc_subscription')
    op.drop_table('payout_transaction_signal')
    op.drop_table('retry_transfer_signal')
    op.drop_table('transaction')
    op.drop_table('training_center')
    op.drop_table('acc')
    op.drop_table('user')
