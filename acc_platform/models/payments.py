from __future__ import annotations
from datetime import datetime
from sqlalchemy.sql.expression import and_, or_, null
from acc_platform.extensions import db
from .common import get_now_utc, in_values, MAX_AUTOMATIC_RETRIES

PAYEE_TYPES = ["group", "acc", "training_center", "instructor"]
TRANSACTION_STATUSES = ["pending", "completed", "failed", "refunded"]
TRANSFER_STATUSES = [
    "pending",
    "processing",
    "completed",
    "failed",
    "retrying",
]


class Transaction(db.Model):
    transaction_id = db.Column(db.Integer, primary_key=True)
    transaction_type = db.Column(db.String(32), nullable=False)
    payer_type = db.Column(db.String(32), nullable=False)
    payer_id = db.Column(db.Integer, nullable=False)
    payee_type = db.Column(db.String(32))
    payee_id = db.Column(db.Integer)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(10, 2))
    provider_amount = db.Column(db.Numeric(10, 2))
    currency = db.Column(db.String(3), nullable=False, default="USD")
    payment_method = db.Column(
        db.String(16), nullable=False, default="credit_card"
    )
    payment_gateway_transaction_id = db.Column(db.String)
    status = db.Column(db.String(16), nullable=False, default="pending")
    description = db.Column(db.String)
    completed_at = db.Column(db.TIMESTAMP(timezone=True))
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(
            transaction_type,
            [
                "subscription",
                "code_purchase",
                "material_purchase",
                "course_purchase",
                "instructor_authorization",
                "commission",
                "settlement",
            ],
        ),
        in_values(status, TRANSACTION_STATUSES),
        in_values(payment_method, ["wallet", "credit_card", "bank_transfer"]),
        db.CheckConstraint(
            or_(payee_type == null(), payee_type.in_(PAYEE_TYPES))
        ),
    )


class CommissionLedger(db.Model):
    ledger_id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("transaction.transaction_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    acc_id = db.Column(
        db.Integer, db.ForeignKey("acc.acc_id", ondelete="SET NULL")
    )
    training_center_id = db.Column(
        db.Integer,
        db.ForeignKey(
            "training_center.training_center_id", ondelete="SET NULL"
        ),
    )
    instructor_id = db.Column(
        db.Integer,
        db.ForeignKey("instructor.instructor_id", ondelete="SET NULL"),
    )
    group_commission_amount = db.Column(
        db.Numeric(10, 2), nullable=False, default=0
    )
    group_commission_percentage = db.Column(
        db.Numeric(5, 2), nullable=False, default=0
    )
    acc_commission_amount = db.Column(db.Numeric(10, 2))
    acc_commission_percentage = db.Column(db.Numeric(5, 2))
    settlement_status = db.Column(
        db.String(16), nullable=False, default="pending"
    )
    settlement_date = db.Column(db.DATE)
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(settlement_status, ["pending", "paid"]),
        {
            "comment": (
                "Records the platform's commission on a transaction, until"
                " it gets settled."
            ),
        },
    )


class Transfer(db.Model):
    transfer_id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("transaction.transaction_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        unique=True,
        comment="A transaction gets paid out by one transfer at most.",
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.user_id", ondelete="SET NULL")
    )
    payee_type = db.Column(db.String(32))
    payee_id = db.Column(db.Integer)
    gross_amount = db.Column(db.Numeric(10, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(10, 2), nullable=False)
    net_amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    stripe_transfer_id = db.Column(db.String, unique=True)
    stripe_account_id = db.Column(db.String)
    status = db.Column(db.String(16), nullable=False, default="pending")
    retry_count = db.Column(db.Integer, nullable=False, default=0)
    error_message = db.Column(db.Text)
    processed_at = db.Column(db.TIMESTAMP(timezone=True))
    completed_at = db.Column(db.TIMESTAMP(timezone=True))
    failed_at = db.Column(db.TIMESTAMP(timezone=True))
    retry_scheduled_for = db.Column(
        db.TIMESTAMP(timezone=True),
        comment=(
            "When not NULL, a retry job will be enqueued at the given"
            " moment."
        ),
    )
    retry_base_delay = db.Column(
        db.Integer,
        comment="The base delay (in seconds) for the exponential backoff.",
    )
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(status, TRANSFER_STATUSES),
        db.CheckConstraint(retry_count >= 0),
        db.CheckConstraint(net_amount >= 0),
        db.CheckConstraint(
            or_(
                retry_scheduled_for == null(),
                and_(status == "failed", retry_base_delay > 0),
            )
        ),
        db.Index(
            "idx_transfer_retry_scheduled_for",
            retry_scheduled_for,
            postgresql_where=retry_scheduled_for != null(),
        ),
        {
            "comment": (
                "A payout of earnings to a payee's connected Stripe account."
                " A failed transfer is retried automatically, with an"
                " exponential backoff, until `retry_count` reaches the"
                " maximum number of automatic retries."
            ),
        },
    )

    @property
    def can_retry(self) -> bool:
        return (
            self.status == "failed"
            and self.retry_count < MAX_AUTOMATIC_RETRIES
        )

    def mark_as_retrying(self) -> None:
        self.status = "retrying"

    def mark_as_processing(self, current_ts: datetime) -> None:
        self.status = "processing"
        self.processed_at = current_ts

    def mark_as_completed(
            self,
            stripe_transfer_id: str,
            current_ts: datetime,
    ) -> None:
        self.status = "completed"
        self.stripe_transfer_id = stripe_transfer_id
        self.completed_at = current_ts
        self.error_message = None
        self.retry_scheduled_for = None

    def mark_as_failed(self, error_message: str, current_ts: datetime) -> None:
        self.status = "failed"
        self.error_message = error_message
        self.failed_at = current_ts
        self.retry_count += 1


class Notification(db.Model):
    notification_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = db.Column(db.String, nullable=False)
    title = db.Column(db.String, nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON)
    is_read = db.Column(db.BOOLEAN, nullable=False, default=False)
    read_at = db.Column(db.TIMESTAMP(timezone=True))
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
