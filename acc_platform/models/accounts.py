from __future__ import annotations
from sqlalchemy.sql.expression import and_, or_, null
from acc_platform.extensions import db
from .common import get_now_utc, in_values

USER_ROLES = [
    "group_admin",
    "acc_admin",
    "training_center_admin",
    "instructor",
]
USER_STATUSES = ["pending", "active", "suspended", "inactive"]
ACC_STATUSES = [
    "pending",
    "approved",
    "active",
    "suspended",
    "expired",
    "rejected",
]
SUBSCRIPTION_PAYMENT_STATUSES = ["pending", "paid", "overdue"]
STRIPE_CONNECT_STATUSES = [
    "pending",
    "connected",
    "failed",
    "inactive",
    "updating",
]


class User(db.Model):
    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    email = db.Column(db.String, nullable=False, unique=True)
    role = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(role, USER_ROLES),
        in_values(status, USER_STATUSES),
        {
            "comment": (
                "Represents a login. ACC administrators are linked to their"
                " ACC by having the same e-mail address."
            ),
        },
    )


class Acc(db.Model):
    acc_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    legal_name = db.Column(db.String, nullable=False, default="")
    registration_number = db.Column(db.String, unique=True)
    country = db.Column(db.String, nullable=False, default="")
    email = db.Column(db.String, nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    commission_percentage = db.Column(
        db.Numeric(5, 2),
        comment="The share of the gross amount which is due to the ACC.",
    )
    stripe_account_id = db.Column(
        db.String, comment="The ID of the connected Stripe account."
    )
    stripe_connect_status = db.Column(db.String(16))
    stripe_last_status_check_at = db.Column(db.TIMESTAMP(timezone=True))
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(status, ACC_STATUSES),
        in_values(stripe_connect_status, STRIPE_CONNECT_STATUSES),
        db.CheckConstraint(
            or_(
                commission_percentage == null(),
                and_(
                    commission_percentage >= 0,
                    commission_percentage <= 100,
                ),
            )
        ),
        {
            "comment": (
                "An accreditation body, which authorizes training centers"
                " and instructors to run its courses."
            ),
        },
    )


class AccSubscription(db.Model):
    subscription_id = db.Column(db.Integer, primary_key=True)
    acc_id = db.Column(
        db.Integer,
        db.ForeignKey("acc.acc_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscription_start_date = db.Column(db.DATE, nullable=False)
    subscription_end_date = db.Column(db.DATE, nullable=False)
    renewal_date = db.Column(db.DATE)
    amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    payment_status = db.Column(
        db.String(16), nullable=False, default="pending"
    )
    payment_date = db.Column(db.TIMESTAMP(timezone=True))
    auto_renew = db.Column(db.BOOLEAN, nullable=False, default=False)
    __table_args__ = (
        in_values(payment_status, SUBSCRIPTION_PAYMENT_STATUSES),
        db.CheckConstraint(
            subscription_end_date >= subscription_start_date
        ),
        db.CheckConstraint(amount >= 0),
    )

    acc = db.relationship("Acc", backref="subscriptions")


class TrainingCenter(db.Model):
    training_center_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    email = db.Column(db.String, nullable=False, unique=True)
    country = db.Column(db.String, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default="pending")
    stripe_account_id = db.Column(db.String)
    stripe_connect_status = db.Column(db.String(16))
    stripe_last_status_check_at = db.Column(db.TIMESTAMP(timezone=True))
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(status, ["pending", "active", "suspended", "inactive"]),
        in_values(stripe_connect_status, STRIPE_CONNECT_STATUSES),
    )


class Instructor(db.Model):
    instructor_id = db.Column(db.Integer, primary_key=True)
    training_center_id = db.Column(
        db.Integer,
        db.ForeignKey(
            "training_center.training_center_id", ondelete="CASCADE"
        ),
        nullable=False,
        index=True,
    )
    first_name = db.Column(db.String, nullable=False)
    last_name = db.Column(db.String, nullable=False)
    email = db.Column(db.String, nullable=False, unique=True)
    phone = db.Column(db.String, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default="pending")
    stripe_account_id = db.Column(db.String)
    stripe_connect_status = db.Column(db.String(16))
    stripe_last_status_check_at = db.Column(db.TIMESTAMP(timezone=True))
    __table_args__ = (
        in_values(status, ["pending", "active", "suspended", "inactive"]),
        in_values(stripe_connect_status, STRIPE_CONNECT_STATUSES),
    )

    training_center = db.relationship(
        "TrainingCenter", backref="instructors"
    )

    @property
    def full_name(self) -> str:
        first_name = (self.first_name or "").strip()
        last_name = (self.last_name or "").strip()
        return f"{first_name} {last_name}"


class Trainee(db.Model):
    trainee_id = db.Column(db.Integer, primary_key=True)
    training_center_id = db.Column(
        db.Integer,
        db.ForeignKey(
            "training_center.training_center_id", ondelete="CASCADE"
        ),
        nullable=False,
        index=True,
    )
    first_name = db.Column(db.String, nullable=False)
    last_name = db.Column(db.String, nullable=False)
    email = db.Column(db.String)
    id_number = db.Column(db.String)
    status = db.Column(db.String(16), nullable=False, default="active")
    __table_args__ = (
        in_values(status, ["active", "inactive", "suspended"]),
    )
