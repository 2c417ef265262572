from __future__ import annotations
from sqlalchemy.sql.expression import and_
from acc_platform.extensions import db
from .common import get_now_utc, in_values

TRAINING_CLASS_STATUSES = [
    "scheduled",
    "in_progress",
    "completed",
    "cancelled",
]
DISCOUNT_CODE_STATUSES = ["active", "expired", "depleted", "inactive"]


class Course(db.Model):
    course_id = db.Column(db.Integer, primary_key=True)
    acc_id = db.Column(
        db.Integer,
        db.ForeignKey("acc.acc_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String, nullable=False)
    code = db.Column(db.String, nullable=False)
    duration_hours = db.Column(db.Integer)
    max_capacity = db.Column(db.Integer)
    status = db.Column(db.String(16), nullable=False, default="active")
    __table_args__ = (
        db.UniqueConstraint(acc_id, code),
        in_values(status, ["active", "inactive", "archived"]),
    )

    acc = db.relationship("Acc", backref="courses")


class TrainingClass(db.Model):
    training_class_id = db.Column(db.Integer, primary_key=True)
    training_center_id = db.Column(
        db.Integer,
        db.ForeignKey(
            "training_center.training_center_id", ondelete="CASCADE"
        ),
        nullable=False,
        index=True,
    )
    course_id = db.Column(
        db.Integer,
        db.ForeignKey("course.course_id", ondelete="CASCADE"),
        nullable=False,
    )
    instructor_id = db.Column(
        db.Integer,
        db.ForeignKey("instructor.instructor_id", ondelete="SET NULL"),
    )
    name = db.Column(db.String, nullable=False, default="")
    start_date = db.Column(db.DATE)
    end_date = db.Column(db.DATE)
    enrolled_count = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(16), nullable=False, default="physical")
    status = db.Column(db.String(16), nullable=False, default="scheduled")
    __table_args__ = (
        in_values(status, TRAINING_CLASS_STATUSES),
        in_values(location, ["physical", "online"]),
        db.CheckConstraint(enrolled_count >= 0),
        {
            "comment": (
                "A class held by a training center. The status is"
                " recalculated from the start and end dates, except for"
                " cancelled classes."
            ),
        },
    )


class DiscountCode(db.Model):
    discount_code_id = db.Column(db.Integer, primary_key=True)
    acc_id = db.Column(
        db.Integer,
        db.ForeignKey("acc.acc_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String, nullable=False, unique=True)
    discount_type = db.Column(
        db.String(16), nullable=False, default="time_limited"
    )
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    start_date = db.Column(db.DATE)
    end_date = db.Column(db.DATE)
    total_quantity = db.Column(db.Integer)
    used_quantity = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(status, DISCOUNT_CODE_STATUSES),
        in_values(discount_type, ["time_limited", "quantity_based"]),
        db.CheckConstraint(
            and_(discount_percentage > 0, discount_percentage <= 100)
        ),
        db.CheckConstraint(used_quantity >= 0),
    )
