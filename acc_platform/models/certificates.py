from __future__ import annotations
from typing import Optional
from sqlalchemy import event, inspect, select
from sqlalchemy.sql.expression import or_, null
from acc_platform.extensions import db
from acc_platform.utils import (
    classify_certificate_type,
    CERTIFICATE_TYPE_INSTRUCTOR,
    CERTIFICATE_TYPE_TRAINEE,
)
from .common import get_now_utc, in_values
from .accounts import Instructor

CERTIFICATE_TYPES = [CERTIFICATE_TYPE_INSTRUCTOR, CERTIFICATE_TYPE_TRAINEE]
CERTIFICATE_STATUSES = ["valid", "revoked", "expired"]


def determine_certificate_type(
        instructor_id: Optional[int],
        trainee_name: Optional[str],
        bind=None,
) -> str:
    """Return "instructor" or "trainee" for the given certificate data.

    The instructor is looked up through `bind` (a connection or a
    session), defaulting to the current database session.
    """
    if instructor_id is None or not trainee_name:
        return CERTIFICATE_TYPE_TRAINEE

    bind = bind if bind is not None else db.session
    row = bind.execute(
        select(Instructor.first_name, Instructor.last_name)
        .where(Instructor.instructor_id == instructor_id)
    ).one_or_none()

    return classify_certificate_type(
        None if row is None else (row.first_name, row.last_name),
        trainee_name,
    )


class Certificate(db.Model):
    certificate_id = db.Column(db.Integer, primary_key=True)
    certificate_number = db.Column(db.String, nullable=False, unique=True)
    course_id = db.Column(
        db.Integer, db.ForeignKey("course.course_id"), nullable=False
    )
    training_center_id = db.Column(
        db.Integer,
        db.ForeignKey("training_center.training_center_id"),
        nullable=False,
        index=True,
    )
    training_class_id = db.Column(
        db.Integer,
        db.ForeignKey(
            "training_class.training_class_id", ondelete="SET NULL"
        ),
    )
    instructor_id = db.Column(
        db.Integer,
        db.ForeignKey("instructor.instructor_id", ondelete="SET NULL"),
    )
    trainee_name = db.Column(db.String, nullable=False)
    trainee_id_number = db.Column(db.String)
    issue_date = db.Column(db.DATE, nullable=False)
    expiry_date = db.Column(db.DATE)
    verification_code = db.Column(db.String, nullable=False, unique=True)
    certificate_pdf_url = db.Column(db.String)
    status = db.Column(db.String(16), nullable=False, default="valid")
    type = db.Column(
        db.String(16),
        comment=(
            "Derived from `instructor_id` and `trainee_name`. Recalculated"
            " on save when not set, or when one of those columns changes."
        ),
    )
    created_at = db.Column(
        db.TIMESTAMP(timezone=True), nullable=False, default=get_now_utc
    )
    __table_args__ = (
        in_values(status, CERTIFICATE_STATUSES),
        db.CheckConstraint(
            or_(type == null(), type.in_(CERTIFICATE_TYPES))
        ),
        db.Index("idx_certificate_expiry_date", status, expiry_date),
    )


@event.listens_for(Certificate, "before_insert")
def _set_type_before_insert(mapper, connection, target):
    if target.type is None:
        target.type = determine_certificate_type(
            target.instructor_id, target.trainee_name, connection
        )


@event.listens_for(Certificate, "before_update")
def _set_type_before_update(mapper, connection, target):
    attrs = inspect(target).attrs
    classified_data_changed = (
        attrs.instructor_id.history.has_changes()
        or attrs.trainee_name.history.has_changes()
    )
    if target.type is None or classified_data_changed:
        target.type = determine_certificate_type(
            target.instructor_id, target.trainee_name, connection
        )
