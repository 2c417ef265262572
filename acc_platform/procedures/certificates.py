import logging
from typing import TypeVar, Callable, Optional, Tuple
from dataclasses import dataclass
from datetime import date
from sqlalchemy import select, update
from sqlalchemy.sql.expression import and_, null
from acc_platform.utils import (
    classify_certificate_type,
    CERTIFICATE_TYPE_INSTRUCTOR,
)
from acc_platform.extensions import db
from acc_platform.models import Certificate, Instructor, CERTIFICATE_TYPES

T = TypeVar("T")
atomic: Callable[[T], T] = db.atomic

BACKFILL_BATCH_SIZE = 1000

_LOGGER = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    total_count: int = 0
    updated_count: int = 0
    instructor_count: int = 0
    trainee_count: int = 0


@atomic
def set_certificate_type(
        certificate_id: int,
        certificate_type: str,
) -> Optional[Tuple[Optional[str], Certificate]]:
    """Override the type of a certificate.

    Returns an `(old_type, certificate)` tuple, or `None` if the
    certificate does not exist. The override stays in force until the
    instructor or the trainee name of the certificate gets changed.
    """
    if certificate_type not in CERTIFICATE_TYPES:
        raise ValueError(f"invalid certificate type: {certificate_type}")

    certificate = (
        Certificate.query
        .filter_by(certificate_id=certificate_id)
        .with_for_update()
        .one_or_none()
    )
    if certificate is None:
        return None

    old_type = certificate.type
    certificate.type = certificate_type
    return old_type, certificate


@atomic
def get_instructor_name(instructor_id: int) -> Optional[str]:
    instructor = db.session.get(Instructor, instructor_id)
    return instructor.full_name.strip() if instructor else None


@atomic
def backfill_certificate_types() -> BackfillResult:
    """Recalculate the types of all certificates.

    Only the certificates whose type differs from the calculated one
    get updated.
    """
    instructor_names = {
        row.instructor_id: (row.first_name, row.last_name)
        for row in db.session.execute(
            select(
                Instructor.instructor_id,
                Instructor.first_name,
                Instructor.last_name,
            )
        )
    }
    result = BackfillResult()
    certificates = (
        Certificate.query
        .order_by(Certificate.certificate_id)
        .yield_per(BACKFILL_BATCH_SIZE)
    )
    for certificate in certificates:
        calculated_type = classify_certificate_type(
            instructor_names.get(certificate.instructor_id),
            certificate.trainee_name,
        )
        result.total_count += 1
        if calculated_type == CERTIFICATE_TYPE_INSTRUCTOR:
            result.instructor_count += 1
        else:
            result.trainee_count += 1

        if certificate.type != calculated_type:
            certificate.type = calculated_type
            result.updated_count += 1

    return result


@atomic
def expire_certificates(current_date: date) -> int:
    """Mark valid certificates with a past expiry date as expired.

    Returns the number of expired certificates.
    """
    certificate_ids = (
        db.session.execute(
            select(Certificate.certificate_id)
            .where(
                and_(
                    Certificate.status == "valid",
                    Certificate.expiry_date != null(),
                    Certificate.expiry_date < current_date,
                )
            )
            .with_for_update(skip_locked=True)
        )
        .scalars()
        .all()
    )
    if certificate_ids:
        db.session.execute(
            update(Certificate)
            .where(Certificate.certificate_id.in_(certificate_ids))
            .values(status="expired")
        )
        _LOGGER.info(
            "Marked %i certificates as expired (current date: %s).",
            len(certificate_ids),
            current_date.isoformat(),
        )

    return len(certificate_ids)
