import logging
from typing import TypeVar, Callable, Optional, List
from datetime import date
from sqlalchemy import select
from sqlalchemy.sql.expression import and_, not_, null
from acc_platform.utils import (
    calc_discount_code_status,
    calc_training_class_status,
)
from acc_platform.extensions import db
from acc_platform.models import (
    Acc,
    AccSubscription,
    User,
    DiscountCode,
    TrainingClass,
)

T = TypeVar("T")
atomic: Callable[[T], T] = db.atomic

_LOGGER = logging.getLogger(__name__)


@atomic
def suspend_accs_with_expired_subscriptions(current_date: date) -> int:
    """Suspend ACCs whose paid subscriptions have all expired.

    A subscription is in force until the end of its end date. The
    ACC administrator (the user with the same e-mail as the ACC) gets
    suspended too. Returns the number of suspended ACCs.
    """
    expired_subscription_exists = (
        select(1)
        .select_from(AccSubscription)
        .where(
            AccSubscription.acc_id == Acc.acc_id,
            AccSubscription.payment_status == "paid",
            AccSubscription.subscription_end_date < current_date,
        )
    ).exists()
    active_subscription_exists = (
        select(1)
        .select_from(AccSubscription)
        .where(
            AccSubscription.acc_id == Acc.acc_id,
            AccSubscription.payment_status == "paid",
            AccSubscription.subscription_end_date >= current_date,
        )
    ).exists()

    accs = (
        Acc.query
        .filter(
            Acc.status != "suspended",
            expired_subscription_exists,
            not_(active_subscription_exists),
        )
        .with_for_update(skip_locked=True)
        .all()
    )
    for acc in accs:
        acc.status = "suspended"

        user = (
            User.query
            .filter_by(email=acc.email)
            .with_for_update()
            .one_or_none()
        )
        if user and user.role == "acc_admin":
            user.status = "suspended"

        _LOGGER.info("Suspended ACC %i (%s).", acc.acc_id, acc.name)

    return len(accs)


@atomic
def update_discount_code_statuses(current_date: date) -> int:
    """Mark active discount codes as expired or depleted.

    Returns the number of updated discount codes.
    """
    updated_count = 0
    discount_codes = (
        DiscountCode.query
        .filter_by(status="active")
        .with_for_update(skip_locked=True)
        .all()
    )
    for discount_code in discount_codes:
        new_status = calc_discount_code_status(
            discount_code.status,
            discount_code.end_date,
            discount_code.total_quantity,
            discount_code.used_quantity,
            current_date,
        )
        if new_status != discount_code.status:
            _LOGGER.info(
                "Discount code %i (%s) status changed: %s -> %s.",
                discount_code.discount_code_id,
                discount_code.code,
                discount_code.status,
                new_status,
            )
            discount_code.status = new_status
            updated_count += 1

    return updated_count


@atomic
def get_dated_training_class_ids() -> List[int]:
    return (
        db.session.execute(
            select(TrainingClass.training_class_id)
            .where(
                and_(
                    TrainingClass.start_date != null(),
                    TrainingClass.end_date != null(),
                    TrainingClass.status != "cancelled",
                )
            )
            .order_by(TrainingClass.training_class_id)
        )
        .scalars()
        .all()
    )


@atomic
def update_training_class_status(
        training_class_id: int,
        current_date: date,
) -> Optional[str]:
    """Recalculate the status of a training class from its dates.

    Returns the new status if it has been changed, `None` otherwise.
    """
    training_class = (
        TrainingClass.query
        .filter_by(training_class_id=training_class_id)
        .with_for_update()
        .one_or_none()
    )
    if (
        training_class is None
        or training_class.status == "cancelled"
        or training_class.start_date is None
        or training_class.end_date is None
    ):
        return None

    new_status = calc_training_class_status(
        training_class.start_date,
        training_class.end_date,
        current_date,
    )
    if new_status == training_class.status:
        return None

    _LOGGER.info(
        "Training class %i status changed: %s -> %s.",
        training_class_id,
        training_class.status,
        new_status,
    )
    training_class.status = new_status
    return new_status


def update_training_class_statuses(current_date: date) -> dict:
    """Recalculate the statuses of all training classes.

    Every class is updated in its own transaction, so that a failure
    to update one class does not prevent the others from being
    updated. Returns the number of updated classes, per new status.
    """
    counts = {}
    for training_class_id in get_dated_training_class_ids():
        try:
            new_status = update_training_class_status(
                training_class_id, current_date
            )
        except Exception:
            _LOGGER.exception(
                "Failed to update the status of training class %i.",
                training_class_id,
            )
            continue

        if new_status is not None:
            counts[new_status] = counts.get(new_status, 0) + 1

    return counts
