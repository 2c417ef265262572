import logging
from typing import TypeVar, Callable, Optional, List, Tuple
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.sql.expression import and_, or_, null
from acc_platform.extensions import db
from acc_platform.models import Acc, TrainingCenter, Instructor

T = TypeVar("T")
atomic: Callable[[T], T] = db.atomic

CONNECTED_ACCOUNT_MODELS = {
    "acc": (Acc, Acc.acc_id),
    "training_center": (TrainingCenter, TrainingCenter.training_center_id),
    "instructor": (Instructor, Instructor.instructor_id),
}

_LOGGER = logging.getLogger(__name__)


@atomic
def get_connected_accounts() -> List[Tuple[str, int, str]]:
    """Return the accounts whose Stripe Connect status should be checked.

    Every item is a `(payee_type, payee_id, stripe_account_id)` tuple.
    Accounts which have been disconnected ("inactive") are not
    included.
    """
    accounts = []
    for payee_type, (model, pk) in CONNECTED_ACCOUNT_MODELS.items():
        rows = db.session.execute(
            select(pk, model.stripe_account_id)
            .where(
                and_(
                    model.stripe_account_id != null(),
                    model.stripe_account_id != "",
                    or_(
                        model.stripe_connect_status == null(),
                        model.stripe_connect_status != "inactive",
                    ),
                )
            )
            .order_by(pk)
        ).all()
        accounts.extend(
            (payee_type, payee_id, stripe_account_id)
            for payee_id, stripe_account_id in rows
        )

    return accounts


@atomic
def update_stripe_connect_status(
        payee_type: str,
        payee_id: int,
        stripe_account_id: str,
        stripe_connect_status: str,
        current_ts: datetime = None,
) -> Optional[str]:
    """Store the Stripe Connect status reported for an account.

    Nothing is changed if meanwhile the account has been disconnected,
    or connected to another Stripe account. Returns the new status if
    it has been changed, `None` otherwise.
    """
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    model, pk = CONNECTED_ACCOUNT_MODELS[payee_type]
    account = (
        model.query
        .filter(pk == payee_id)
        .with_for_update()
        .one_or_none()
    )
    if (
        account is None
        or account.stripe_account_id != stripe_account_id
        or account.stripe_connect_status == "inactive"
    ):
        return None

    account.stripe_last_status_check_at = current_ts
    if account.stripe_connect_status == stripe_connect_status:
        return None

    _LOGGER.info(
        "Stripe Connect status of %s %i changed: %s -> %s.",
        payee_type,
        payee_id,
        account.stripe_connect_status,
        stripe_connect_status,
    )
    account.stripe_connect_status = stripe_connect_status
    return stripe_connect_status
