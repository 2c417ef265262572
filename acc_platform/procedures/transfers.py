import logging
from typing import TypeVar, Callable, Optional
from datetime import datetime, timezone, timedelta
from sqlalchemy import select, update, insert
from sqlalchemy.sql.expression import and_, null
from acc_platform.utils import (
    calc_retry_delay,
    calc_commission_split,
    round_money,
)
from acc_platform.extensions import db
from acc_platform.models import (
    MAX_AUTOMATIC_RETRIES,
    User,
    Acc,
    TrainingCenter,
    Instructor,
    Transaction,
    Transfer,
    CommissionLedger,
    Notification,
    RetryTransferSignal,
    PayoutTransactionSignal,
)

T = TypeVar("T")
atomic: Callable[[T], T] = db.atomic

PAYEE_MODELS = {
    "acc": Acc,
    "training_center": TrainingCenter,
    "instructor": Instructor,
}
STRIPE_ACCOUNT_NOT_CONFIGURED = "Stripe account not configured"

_LOGGER = logging.getLogger(__name__)


class TransferDoesNotExist(Exception):
    """The transfer does not exist."""


class TransferCanNotBeRetried(Exception):
    """The transfer is not in a state that allows retrying."""


@atomic
def get_transfer(transfer_id: int) -> Optional[Transfer]:
    return Transfer.query.filter_by(transfer_id=transfer_id).one_or_none()


@atomic
def claim_transfer_for_retry(transfer_id: int) -> Optional[Transfer]:
    """Mark the transfer as "retrying", if it can be retried.

    Returns `None` when the transfer does not exist, or when it is not
    in a retriable state.
    """
    transfer = (
        Transfer.query
        .filter_by(transfer_id=transfer_id)
        .with_for_update()
        .one_or_none()
    )
    if transfer is None or not transfer.can_retry:
        return None

    transfer.retry_scheduled_for = None
    transfer.mark_as_retrying()
    return transfer


@atomic
def start_transfer_processing(
        transfer_id: int,
        current_ts: datetime = None,
) -> Optional[Transfer]:
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transfer = (
        Transfer.query
        .filter_by(transfer_id=transfer_id)
        .with_for_update()
        .one_or_none()
    )
    if transfer is None or transfer.status not in ("pending", "retrying"):
        return None

    transfer.mark_as_processing(current_ts)
    return transfer


@atomic
def complete_transfer(
        transfer_id: int,
        stripe_transfer_id: str,
        current_ts: datetime = None,
) -> Optional[Transfer]:
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transfer = (
        Transfer.query
        .filter_by(transfer_id=transfer_id, status="processing")
        .with_for_update()
        .one_or_none()
    )
    if transfer is None:
        return None

    transfer.mark_as_completed(stripe_transfer_id, current_ts)
    _notify_transfer_completed(transfer)
    return transfer


@atomic
def fail_transfer(
        transfer_id: int,
        error_message: str,
        base_delay_seconds: int,
        current_ts: datetime = None,
) -> Optional[Transfer]:
    """Mark the transfer as failed, and schedule the next retry.

    The next retry is scheduled only while the number of failures is
    below the maximum number of automatic retries. The delay doubles
    with each failure: `base_delay_seconds * 2 ** n`, where `n` is the
    number of failures before this one.
    """
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transfer = (
        Transfer.query
        .filter_by(transfer_id=transfer_id, status="processing")
        .with_for_update()
        .one_or_none()
    )
    if transfer is None:
        return None

    previous_failures = transfer.retry_count
    transfer.mark_as_failed(error_message, current_ts)

    if transfer.retry_count < MAX_AUTOMATIC_RETRIES:
        delay = calc_retry_delay(base_delay_seconds, previous_failures)
        _schedule_retry(transfer, delay, base_delay_seconds, current_ts)

    return transfer


@atomic
def handle_transfer_error(
        transfer_id: int,
        error_message: str,
        base_delay_seconds: int,
        error_delay_seconds: int,
        current_ts: datetime = None,
) -> Optional[Transfer]:
    """Recover a transfer whose attempt has been interrupted by an error.

    A transfer which has been left in "retrying" or "processing" state
    is marked as failed. Then, unless the maximum number of automatic
    retries has been reached, one more retry is scheduled after
    `error_delay_seconds`.
    """
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transfer = (
        Transfer.query
        .filter_by(transfer_id=transfer_id)
        .with_for_update()
        .one_or_none()
    )
    if transfer is None:
        return None

    if transfer.status in ("retrying", "processing"):
        transfer.mark_as_failed(error_message, current_ts)

    if (
        transfer.can_retry
        and transfer.retry_scheduled_for is None
    ):
        _schedule_retry(
            transfer, error_delay_seconds, base_delay_seconds, current_ts
        )

    return transfer


@atomic
def schedule_transfer_retry_now(
        transfer_id: int,
        base_delay_seconds: int,
        current_ts: datetime = None,
) -> Transfer:
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transfer = (
        Transfer.query
        .filter_by(transfer_id=transfer_id)
        .with_for_update()
        .one_or_none()
    )
    if transfer is None:
        raise TransferDoesNotExist()

    if not transfer.can_retry:
        raise TransferCanNotBeRetried()

    transfer.retry_scheduled_for = None
    db.session.add(
        RetryTransferSignal(
            transfer_id=transfer_id,
            base_delay_seconds=base_delay_seconds,
            inserted_at=current_ts,
        )
    )
    return transfer


@atomic
def process_scheduled_transfer_retries_batch(
        batch_size: int,
        current_ts: datetime = None,
) -> int:
    """Turn due transfer retries into "RetryTransfer" chore messages.

    Returns the number of processed transfers.
    """
    assert batch_size > 0
    current_ts = current_ts or datetime.now(tz=timezone.utc)

    due_transfers = (
        db.session.execute(
            select(Transfer.transfer_id, Transfer.retry_base_delay)
            .where(
                and_(
                    Transfer.retry_scheduled_for != null(),
                    Transfer.retry_scheduled_for <= current_ts,
                )
            )
            .order_by(Transfer.retry_scheduled_for)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        .all()
    )
    if due_transfers:
        db.session.execute(
            update(Transfer)
            .where(
                Transfer.transfer_id.in_(
                    [row.transfer_id for row in due_transfers]
                )
            )
            .values(retry_scheduled_for=None)
        )
        db.session.execute(
            insert(RetryTransferSignal),
            [
                {
                    "transfer_id": row.transfer_id,
                    "base_delay_seconds": row.retry_base_delay,
                    "inserted_at": current_ts,
                }
                for row in due_transfers
            ],
        )

    return len(due_transfers)


@atomic
def enqueue_transaction_payout(
        transaction_id: int,
        current_ts: datetime = None,
) -> bool:
    """Send a "PayoutTransaction" chore message for the transaction.

    Returns `False`, and sends nothing, when the transaction does not
    qualify for a payout.
    """
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transaction = (
        Transaction.query
        .filter_by(transaction_id=transaction_id)
        .one_or_none()
    )
    if not _is_eligible_for_payout(transaction):
        return False

    db.session.add(
        PayoutTransactionSignal(
            transaction_id=transaction_id,
            inserted_at=current_ts,
        )
    )
    return True


@atomic
def prepare_transaction_payout(
        transaction_id: int,
        default_commission_percentage: float,
        currency: str = "USD",
        current_ts: datetime = None,
) -> Optional[Transfer]:
    """Create a transfer of the payee's earnings from a transaction.

    Returns `None` when the transaction does not qualify for a payout.
    When the payee does not have a connected Stripe account, the
    transfer remains in "pending" state, and the administrators get
    notified. Otherwise, the returned transfer is ready to be
    attempted.
    """
    current_ts = current_ts or datetime.now(tz=timezone.utc)
    transaction = (
        Transaction.query
        .filter_by(transaction_id=transaction_id)
        .with_for_update()
        .one_or_none()
    )
    if not _is_eligible_for_payout(transaction):
        _LOGGER.info(
            "Transaction %i does not qualify for a payout.", transaction_id
        )
        return None

    payee_model = PAYEE_MODELS.get(transaction.payee_type)
    payee = (
        db.session.get(payee_model, transaction.payee_id)
        if payee_model
        else None
    )
    if payee is None:
        _LOGGER.warning(
            "The payee of transaction %i does not exist.", transaction_id
        )
        return None

    try:
        gross, commission, net = calc_commission_split(
            transaction.amount,
            transaction.commission_amount,
            _get_commission_percentage(payee, default_commission_percentage),
        )
    except ValueError as e:
        _LOGGER.warning(
            "Can not pay out transaction %i: %s", transaction_id, str(e)
        )
        return None

    user = User.query.filter_by(email=payee.email).one_or_none()
    stripe_account_id = payee.stripe_account_id or None
    transfer = Transfer(
        transaction_id=transaction_id,
        user_id=user.user_id if user else None,
        payee_type=transaction.payee_type,
        payee_id=transaction.payee_id,
        gross_amount=gross,
        commission_amount=commission,
        net_amount=net,
        currency=transaction.currency or currency,
        stripe_account_id=stripe_account_id,
        status="pending",
        created_at=current_ts,
    )
    if stripe_account_id is None:
        transfer.error_message = STRIPE_ACCOUNT_NOT_CONFIGURED

    db.session.add(transfer)
    db.session.add(
        CommissionLedger(
            transaction_id=transaction_id,
            acc_id=payee.acc_id if isinstance(payee, Acc) else None,
            training_center_id=(
                payee.training_center_id
                if isinstance(payee, TrainingCenter)
                else None
            ),
            instructor_id=(
                payee.instructor_id if isinstance(payee, Instructor) else None
            ),
            group_commission_amount=commission,
            group_commission_percentage=(
                round_money(commission * 100 / gross) if gross > 0 else 0
            ),
            settlement_status="pending",
            created_at=current_ts,
        )
    )
    db.session.flush()

    if stripe_account_id is None:
        _notify_admins_pending_transfer(transfer)

    return transfer


def _is_eligible_for_payout(transaction: Optional[Transaction]) -> bool:
    if (
        transaction is None
        or transaction.status != "completed"
        or not transaction.amount
        or transaction.amount <= 0
        or not transaction.payee_type
        or not transaction.payee_id
    ):
        return False

    # A transaction is paid out by one transfer at most. Once created,
    # the transfer is advanced only by its own retries.
    transfer_query = Transfer.query.filter_by(
        transaction_id=transaction.transaction_id
    )
    return not db.session.query(transfer_query.exists()).scalar()


def _get_commission_percentage(payee, default_commission_percentage):
    if isinstance(payee, Acc) and payee.commission_percentage:
        # `commission_percentage` is the ACC's share. The platform gets
        # the rest.
        return 100 - float(payee.commission_percentage)

    return default_commission_percentage


def _schedule_retry(
        transfer: Transfer,
        delay_seconds: int,
        base_delay_seconds: int,
        current_ts: datetime,
) -> None:
    transfer.retry_scheduled_for = current_ts + timedelta(
        seconds=delay_seconds
    )
    transfer.retry_base_delay = base_delay_seconds
    _LOGGER.info(
        "Scheduled retry %i for transfer %i in %i seconds.",
        transfer.retry_count + 1,
        transfer.transfer_id,
        delay_seconds,
    )


def _notify_transfer_completed(transfer: Transfer) -> None:
    if transfer.user_id is None:
        return

    db.session.add(
        Notification(
            user_id=transfer.user_id,
            type="transfer_completed",
            title="Transfer Completed",
            message=(
                f"An amount of {transfer.net_amount} {transfer.currency}"
                f" has been transferred to your account."
            ),
            data={
                "transfer_id": transfer.transfer_id,
                "amount": str(transfer.net_amount),
                "currency": transfer.currency,
                "status": "completed",
            },
        )
    )


def _notify_admins_pending_transfer(transfer: Transfer) -> None:
    admin_ids = db.session.execute(
        select(User.user_id).where(User.role == "group_admin")
    ).scalars().all()

    for user_id in admin_ids:
        db.session.add(
            Notification(
                user_id=user_id,
                type="pending_transfer",
                title="Pending Transfer",
                message=(
                    f"Transfer #{transfer.transfer_id} is pending:"
                    f" {STRIPE_ACCOUNT_NOT_CONFIGURED.lower()}."
                ),
                data={
                    "transfer_id": transfer.transfer_id,
                    "transaction_id": transfer.transaction_id,
                    "amount": str(transfer.net_amount),
                },
            )
        )
