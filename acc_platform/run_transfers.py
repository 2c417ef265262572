import logging
from flask import current_app
from acc_platform import procedures
from acc_platform.transfer_executors import StripeTransferExecutor

_LOGGER = logging.getLogger(__name__)


def process_scheduled_transfer_retries() -> int:
    count = 0
    batch_size = current_app.config["APP_TRIGGER_RETRIES_BURST_COUNT"]

    while True:
        n = procedures.process_scheduled_transfer_retries_batch(batch_size)
        count += n
        if n < batch_size:
            break

    return count


def run_transfer_retry(
        transfer_id: int,
        base_delay_seconds: int,
        executor=None,
) -> None:
    """Make another attempt to execute a failed transfer.

    The transfer is reloaded from the database, and nothing is done
    unless it can be retried. On failure, the next retry gets
    scheduled with an exponential backoff. When an unexpected error
    occurs, one more retry is scheduled after a fixed delay.
    """
    executor = executor or StripeTransferExecutor.from_config()

    try:
        transfer = procedures.claim_transfer_for_retry(transfer_id)
        if transfer is None:
            _LOGGER.info("Transfer %i can not be retried.", transfer_id)
            return

        _LOGGER.info(
            "Retrying transfer %i (attempt %i).",
            transfer_id,
            transfer.retry_count + 1,
        )
        _attempt_transfer(transfer_id, base_delay_seconds, executor)

    except Exception as e:
        _LOGGER.exception("Error while retrying transfer %i.", transfer_id)
        _handle_transfer_error(transfer_id, str(e), base_delay_seconds)


def payout_transaction(transaction_id: int, executor=None) -> None:
    """Pay out the payee's earnings from a completed transaction."""

    config = current_app.config
    base_delay_seconds = config["APP_TRANSFER_RETRY_BASE_DELAY_SECONDS"]
    executor = executor or StripeTransferExecutor.from_config()
    transfer = procedures.prepare_transaction_payout(
        transaction_id,
        default_commission_percentage=config[
            "APP_DEFAULT_COMMISSION_PERCENTAGE"
        ],
        currency=config["APP_DEFAULT_CURRENCY"],
    )
    if transfer is None:
        return

    transfer_id = transfer.transfer_id
    if transfer.stripe_account_id is None:
        _LOGGER.info(
            "Transfer %i stays pending: the payee has no Stripe account.",
            transfer_id,
        )
        return

    try:
        _attempt_transfer(transfer_id, base_delay_seconds, executor)
    except Exception as e:
        _LOGGER.exception("Error while executing transfer %i.", transfer_id)
        _handle_transfer_error(transfer_id, str(e), base_delay_seconds)


def _attempt_transfer(
        transfer_id: int,
        base_delay_seconds: int,
        executor,
) -> None:
    transfer = procedures.start_transfer_processing(transfer_id)
    if transfer is None:
        return

    result = executor.attempt(transfer)

    if result.success:
        procedures.complete_transfer(
            transfer_id, result.provider_transfer_id
        )
        _LOGGER.info(
            "Transfer %i completed (stripe transfer: %s).",
            transfer_id,
            result.provider_transfer_id,
        )
        return

    transfer = procedures.fail_transfer(
        transfer_id,
        result.error or "Transfer failed",
        base_delay_seconds,
    )
    _log_if_terminal_failure(transfer)


def _handle_transfer_error(
        transfer_id: int,
        error_message: str,
        base_delay_seconds: int,
) -> None:
    transfer = procedures.handle_transfer_error(
        transfer_id,
        error_message,
        base_delay_seconds=base_delay_seconds,
        error_delay_seconds=current_app.config[
            "APP_TRANSFER_RETRY_ERROR_DELAY_SECONDS"
        ],
    )
    _log_if_terminal_failure(transfer)


def _log_if_terminal_failure(transfer) -> None:
    if (
        transfer is not None
        and transfer.status == "failed"
        and transfer.retry_scheduled_for is None
    ):
        _LOGGER.error(
            "Transfer %i failed after %i attempts: %s",
            transfer.transfer_id,
            transfer.retry_count,
            transfer.error_message,
        )
