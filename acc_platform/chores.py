import logging
import json
from marshmallow import ValidationError
from swpt_pythonlib import rabbitmq
from acc_platform import run_transfers
from acc_platform import schemas


def _on_retry_transfer(
    transfer_id: int, base_delay_seconds: int, *args, **kwargs
) -> None:
    """Make another attempt to execute a failed transfer."""

    run_transfers.run_transfer_retry(
        transfer_id=transfer_id,
        base_delay_seconds=base_delay_seconds,
    )


def _on_payout_transaction(transaction_id: int, *args, **kwargs) -> None:
    """Transfer the payee's earnings from a completed transaction."""

    run_transfers.payout_transaction(transaction_id=transaction_id)


_LOGGER = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    "RetryTransfer": (
        schemas.RetryTransferMessageSchema(),
        _on_retry_transfer,
    ),
    "PayoutTransaction": (
        schemas.PayoutTransactionMessageSchema(),
        _on_payout_transaction,
    ),
}


TerminatedConsumtion = rabbitmq.TerminatedConsumtion


class ChoresConsumer(rabbitmq.Consumer):
    """Passes messages to proper handlers."""

    def process_message(self, body, properties):
        content_type = getattr(properties, "content_type", None)
        if content_type != "application/json":
            _LOGGER.error('Unknown message content type: "%s"', content_type)
            return False

        massage_type = getattr(properties, "type", None)
        try:
            schema, actor = _MESSAGE_TYPES[massage_type]
        except KeyError:
            _LOGGER.error('Unknown message type: "%s"', massage_type)
            return False

        try:
            obj = json.loads(body.decode("utf8"))
        except (UnicodeError, json.JSONDecodeError):
            _LOGGER.error(
                "The message does not contain a valid JSON document."
            )
            return False

        try:
            message_content = schema.load(obj)
        except ValidationError as e:
            _LOGGER.error("Message validation error: %s", str(e))
            return False

        actor(**message_content)
        return True
