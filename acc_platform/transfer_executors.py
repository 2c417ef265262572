import logging
from dataclasses import dataclass
from typing import Optional
import stripe
from flask import current_app
from acc_platform.models import Transfer
from acc_platform.utils import to_cents

_LOGGER = logging.getLogger(__name__)


@dataclass
class TransferAttemptResult:
    success: bool
    provider_transfer_id: Optional[str] = None
    error: Optional[str] = None


class StripeTransferExecutor:
    """Sends transfers to connected Stripe accounts.

    Expected errors (a missing configuration, or an error reported by
    Stripe) result in a failed `TransferAttemptResult`. Other exceptions
    propagate to the caller.
    """

    def __init__(self, secret_key: str, api_version: str = ""):
        self.secret_key = secret_key
        self.api_version = api_version

    @classmethod
    def from_config(cls, config=None) -> "StripeTransferExecutor":
        config = config if config is not None else current_app.config
        return cls(
            secret_key=config["STRIPE_SECRET_KEY"],
            api_version=config["STRIPE_API_VERSION"],
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def attempt(self, transfer: Transfer) -> TransferAttemptResult:
        if not self.is_configured:
            return TransferAttemptResult(
                success=False, error="Stripe is not configured"
            )

        if not transfer.stripe_account_id:
            return TransferAttemptResult(
                success=False, error="Stripe account ID is required"
            )

        amount_in_cents = to_cents(transfer.net_amount)
        if amount_in_cents <= 0:
            return TransferAttemptResult(
                success=False, error="Transfer amount must be greater than 0"
            )

        request_options = {
            "api_key": self.secret_key,
            "idempotency_key": (
                f"transfer_{transfer.transfer_id}_{transfer.transaction_id}"
            ),
        }
        if self.api_version:
            request_options["stripe_version"] = self.api_version

        try:
            stripe_transfer = stripe.Transfer.create(
                amount=amount_in_cents,
                currency=(transfer.currency or "USD").lower(),
                destination=transfer.stripe_account_id,
                metadata={
                    "transfer_id": transfer.transfer_id,
                    "transaction_id": transfer.transaction_id,
                    "payee_type": transfer.payee_type,
                    "payee_id": transfer.payee_id,
                },
                **request_options,
            )
        except stripe.StripeError as e:
            _LOGGER.warning(
                "Stripe transfer %i failed: %s (code: %s)",
                transfer.transfer_id,
                e.user_message or str(e),
                e.code,
            )
            return TransferAttemptResult(
                success=False, error=e.user_message or str(e)
            )

        return TransferAttemptResult(
            success=True, provider_transfer_id=stripe_transfer.id
        )
