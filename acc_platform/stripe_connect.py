import logging
from datetime import datetime
import stripe
from flask import current_app
from acc_platform import procedures
from acc_platform.utils import calc_stripe_connect_status

_LOGGER = logging.getLogger(__name__)


class StripeConnectStatusChecker:
    """Reads the status of connected Stripe accounts."""

    def __init__(self, secret_key: str, api_version: str = ""):
        self.secret_key = secret_key
        self.api_version = api_version

    @classmethod
    def from_config(cls, config=None) -> "StripeConnectStatusChecker":
        config = config if config is not None else current_app.config
        return cls(
            secret_key=config["STRIPE_SECRET_KEY"],
            api_version=config["STRIPE_API_VERSION"],
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def get_status(self, stripe_account_id: str) -> str:
        request_options = {"api_key": self.secret_key}
        if self.api_version:
            request_options["stripe_version"] = self.api_version

        account = stripe.Account.retrieve(
            stripe_account_id, **request_options
        )
        return calc_stripe_connect_status(
            account.details_submitted, account.charges_enabled
        )


def check_stripe_connect_statuses(
        checker=None,
        current_ts: datetime = None,
) -> dict:
    """Refresh the Stripe Connect status of every connected account.

    Every account is checked separately, so that a failure to check
    one account does not prevent the others from being checked.
    Returns the numbers of checked, updated, and failed accounts.
    """
    checker = checker or StripeConnectStatusChecker.from_config()
    counts = {"checked": 0, "updated": 0, "failed": 0}
    if not checker.is_configured:
        _LOGGER.warning(
            "Stripe is not configured. Skipped the Stripe Connect check."
        )
        return counts

    for payee_type, payee_id, stripe_account_id in (
            procedures.get_connected_accounts()
    ):
        try:
            status = checker.get_status(stripe_account_id)
            new_status = procedures.update_stripe_connect_status(
                payee_type, payee_id, stripe_account_id, status, current_ts
            )
        except stripe.StripeError as e:
            _LOGGER.error(
                "Failed to check the Stripe Connect status of %s %i: %s",
                payee_type,
                payee_id,
                e.user_message or str(e),
            )
            counts["failed"] += 1
            continue
        except Exception:
            _LOGGER.exception(
                "Failed to check the Stripe Connect status of %s %i.",
                payee_type,
                payee_id,
            )
            counts["failed"] += 1
            continue

        counts["checked"] += 1
        if new_status is not None:
            counts["updated"] += 1

    return counts
