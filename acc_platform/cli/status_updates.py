import logging
import time
import click
from datetime import date
from typing import Callable, Optional
from flask import current_app
from flask.cli import with_appcontext
from acc_platform import procedures
from acc_platform.models import get_today_utc
from acc_platform.stripe_connect import check_stripe_connect_statuses
from acc_platform.utils import parse_timedelta, parse_date
from .common import acc_platform


def _parse_date_option(ctx, param, value):
    try:
        return parse_date(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def _parse_interval_option(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_timedelta(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def _wait_option(config_key: str, default: str):
    return click.option(
        "-w",
        "--wait",
        callback=_parse_interval_option,
        help=(
            "Run the check every PERIOD (for example, \"12h\")."
            f" If not specified, the value of the {config_key} environment"
            f" variable will be used, defaulting to {default} if empty."
        ),
        metavar="PERIOD",
    )


_date_option = click.option(
    "-d",
    "--date",
    "current_date",
    callback=_parse_date_option,
    help=(
        "Use DATE (in YYYY-MM-DD format) as the current date. If not"
        " specified, the current UTC date will be used."
    ),
    metavar="DATE",
)

_quit_early_option = click.option(
    "--quit-early",
    is_flag=True,
    default=False,
    help="Exit after some time (mainly useful during testing).",
)


def _run_check(
        check: Callable[[date], None],
        wait,
        interval_config_key: str,
        current_date: Optional[date],
        quit_early: bool,
) -> None:
    wait_seconds = (
        wait
        if wait is not None
        else parse_timedelta(current_app.config[interval_config_key])
    ).total_seconds()

    while True:
        started_at = time.time()
        check(current_date or get_today_utc())

        if quit_early:
            break
        time.sleep(max(0.0, wait_seconds + started_at - time.time()))


@acc_platform.command("check_expired_subscriptions")
@with_appcontext
@_wait_option("APP_SUBSCRIPTIONS_CHECK_INTERVAL", "1d")
@_date_option
@_quit_early_option
def check_expired_subscriptions(wait, current_date, quit_early):
    """Run a process which suspends ACCs whose subscriptions have
    expired.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started checking for expired subscriptions.")

    def check(today: date) -> None:
        count = procedures.suspend_accs_with_expired_subscriptions(today)
        logger.info("Suspended %i ACC account(s).", count)

    _run_check(
        check,
        wait,
        "APP_SUBSCRIPTIONS_CHECK_INTERVAL",
        current_date,
        quit_early,
    )


@acc_platform.command("check_expired_certificates")
@with_appcontext
@_wait_option("APP_CERTIFICATES_CHECK_INTERVAL", "1d")
@_date_option
@_quit_early_option
def check_expired_certificates(wait, current_date, quit_early):
    """Run a process which marks valid certificates as expired, once
    their expiry date has passed.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started checking for expired certificates.")

    def check(today: date) -> None:
        count = procedures.expire_certificates(today)
        if count > 0:
            logger.info("Updated %i certificate(s) to expired status.", count)
        else:
            logger.debug("No expired certificates found.")

    _run_check(
        check,
        wait,
        "APP_CERTIFICATES_CHECK_INTERVAL",
        current_date,
        quit_early,
    )


@acc_platform.command("check_discount_codes_status")
@with_appcontext
@_wait_option("APP_DISCOUNT_CODES_CHECK_INTERVAL", "1d")
@_date_option
@_quit_early_option
def check_discount_codes_status(wait, current_date, quit_early):
    """Run a process which marks active discount codes as expired or
    depleted.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started checking discount codes status.")

    def check(today: date) -> None:
        count = procedures.update_discount_code_statuses(today)
        logger.info("Updated %i discount code(s).", count)

    _run_check(
        check,
        wait,
        "APP_DISCOUNT_CODES_CHECK_INTERVAL",
        current_date,
        quit_early,
    )


@acc_platform.command("update_training_class_statuses")
@with_appcontext
@_wait_option("APP_TRAINING_CLASSES_CHECK_INTERVAL", "1m")
@_date_option
@_quit_early_option
def update_training_class_statuses(wait, current_date, quit_early):
    """Run a process which updates the statuses of training classes
    according to their start and end dates.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started updating training class statuses.")

    def check(today: date) -> None:
        counts = procedures.update_training_class_statuses(today)
        logger.info(
            "Updated %i class(es): %i scheduled, %i in_progress,"
            " %i completed.",
            sum(counts.values()),
            counts.get("scheduled", 0),
            counts.get("in_progress", 0),
            counts.get("completed", 0),
        )

    _run_check(
        check,
        wait,
        "APP_TRAINING_CLASSES_CHECK_INTERVAL",
        current_date,
        quit_early,
    )


@acc_platform.command("check_stripe_connect_status")
@with_appcontext
@_wait_option("APP_STRIPE_CONNECT_CHECK_INTERVAL", "1h")
@_quit_early_option
def check_stripe_connect_status(wait, quit_early):
    """Run a process which refreshes the Stripe Connect status of the
    ACCs, training centers, and instructors that have connected Stripe
    accounts.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started checking Stripe Connect statuses.")

    def check(today: date) -> None:
        counts = check_stripe_connect_statuses()
        logger.info(
            "Checked %i Stripe account(s): %i updated, %i failed.",
            counts["checked"],
            counts["updated"],
            counts["failed"],
        )

    _run_check(
        check,
        wait,
        "APP_STRIPE_CONNECT_CHECK_INTERVAL",
        None,
        quit_early,
    )
