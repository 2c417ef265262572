import logging
import time
import signal
import sys
import click
from typing import Any
from flask import current_app
from flask.cli import with_appcontext
from swpt_pythonlib.multiproc_utils import (
    HANDLED_SIGNALS,
    spawn_worker_processes,
    try_unblock_signals,
)
from acc_platform import procedures
from acc_platform.run_transfers import process_scheduled_transfer_retries
from .common import acc_platform


@acc_platform.command("trigger_transfer_retries")
@with_appcontext
@click.option(
    "-p",
    "--processes",
    type=int,
    help=(
        "The number of worker processes."
        " If not specified, the value of the TRIGGER_RETRIES_PROCESSES"
        " environment variable will be used, defaulting to 1 if empty."
    ),
)
@click.option(
    "-w",
    "--wait",
    type=float,
    help=(
        "Poll the database for due transfer retries every FLOAT seconds."
        " If not specified, the value of the TRIGGER_RETRIES_PERIOD"
        " environment variable will be used, defaulting to 5 seconds if"
        " empty."
    ),
)
@click.option(
    "--quit-early",
    is_flag=True,
    default=False,
    help="Exit after some time (mainly useful during testing).",
)
def trigger_transfer_retries(
    processes: int,
    wait: float,
    quit_early: bool,
) -> None:
    """Run processes that enqueue the scheduled retries of failed
    transfers.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started triggering transfer retries.")

    def _trigger(wait: float) -> None:  # pragma: no cover
        from acc_platform import create_app

        app = create_app()
        stopped = False

        def stop(signum: Any = None, frame: Any = None) -> None:
            nonlocal stopped
            stopped = True

        for sig in HANDLED_SIGNALS:
            signal.signal(sig, stop)
        try_unblock_signals()

        with app.app_context():
            while not stopped:
                started_at = time.time()
                try:
                    count = process_scheduled_transfer_retries()
                except Exception:
                    logger.exception(
                        "Caught error while triggering transfer retries."
                    )
                    sys.exit(1)

                if count > 0:
                    logger.info(
                        "%i transfer retries have been triggered.", count
                    )
                else:
                    logger.debug("0 transfer retries have been triggered.")

                if quit_early:
                    break
                time.sleep(max(0.0, wait + started_at - time.time()))

    spawn_worker_processes(
        processes=(
            processes
            if processes is not None
            else current_app.config["TRIGGER_RETRIES_PROCESSES"]
        ),
        target=_trigger,
        wait=(
            wait
            if wait is not None
            else current_app.config["TRIGGER_RETRIES_PERIOD"]
        ),
    )
    sys.exit(1)


@acc_platform.command("payout_transaction")
@with_appcontext
@click.argument("transaction_id", type=int)
def payout_transaction(transaction_id):
    """Enqueue the payout of a completed transaction.

    The payee's earnings will be transferred by the chores consumer.
    """
    if not procedures.enqueue_transaction_payout(transaction_id):
        click.echo(
            f"Error: Transaction with ID {transaction_id} does not qualify"
            f" for a payout.",
            err=True,
        )
        sys.exit(1)

    click.echo(f"Payout of transaction {transaction_id} has been enqueued.")
