import logging
import sys
import click
from flask.cli import with_appcontext
from acc_platform import procedures
from acc_platform.models import CERTIFICATE_TYPES
from .common import acc_platform


@acc_platform.command("backfill_certificate_types")
@with_appcontext
def backfill_certificate_types():
    """Recalculate the types of all existing certificates.

    Only the certificates whose type differs from the calculated one
    get updated. Note that this overwrites manually set types.
    """
    logger = logging.getLogger(__name__)
    logger.info("Started certificate type backfill.")

    result = procedures.backfill_certificate_types()

    click.echo(f"Total certificates processed: {result.total_count}")
    click.echo(f"Certificates updated: {result.updated_count}")
    click.echo(f"Instructor certificates: {result.instructor_count}")
    click.echo(f"Trainee certificates: {result.trainee_count}")


@acc_platform.command("set_certificate_type")
@with_appcontext
@click.argument("certificate_id", type=int)
@click.argument("certificate_type", metavar="TYPE")
def set_certificate_type(certificate_id, certificate_type):
    """Manually set the TYPE ("instructor" or "trainee") of a
    certificate.

    The type will be kept until the instructor or the trainee name of
    the certificate gets changed.
    """
    logger = logging.getLogger(__name__)

    if certificate_type not in CERTIFICATE_TYPES:
        click.echo(
            'Error: Type must be either "instructor" or "trainee".', err=True
        )
        sys.exit(1)

    result = procedures.set_certificate_type(certificate_id, certificate_type)
    if result is None:
        click.echo(
            f"Error: Certificate with ID {certificate_id} not found.",
            err=True,
        )
        sys.exit(1)

    old_type, certificate = result
    logger.info(
        "Certificate %i type changed: %s -> %s.",
        certificate_id,
        old_type,
        certificate_type,
    )
    click.echo(f"Certificate ID {certificate_id} type updated:")
    click.echo(f"  Old Type: {old_type or 'NULL'}")
    click.echo(f"  New Type: {certificate_type}")
    click.echo(f"  Trainee Name: {certificate.trainee_name}")

    if certificate.instructor_id is not None:
        instructor_name = procedures.get_instructor_name(
            certificate.instructor_id
        )
        if instructor_name:
            click.echo(f"  Instructor: {instructor_name}")
