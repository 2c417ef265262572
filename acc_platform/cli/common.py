import click


@click.group("acc_platform")
def acc_platform():
    """Perform acc_platform specific operations."""
