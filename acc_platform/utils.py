from __future__ import annotations
import re
from typing import Optional, Tuple
from decimal import Decimal, ROUND_HALF_UP
from datetime import date, timedelta

RE_PERIOD = re.compile(r"^([\d.eE+-]+)([smhdw]?)\s*$")
CENT = Decimal("0.01")

CERTIFICATE_TYPE_INSTRUCTOR = "instructor"
CERTIFICATE_TYPE_TRAINEE = "trainee"


def parse_timedelta(s: str) -> timedelta:
    """Parse a string to a timedelta object.

    The string must be in the format: "<number><unit>". <unit> can be
    `s` (seconds), `m` (minutes), `h` (hours), `d` (days), or `w`
    (weeks). If <unit> is not specified (en empty string), it defaults
    to seconds. For example:

    >>> parse_timedelta("20d")
    datetime.timedelta(days=20)
    >>> parse_timedelta("20")
    datetime.timedelta(seconds=20)
    """
    m = RE_PERIOD.match(s)
    if m:
        n = float(m[1])
        if n >= 0:
            unit = m[2]
            if unit == "" or unit == "s":
                return timedelta(seconds=n)
            if unit == "m":
                return timedelta(minutes=n)
            elif unit == "h":
                return timedelta(hours=n)
            elif unit == "d":
                return timedelta(days=n)
            else:
                assert unit == 'w'
                return timedelta(weeks=n)

    raise ValueError(f"invalid time interval: {s}")


def parse_date(s: Optional[str]) -> Optional[date]:
    if s is None:
        return None

    try:
        return date.fromisoformat(s)
    except ValueError:
        raise ValueError(f"invalid date: {s}")


def normalize_name(s: Optional[str]) -> str:
    """Collapse runs of whitespace, lowercase, and trim the ends.

    >>> normalize_name("  John   SMITH ")
    'john smith'
    """
    return " ".join((s or "").split()).lower()


def classify_certificate_type(
        instructor_name: Optional[Tuple[str, str]],
        trainee_name: Optional[str],
) -> str:
    """Decide whether a certificate has been issued to its instructor.

    `instructor_name` is a `(first_name, last_name)` tuple, or `None`
    when the certificate has no instructor, or the instructor does not
    exist. Missing data always results in a "trainee" certificate.
    """
    if instructor_name is None or not trainee_name:
        return CERTIFICATE_TYPE_TRAINEE

    first_name = (instructor_name[0] or "").strip()
    last_name = (instructor_name[1] or "").strip()
    normalized_trainee_name = normalize_name(trainee_name)

    # A blank trainee name matches nobody, not even an instructor whose
    # names are blank too.
    if normalized_trainee_name == "":
        return CERTIFICATE_TYPE_TRAINEE

    if normalized_trainee_name == normalize_name(f"{first_name} {last_name}"):
        return CERTIFICATE_TYPE_INSTRUCTOR

    # The names can be written in the reverse order.
    if (
        first_name
        and last_name
        and normalized_trainee_name
        == normalize_name(f"{last_name} {first_name}")
    ):
        return CERTIFICATE_TYPE_INSTRUCTOR

    return CERTIFICATE_TYPE_TRAINEE


def calc_retry_delay(base_delay: int, failures_count: int) -> int:
    """Return the number of seconds to wait before the next retry.

    `failures_count` is the number of failed attempts before the one
    that has just failed. For a base delay of 60 seconds this gives
    60, 120, 240... seconds.
    """
    assert base_delay > 0
    assert failures_count >= 0
    return base_delay * (2 ** failures_count)


def calc_training_class_status(
        start_date: date,
        end_date: date,
        current_date: date,
) -> str:
    if current_date < start_date:
        return "scheduled"
    if current_date <= end_date:
        return "in_progress"
    return "completed"


def calc_discount_code_status(
        status: str,
        end_date: Optional[date],
        total_quantity: Optional[int],
        used_quantity: int,
        current_date: date,
) -> str:
    if status != "active":
        return status

    # Expiry takes priority over depletion.
    if end_date is not None and end_date < current_date:
        return "expired"
    if total_quantity and used_quantity >= total_quantity:
        return "depleted"
    return status


def calc_stripe_connect_status(
        details_submitted: Optional[bool],
        charges_enabled: Optional[bool],
) -> str:
    if details_submitted and charges_enabled:
        return "connected"
    return "pending"


def round_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def calc_commission_split(
        gross_amount,
        commission_amount,
        commission_percentage: float,
) -> Tuple[Decimal, Decimal, Decimal]:
    """Return a `(gross, commission, net)` tuple.

    When `commission_amount` is not positive, the commission is
    calculated from `commission_percentage`. Raises `ValueError` when
    the net amount would be negative.
    """
    gross = Decimal(gross_amount)
    commission = Decimal(commission_amount or 0)
    if commission <= 0:
        commission = gross * Decimal(str(commission_percentage)) / 100

    net = gross - commission
    if net < 0:
        raise ValueError("Net amount cannot be negative.")

    return round_money(gross), round_money(commission), round_money(net)


def to_cents(amount) -> int:
    return int(round_money(amount) * 100)
