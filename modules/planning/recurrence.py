"""Recurrence date arithmetic.

Month-based frequencies use ``relativedelta``, which clamps to the last day of
the target month: 2024-01-31 + MONTHLY → 2024-02-29.
"""
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from .models import Frequency

# Step used by CUSTOM when no day count is configured
DEFAULT_CUSTOM_DAYS = 30

FREQUENCY_STEPS = {
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.SEMIANNUAL: relativedelta(months=6),
    Frequency.ANNUAL: relativedelta(months=12),
    Frequency.CUSTOM: relativedelta(days=DEFAULT_CUSTOM_DAYS),
}


def next_occurrence(
    reference: date,
    frequency: Frequency,
    custom_days: Optional[int] = None,
) -> date:
    """Return the date one period after ``reference``.

    A positive custom day count wins over the named frequency; zero or a
    negative count is treated as unset (CUSTOM then steps by the default).

    Raises:
        ValueError: unknown frequency
    """
    if custom_days is not None and custom_days > 0:
        return reference + timedelta(days=custom_days)

    try:
        step = FREQUENCY_STEPS[Frequency(frequency)]
    except ValueError:
        raise ValueError(f"Unknown frequency: {frequency!r}") from None
    return reference + step


def iter_occurrences(
    first: date,
    frequency: Frequency,
    custom_days: Optional[int] = None,
    count: Optional[int] = None,
    until: Optional[date] = None,
):
    """Yield ``first`` and its successors.

    Stops after ``count`` dates, or once a date passes ``until``.
    One of the two bounds is required.
    """
    if count is None and until is None:
        raise ValueError("iter_occurrences needs a count or an until date")

    current = first
    produced = 0
    while True:
        if count is not None and produced >= count:
            return
        if count is None and current > until:
            return
        yield current
        produced += 1
        current = next_occurrence(current, frequency, custom_days)
