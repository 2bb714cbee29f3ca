"""
Booking price calculation.

A booking's length is the number of started days between the start and end
date, end date exclusive.  Pricing bills at least one day, so a same-day
rental is charged for a day; customer statistics count the elapsed days
as they are.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, Mapping

from .errors import ValidationError

ONE_DAY = timedelta(days=1)


def elapsed_days(start, end) -> int:
    """Return the number of started days from ``start`` to ``end``."""
    if end < start:
        raise ValidationError("End date cannot be before start date")
    if isinstance(start, datetime) or isinstance(end, datetime):
        return math.ceil((end - start) / ONE_DAY)
    return (end - start).days


def rental_days(start, end) -> int:
    """Return the billable day count for a booking from ``start`` to ``end``."""
    return max(1, elapsed_days(start, end))


def booking_total(daily_rate: float, start, end, extras: Iterable[str] = (),
                  extra_rates: Mapping[str, float] = None) -> float:
    """
    Compute the total amount for a booking.

    ``days x daily_rate`` plus, for each selected extra, its per-day charge
    times the same day count.  Unknown extras are rejected.
    """
    if daily_rate is None or daily_rate <= 0:
        raise ValidationError("Vehicle daily rate must be positive")
    extra_rates = extra_rates or {}
    days = rental_days(start, end)
    per_day = float(daily_rate)
    for name in extras:
        if name not in extra_rates:
            raise ValidationError(f"Unknown extra: {name}")
        per_day += extra_rates[name]
    return round(days * per_day, 2)
