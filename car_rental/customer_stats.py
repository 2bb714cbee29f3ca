"""
Customer statistics aggregation.

A customer's booking count, lifetime spend and tier are derived from their
bookings.  ``compute_customer_stats`` is the pure rule;
``recompute_customer_stats`` applies it to a stored customer and writes only
when something changed.  The ledger calls the latter after every booking
mutation, inside the same transaction.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from .models import Booking, Customer, CustomerStatus, db
from .errors import ValidationError
from .pricing import elapsed_days

logger = logging.getLogger(__name__)

VIP_MIN_BOOKINGS = 5
VIP_MIN_RENTAL_DAYS = 30


@dataclass
class CustomerStats:
    status: str
    total_bookings: int
    total_rental_days: int = 0
    total_spent: float = 0.0
    changed: bool = False

    def to_dict(self) -> dict:
        return {
            'status': self.status,
            'totalBookings': self.total_bookings,
            'totalRentalDays': self.total_rental_days,
            'totalSpent': self.total_spent,
        }


def compute_customer_stats(current_status: str, bookings: Iterable[Booking]) -> CustomerStats:
    bookings = list(bookings)
    total_bookings = len(bookings)
    total_days = sum(elapsed_days(b.start_date, b.end_date) for b in bookings)
    total_spent = round(sum(b.total_amount or 0.0 for b in bookings), 2)

    # VIP first, then Active; no bookings leaves the current status alone,
    # so an owner-set Inactive is never overwritten by an empty history.
    status = current_status
    if total_bookings >= VIP_MIN_BOOKINGS or total_days >= VIP_MIN_RENTAL_DAYS:
        status = CustomerStatus.VIP.value
    elif total_bookings > 0:
        status = CustomerStatus.ACTIVE.value

    return CustomerStats(status=status, total_bookings=total_bookings,
                         total_rental_days=total_days, total_spent=total_spent)


def recompute_customer_stats(customer: Customer) -> CustomerStats:
    bookings = Booking.query.filter_by(customer_id=customer.id).all()
    stats = compute_customer_stats(customer.status, bookings)

    if (stats.status != customer.status
            or stats.total_bookings != customer.total_bookings
            or abs(stats.total_spent - (customer.total_spent or 0.0)) > 0.005):
        customer.status = stats.status
        customer.total_bookings = stats.total_bookings
        customer.total_spent = stats.total_spent
        db.session.add(customer)
        stats.changed = True
        logger.info("Customer %s stats updated: %s bookings, %.2f spent, %s",
                    customer.id, stats.total_bookings, stats.total_spent, stats.status)
    return stats


def set_customer_status(customer: Customer, requested) -> str:
    """
    Apply a status chosen by the owner.

    Only Inactive is taken as given.  Asking for Active or VIP puts the
    customer back on Active and lets their bookings decide the tier, so VIP
    is always earned.
    """
    try:
        requested = CustomerStatus(requested)
    except ValueError:
        raise ValidationError("Status must be one of Active, VIP, Inactive")
    if requested is CustomerStatus.INACTIVE:
        customer.status = requested.value
        return customer.status

    customer.status = CustomerStatus.ACTIVE.value
    if customer.id is not None:
        recompute_customer_stats(customer)
    return customer.status
