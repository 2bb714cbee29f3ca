"""
Booking ledger.

Creates, edits and deletes bookings and keeps the dependent records in step:
the vehicle's availability and the linked customer's statistics are written
in the same transaction as the booking itself, so a failure at any step
leaves all three untouched.
"""

import logging
from contextlib import contextmanager
from datetime import date, timedelta

from flask import current_app

from .availability import release_vehicle, reserve_vehicle
from .customer_stats import recompute_customer_stats
from .errors import Conflict, NotFound, Unauthorized, ValidationError
from .models import Booking, Customer, Vehicle, db
from .pricing import booking_total

logger = logging.getLogger(__name__)

# Free-text fields copied verbatim from the request onto the booking
TEXT_FIELDS = ('temp_name', 'temp_email', 'temp_phone', 'special_requests',
               'insurance', 'mileage_policy', 'fuel_policy')


@contextmanager
def atomic():
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def get_owned(model, record_id, owner, label: str):
    """Load ``model`` by id, making sure it belongs to ``owner``."""
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFound(f"{label} not found")
    if record.owner_id != owner.id:
        raise Unauthorized(f"{label} not found or unauthorized")
    return record


def _extra_rates() -> dict:
    return current_app.config['EXTRA_DAILY_RATES']


def _price(vehicle: Vehicle, start, end, extras, requested=None) -> float:
    total = booking_total(vehicle.daily_rate, start, end, extras, _extra_rates())
    if requested is not None and abs(requested - total) > 0.005:
        logger.warning("Ignoring client total %.2f for vehicle %s, computed %.2f",
                       requested, vehicle.id, total)
    return total


def _check_signature(owner, vehicle_id, start, end, exclude_id=None) -> None:
    query = Booking.query.filter_by(owner_id=owner.id, vehicle_id=vehicle_id,
                                    start_date=start, end_date=end)
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    if query.first() is not None:
        raise Conflict("A booking with similar details already exists")


# ---------------------------------------------------------------------------
# Reads

def get_booking(owner, booking_id: int) -> Booking:
    return get_owned(Booking, booking_id, owner, 'Booking')


def list_bookings(owner, customer_id: int = None, vehicle_id: int = None,
                  due_within_days: int = None, today: date = None) -> list:
    """
    Return the owner's bookings, newest first.

    ``due_within_days`` keeps only bookings starting between today and that
    many days ahead, which is what the dashboard shows as notifications.
    """
    query = Booking.query.filter_by(owner_id=owner.id)
    if customer_id is not None:
        query = query.filter(Booking.customer_id == customer_id)
    if vehicle_id is not None:
        query = query.filter(Booking.vehicle_id == vehicle_id)
    if due_within_days is not None:
        today = today or date.today()
        query = query.filter(Booking.start_date >= today,
                             Booking.start_date <= today + timedelta(days=due_within_days))
        return query.order_by(Booking.start_date.asc()).all()
    return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()


# ---------------------------------------------------------------------------
# Mutations

def create_booking(owner, data) -> Booking:
    """
    Create a booking from a validated ``BookingCreate``.

    The vehicle must be Available; it becomes Rented and the linked customer's
    statistics are recomputed before the transaction commits.
    """
    with atomic():
        vehicle = get_owned(Vehicle, data.vehicle_id, owner, 'Vehicle')
        customer = None
        if data.customer_id is not None:
            customer = get_owned(Customer, data.customer_id, owner, 'Customer')

        _check_signature(owner, vehicle.id, data.start_date, data.end_date)
        total = _price(vehicle, data.start_date, data.end_date, data.extras, data.total_amount)

        reserve_vehicle(vehicle)

        booking = Booking(
            owner_id=owner.id,
            vehicle_id=vehicle.id,
            customer_id=customer.id if customer else None,
            start_date=data.start_date,
            end_date=data.end_date,
            total_amount=total,
            pickup_location=data.pickup_location or 'Not Provided',
            dropoff_location=data.dropoff_location or 'Not Provided',
        )
        booking.extra_list = data.extras
        for field in TEXT_FIELDS:
            setattr(booking, field, getattr(data, field) or None)
        db.session.add(booking)
        db.session.flush()

        if customer is not None:
            recompute_customer_stats(customer)

    logger.info("Booking %s created: vehicle %s, %s to %s, total %.2f",
                booking.id, vehicle.id, booking.start_date, booking.end_date, booking.total_amount)
    return booking


def update_booking(owner, booking_id: int, changes: dict) -> Booking:
    """
    Apply ``changes`` (snake_case field names) to a booking.

    The total is recomputed from the current vehicle rate.  Moving the
    booking to another vehicle reserves that vehicle and releases the old
    one; both the old and the new customer get their statistics recomputed.
    """
    with atomic():
        booking = get_owned(Booking, booking_id, owner, 'Booking')
        old_vehicle = booking.vehicle
        old_customer = booking.customer

        for required in ('vehicle_id', 'start_date', 'end_date'):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be empty")

        vehicle = old_vehicle
        if changes.get('vehicle_id') not in (None, booking.vehicle_id):
            vehicle = get_owned(Vehicle, changes['vehicle_id'], owner, 'Vehicle')

        customer = old_customer
        if 'customer_id' in changes:
            customer_id = changes['customer_id']
            customer = get_owned(Customer, customer_id, owner, 'Customer') if customer_id is not None else None

        start = changes.get('start_date') or booking.start_date
        end = changes.get('end_date') or booking.end_date
        if end < start:
            raise ValidationError("End date cannot be before start date")
        extras = changes['extras'] if changes.get('extras') is not None else booking.extra_list

        if (vehicle.id, start, end) != (booking.vehicle_id, booking.start_date, booking.end_date):
            _check_signature(owner, vehicle.id, start, end, exclude_id=booking.id)

        total = _price(vehicle, start, end, extras, changes.get('total_amount'))

        if vehicle is not old_vehicle:
            reserve_vehicle(vehicle)

        booking.vehicle_id = vehicle.id
        booking.customer_id = customer.id if customer else None
        booking.start_date = start
        booking.end_date = end
        booking.extra_list = extras
        booking.total_amount = total
        for field in TEXT_FIELDS + ('pickup_location', 'dropoff_location', 'status'):
            if field in changes and changes[field] is not None:
                setattr(booking, field, changes[field])
        db.session.flush()

        if vehicle is not old_vehicle:
            release_vehicle(old_vehicle, exclude_booking_id=booking.id)

        if old_customer is not None and old_customer is not customer:
            recompute_customer_stats(old_customer)
        if customer is not None:
            recompute_customer_stats(customer)

    logger.info("Booking %s updated: vehicle %s, %s to %s, total %.2f",
                booking.id, booking.vehicle_id, booking.start_date, booking.end_date, booking.total_amount)
    return booking


def delete_booking(owner, booking_id: int) -> None:
    """
    Delete a booking.

    The vehicle goes back to Available only if no other active booking still
    holds it; the customer's count and spend drop by this booking's share.
    """
    with atomic():
        booking = get_owned(Booking, booking_id, owner, 'Booking')
        vehicle = booking.vehicle
        customer = booking.customer

        db.session.delete(booking)
        db.session.flush()

        release_vehicle(vehicle, exclude_booking_id=booking_id)
        if customer is not None:
            recompute_customer_stats(customer)

    logger.info("Booking %s deleted, vehicle %s is %s", booking_id, vehicle.id, vehicle.status)
