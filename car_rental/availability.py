"""
Vehicle availability state machine.

A vehicle is ``Available``, ``Rented`` or ``Maintenance``.  Bookings drive the
``Available <-> Rented`` cycle through ``apply_booking_event``; maintenance
is entered and left only by the owner through ``apply_owner_status``.
"""

import enum
import logging
from datetime import date, datetime

from sqlalchemy import func, select, update

from .errors import ValidationError, VehicleUnavailable
from .models import Booking, Vehicle, VehicleStatus, db

logger = logging.getLogger(__name__)


class BookingEvent(enum.Enum):
    BOOKED = 'booked'
    RELEASED = 'released'


def apply_booking_event(status, event: BookingEvent, other_active: bool = False) -> VehicleStatus:
    """
    Return the status a vehicle moves to when ``event`` happens.

    ``other_active`` tells a release whether another active booking still
    holds the vehicle.  Raises ``VehicleUnavailable`` when a booking targets
    a vehicle that is not Available.
    """
    status = VehicleStatus(status)
    if event is BookingEvent.BOOKED:
        if status is not VehicleStatus.AVAILABLE:
            raise VehicleUnavailable(f"Vehicle is not available (status: {status.value})")
        return VehicleStatus.RENTED
    if event is BookingEvent.RELEASED:
        if status is VehicleStatus.RENTED and not other_active:
            return VehicleStatus.AVAILABLE
        return status
    raise ValueError(f"Unknown booking event: {event!r}")


def apply_owner_status(current, requested, active_bookings: int = 0) -> VehicleStatus:
    """
    Validate a status change made by hand on the vehicle record.

    ``active_bookings`` is the number of active bookings on the vehicle.  While
    any exist the vehicle cannot be handed out as Available: a Rented vehicle
    stays Rented, and one coming back from maintenance returns to Rented.
    """
    try:
        requested = VehicleStatus(requested)
    except ValueError:
        raise ValidationError("Status must be one of Available, Rented, Maintenance")
    current = VehicleStatus(current)
    # Rented is only ever reached through a booking
    if requested is VehicleStatus.RENTED and current is not VehicleStatus.RENTED:
        raise ValidationError("A vehicle becomes Rented only through a booking")
    if requested is VehicleStatus.AVAILABLE and active_bookings > 0:
        if current is VehicleStatus.RENTED:
            raise ValidationError("Vehicle still has active bookings")
        if current is VehicleStatus.MAINTENANCE:
            return VehicleStatus.RENTED
    return requested


# ---------------------------------------------------------------------------
# Helpers over stored bookings

def count_other_active_bookings(vehicle_id: int, exclude_booking_id: int = None,
                                today: date = None) -> int:
    """Count active bookings on a vehicle, ignoring ``exclude_booking_id``."""
    today = today or date.today()
    query = db.session.query(func.count(Booking.id)).filter(
        Booking.vehicle_id == vehicle_id,
        Booking.end_date >= today,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.scalar() or 0


def lock_statement(vehicle_id: int):
    return select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()


def lock_vehicle(vehicle_id: int) -> Vehicle:
    """
    Load the vehicle row with a row lock held until the transaction ends.

    Releases of the same vehicle queue up behind each other, so the second
    one counts bookings only after the first has committed its delete.
    """
    statement = lock_statement(vehicle_id).execution_options(populate_existing=True)
    return db.session.execute(statement).scalar_one()


# ---------------------------------------------------------------------------
# Persisted transitions.  Both run inside the caller's transaction.

def reserve_vehicle(vehicle: Vehicle) -> VehicleStatus:
    """
    Move ``vehicle`` from Available to Rented.

    The status check and the write are a single conditional UPDATE, so of two
    concurrent reservations only one sees a matching row.
    """
    target = apply_booking_event(vehicle.status, BookingEvent.BOOKED)
    result = db.session.execute(
        update(Vehicle)
        .where(Vehicle.id == vehicle.id, Vehicle.status == VehicleStatus.AVAILABLE.value)
        .values(status=target.value, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.refresh(vehicle)
        logger.warning("Vehicle %s was taken by a concurrent booking", vehicle.id)
        raise VehicleUnavailable(f"Vehicle is not available (status: {vehicle.status})")
    db.session.refresh(vehicle)
    logger.info("Vehicle %s is now %s", vehicle.id, target.value)
    return target


def release_vehicle(vehicle: Vehicle, exclude_booking_id: int = None) -> VehicleStatus:
    """
    Return ``vehicle`` to Available unless another active booking holds it.

    ``exclude_booking_id`` is the booking being deleted or moved away.
    """
    vehicle = lock_vehicle(vehicle.id)
    others = count_other_active_bookings(vehicle.id, exclude_booking_id)
    target = apply_booking_event(vehicle.status, BookingEvent.RELEASED, other_active=others > 0)
    if target.value != vehicle.status:
        vehicle.status = target.value
        logger.info("Vehicle %s is now %s", vehicle.id, target.value)
    elif others:
        logger.info("Vehicle %s kept %s, %d other active booking(s)", vehicle.id, vehicle.status, others)
    return target
