"""
JSON routes for bookings, customers and vehicles.

Every route acts on behalf of the caller returned by ``current_user()`` and
only ever sees that caller's records.  Booking mutations go through the
ledger; customer and vehicle CRUD is thin enough to live here.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from . import ledger
from .availability import apply_owner_status, count_other_active_bookings, lock_vehicle
from .customer_stats import set_customer_status
from .errors import Conflict, ValidationError
from .identity import current_user
from .models import Booking, Customer, Vehicle, db
from .schemas import (BookingCreate, BookingUpdate, CustomerCreate, CustomerUpdate,
                      VehicleCreate, VehicleUpdate, parse_body)

logger = logging.getLogger(__name__)

bp = Blueprint('api', __name__)


def _int_arg(name: str, required: bool = False):
    raw = request.args.get(name)
    if raw is None or raw == '':
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _json_body():
    return request.get_json(silent=True)


@bp.route('/health')
def health():
    return jsonify({'ok': True})


# ---------------------------------------------------------------------------
# Bookings

@bp.route('/bookings', methods=['GET'])
def list_bookings():
    """
    List the caller's bookings.  ``id`` returns a single booking with its
    vehicle and customer joined in; ``notifications=true`` keeps bookings
    starting within the notification window (``days`` overrides it).
    """
    user = current_user()
    booking_id = _int_arg('id')
    if booking_id is not None:
        booking = ledger.get_booking(user, booking_id)
        return jsonify(booking.to_dict(expand=True))

    window = None
    if request.args.get('notifications', '').lower() == 'true':
        window = _int_arg('days')
        if window is None:
            window = current_app.config['NOTIFICATION_WINDOW_DAYS']
        if window < 0:
            raise ValidationError("days must not be negative")

    bookings = ledger.list_bookings(user,
                                    customer_id=_int_arg('customerId'),
                                    vehicle_id=_int_arg('vehicleId'),
                                    due_within_days=window)
    return jsonify([b.to_dict() for b in bookings])


@bp.route('/bookings', methods=['POST'])
def create_booking():
    user = current_user()
    data = parse_body(BookingCreate, _json_body())
    booking = ledger.create_booking(user, data)
    return jsonify(booking.to_dict()), 201


@bp.route('/bookings', methods=['PATCH'])
def update_booking():
    user = current_user()
    data = parse_body(BookingUpdate, _json_body())
    booking = ledger.update_booking(user, data.id, data.changes())
    return jsonify(booking.to_dict())


@bp.route('/bookings', methods=['DELETE'])
def delete_booking():
    user = current_user()
    booking_id = _int_arg('id', required=True)
    ledger.delete_booking(user, booking_id)
    return jsonify({'message': 'Booking deleted successfully'})


# ---------------------------------------------------------------------------
# Customers

def _check_customer_email(user, email: str, exclude_id: int = None) -> None:
    query = Customer.query.filter_by(owner_id=user.id, email=email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise Conflict("A customer with similar details already exists")


@bp.route('/customers', methods=['GET'])
def list_customers():
    """List the caller's customers with their booking count and spend."""
    user = current_user()
    customer_id = _int_arg('id')
    if customer_id is not None:
        customer = ledger.get_owned(Customer, customer_id, user, 'Customer')
        return jsonify(customer.to_dict())
    customers = (Customer.query.filter_by(owner_id=user.id)
                 .order_by(Customer.created_at.desc(), Customer.id.desc()).all())
    return jsonify([c.to_dict() for c in customers])


@bp.route('/customers', methods=['POST'])
def create_customer():
    user = current_user()
    data = parse_body(CustomerCreate, _json_body())
    _check_customer_email(user, data.email)
    customer = Customer(owner_id=user.id, first_name=data.first_name, last_name=data.last_name,
                        email=data.email, phone=data.phone)
    set_customer_status(customer, data.status)
    db.session.add(customer)
    db.session.commit()
    logger.info("Customer %s created", customer.id)
    return jsonify(customer.to_dict()), 201


@bp.route('/customers', methods=['PATCH'])
def update_customer():
    user = current_user()
    data = parse_body(CustomerUpdate, _json_body())
    customer = ledger.get_owned(Customer, data.id, user, 'Customer')
    changes = data.changes()
    if changes.get('email'):
        _check_customer_email(user, changes['email'], exclude_id=customer.id)
    status = changes.pop('status', None)
    with ledger.atomic():
        for field, value in changes.items():
            if value is not None:
                setattr(customer, field, value)
        if status is not None:
            set_customer_status(customer, status)
    return jsonify(customer.to_dict())


@bp.route('/customers', methods=['DELETE'])
def delete_customer():
    """
    Delete a customer.  Their bookings stay on the books as guest bookings,
    keeping the customer's name and contact details.
    """
    user = current_user()
    customer_id = _int_arg('id', required=True)
    with ledger.atomic():
        customer = ledger.get_owned(Customer, customer_id, user, 'Customer')
        for booking in Booking.query.filter_by(customer_id=customer.id).all():
            booking.customer_id = None
            booking.temp_name = booking.temp_name or f"{customer.first_name} {customer.last_name}"
            booking.temp_email = booking.temp_email or customer.email
            booking.temp_phone = booking.temp_phone or customer.phone
        db.session.delete(customer)
    logger.info("Customer %s deleted", customer_id)
    return jsonify({'message': 'Customer deleted successfully'})


# ---------------------------------------------------------------------------
# Vehicles

@bp.route('/vehicles', methods=['GET'])
def list_vehicles():
    user = current_user()
    vehicle_id = _int_arg('id')
    if vehicle_id is not None:
        vehicle = ledger.get_owned(Vehicle, vehicle_id, user, 'Vehicle')
        return jsonify(vehicle.to_dict())
    query = Vehicle.query.filter_by(owner_id=user.id)
    status = request.args.get('status')
    if status:
        query = query.filter_by(status=status)
    vehicles = query.order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).all()
    return jsonify([v.to_dict() for v in vehicles])


@bp.route('/vehicles', methods=['POST'])
def create_vehicle():
    user = current_user()
    data = parse_body(VehicleCreate, _json_body())
    status = apply_owner_status('Available', data.status)
    vehicle = Vehicle(owner_id=user.id, make=data.make, model=data.model, year=data.year,
                      daily_rate=data.daily_rate, status=status.value)
    db.session.add(vehicle)
    db.session.commit()
    logger.info("Vehicle %s created", vehicle.id)
    return jsonify(vehicle.to_dict()), 201


@bp.route('/vehicles', methods=['PATCH'])
def update_vehicle():
    """
    Edit a vehicle.  Status may be set to Available or Maintenance by hand;
    Rented is reserved for bookings.  A new daily rate applies to bookings
    created or edited from now on.
    """
    user = current_user()
    data = parse_body(VehicleUpdate, _json_body())
    changes = data.changes()
    with ledger.atomic():
        vehicle = ledger.get_owned(Vehicle, data.id, user, 'Vehicle')
        if changes.get('status') is not None:
            vehicle = lock_vehicle(vehicle.id)
            active = count_other_active_bookings(vehicle.id)
            changes['status'] = apply_owner_status(vehicle.status, changes['status'], active).value
        for field, value in changes.items():
            if value is not None:
                setattr(vehicle, field, value)
    logger.info("Vehicle %s updated (%s)", vehicle.id, ', '.join(sorted(changes)))
    return jsonify(vehicle.to_dict())


@bp.route('/vehicles', methods=['DELETE'])
def delete_vehicle():
    user = current_user()
    vehicle_id = _int_arg('id', required=True)
    vehicle = ledger.get_owned(Vehicle, vehicle_id, user, 'Vehicle')
    # Bookings keep the vehicle's history and the customers' totals
    if Booking.query.filter_by(vehicle_id=vehicle.id).first() is not None:
        raise ValidationError("Cannot delete a vehicle that has bookings. Delete its bookings first.")
    db.session.delete(vehicle)
    db.session.commit()
    logger.info("Vehicle %s deleted", vehicle_id)
    return jsonify({'message': 'Vehicle deleted successfully'})
