import enum
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class VehicleStatus(str, enum.Enum):
    AVAILABLE = 'Available'
    RENTED = 'Rented'
    MAINTENANCE = 'Maintenance'


class CustomerStatus(str, enum.Enum):
    ACTIVE = 'Active'
    VIP = 'VIP'
    INACTIVE = 'Inactive'


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # Identity key issued by the external identity provider
    external_id = db.Column(db.String(120), unique=True, nullable=False, index=True)
    email = db.Column(db.String(200), default='')
    first_name = db.Column(db.String(120), default='Unknown')
    last_name = db.Column(db.String(120), default='User')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vehicles = db.relationship('Vehicle', back_populates='owner')
    customers = db.relationship('Customer', back_populates='owner')
    bookings = db.relationship('Booking', back_populates='owner')

    def __repr__(self) -> str:
        return f"<User {self.external_id}>"


class Vehicle(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    make = db.Column(db.String(120), nullable=False)
    model = db.Column(db.String(120), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    daily_rate = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=VehicleStatus.AVAILABLE.value)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = db.relationship('User', back_populates='vehicles')
    bookings = db.relationship('Booking', back_populates='vehicle')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'make': self.make,
            'model': self.model,
            'year': self.year,
            'dailyRate': self.daily_rate,
            'status': self.status,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Vehicle {self.year} {self.make} {self.model} {self.status}>"


class Customer(db.Model):
    __table_args__ = (db.UniqueConstraint('owner_id', 'email', name='uq_customer_owner_email'),)

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50))
    status = db.Column(db.String(20), nullable=False, default=CustomerStatus.ACTIVE.value)

    # Denormalised aggregates, maintained by customer_stats
    total_bookings = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = db.relationship('User', back_populates='customers')
    bookings = db.relationship('Booking', back_populates='customer')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'status': self.status,
            'totalBookings': self.total_bookings,
            'totalSpent': self.total_spent,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Customer {self.first_name} {self.last_name}>"


class Booking(db.Model):
    # Repeating an identical request must not create a second booking
    __table_args__ = (
        db.UniqueConstraint('owner_id', 'vehicle_id', 'start_date', 'end_date',
                            name='uq_booking_signature'),
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id'), nullable=True, index=True)

    # Guest contact, used when the renter has no customer record
    temp_name = db.Column(db.String(200))
    temp_email = db.Column(db.String(200))
    temp_phone = db.Column(db.String(50))

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    extras = db.Column(db.String(200), default='')  # comma separated extra names

    pickup_location = db.Column(db.String(200), default='Not Provided')
    dropoff_location = db.Column(db.String(200), default='Not Provided')
    special_requests = db.Column(db.Text)
    insurance = db.Column(db.String(120))
    mileage_policy = db.Column(db.String(120))
    fuel_policy = db.Column(db.String(120))
    status = db.Column(db.String(50), default='Confirmed')

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = db.relationship('User', back_populates='bookings')
    vehicle = db.relationship('Vehicle', back_populates='bookings')
    customer = db.relationship('Customer', back_populates='bookings')

    @property
    def extra_list(self) -> list:
        return [e for e in (self.extras or '').split(',') if e]

    @extra_list.setter
    def extra_list(self, values) -> None:
        self.extras = ','.join(values or [])

    def to_dict(self, expand: bool = False) -> dict:
        data = {
            'id': self.id,
            'vehicleId': self.vehicle_id,
            'customerId': self.customer_id,
            'tempName': self.temp_name,
            'tempEmail': self.temp_email,
            'tempPhone': self.temp_phone,
            'startDate': _iso(self.start_date),
            'endDate': _iso(self.end_date),
            'totalAmount': self.total_amount,
            'extras': self.extra_list,
            'pickupLocation': self.pickup_location,
            'dropoffLocation': self.dropoff_location,
            'specialRequests': self.special_requests,
            'insurance': self.insurance,
            'mileagePolicy': self.mileage_policy,
            'fuelPolicy': self.fuel_policy,
            'status': self.status,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if expand:
            data['vehicle'] = self.vehicle.to_dict() if self.vehicle else None
            data['customer'] = self.customer.to_dict() if self.customer else None
        return data

    def __repr__(self) -> str:
        return f"<Booking {self.vehicle_id} {self.start_date} to {self.end_date}>"
