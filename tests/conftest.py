from datetime import date, timedelta

import pytest

from car_rental import create_app
from car_rental.models import Customer, User, Vehicle, db

OWNER_HEADER = {'X-User-Id': 'user_owner'}
OTHER_HEADER = {'X-User-Id': 'user_other'}


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Run the test body inside an application context."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def days_from_today(n: int) -> date:
    return date.today() + timedelta(days=n)


def make_owner(external_id: str = 'user_owner') -> User:
    user = User(external_id=external_id, email=f'{external_id}@example.com')
    db.session.add(user)
    db.session.commit()
    return user


def make_vehicle(owner: User, daily_rate: float = 50.0, status: str = 'Available',
                 make: str = 'Toyota', model: str = 'Camry', year: int = 2022) -> Vehicle:
    vehicle = Vehicle(owner_id=owner.id, make=make, model=model, year=year,
                      daily_rate=daily_rate, status=status)
    db.session.add(vehicle)
    db.session.commit()
    return vehicle


def make_customer(owner: User, email: str = 'jane@example.com', status: str = 'Active') -> Customer:
    customer = Customer(owner_id=owner.id, first_name='Jane', last_name='Doe',
                        email=email, phone='555-0100', status=status)
    db.session.add(customer)
    db.session.commit()
    return customer
