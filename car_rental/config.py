"""Application settings read from the environment."""

import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///car_rental.db').strip()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Header set by the identity provider's proxy carrying the caller's id
    IDENTITY_HEADER = os.getenv('IDENTITY_HEADER', 'X-User-Id')

    # Bookings starting within this many days are reported as notifications
    NOTIFICATION_WINDOW_DAYS = int(os.getenv('NOTIFICATION_WINDOW_DAYS', '5'))

    # Per-day charges for optional extras selected on a booking
    EXTRA_DAILY_RATES = {
        'insurance': float(os.getenv('EXTRA_INSURANCE_RATE', '15')),
        'gps': float(os.getenv('EXTRA_GPS_RATE', '5')),
        'childSeat': float(os.getenv('EXTRA_CHILD_SEAT_RATE', '10')),
    }
