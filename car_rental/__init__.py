"""
Car rental management backend.

A Flask application exposing the fleet, customer and booking records of a
rental business as a JSON API.  The booking ledger keeps vehicle
availability and customer statistics consistent with the bookings.

Typical use:

    car-rental --init-db     # create the tables
    car-rental               # start the development server
"""

import logging

from flask import Flask

from .config import Config
from .errors import register_error_handlers
from .models import db

__version__ = '1.0.0'


def create_app(overrides: dict = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)
    register_error_handlers(app, db)

    from .routes import bp
    app.register_blueprint(bp)
    return app


def init_db(app: Flask) -> None:
    """Initialise the database tables."""
    with app.app_context():
        db.create_all()
    logging.getLogger(__name__).info("Database initialised at %s", app.config['SQLALCHEMY_DATABASE_URI'])
