"""
Caller identity.

Authentication happens upstream; by the time a request reaches us the
identity provider's proxy has put the caller's id in a header.  Here that id
is resolved to a local ``User`` row, created the first time it is seen.
"""

import logging

from flask import current_app, g, request
from sqlalchemy.exc import IntegrityError

from .errors import Unauthenticated
from .models import User, db

logger = logging.getLogger(__name__)


def resolve_user(external_id: str) -> User:
    """Return the local user for ``external_id``, provisioning it if needed."""
    user = User.query.filter_by(external_id=external_id).first()
    if user is not None:
        return user
    user = User(external_id=external_id)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request provisioned the same identity first
        db.session.rollback()
        return User.query.filter_by(external_id=external_id).one()
    logger.info("Provisioned local user for identity %s", external_id)
    return user


def current_user() -> User:
    """Return the caller's ``User`` or raise ``Unauthenticated``."""
    if 'current_user' in g:
        return g.current_user
    header = current_app.config['IDENTITY_HEADER']
    external_id = (request.headers.get(header) or '').strip()
    if not external_id:
        raise Unauthenticated()
    g.current_user = resolve_user(external_id)
    return g.current_user
