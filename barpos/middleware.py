"""Middleware for the logged-in user context and role checks."""
from functools import wraps
from flask import session, g, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError
from barpos.database import get_session
from barpos.exceptions import UnauthorizedError
from barpos.models import User


def load_current_user():
    """
    Load the logged-in user into g.user.

    Called before each request. g.user stays None for anonymous requests or
    when the stored user was deactivated.
    """
    g.user = None
    g.user_id = None

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        user = get_session().query(User).filter_by(id=user_id, is_active=True).first()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error in load_current_user: {e}")
        get_session().rollback()
        return

    if user:
        g.user = user
        g.user_id = user.id
    else:
        session.pop('user_id', None)


def resolve_actor_id(payload=None):
    """
    Id of the user performing the action.

    The logged-in user wins; otherwise the client's user_id field is used
    (the POS terminal sends it with every request).
    """
    if getattr(g, 'user_id', None):
        return g.user_id
    payload = payload if payload is not None else (request.get_json(silent=True) or {})
    raw = payload.get('user_id', payload.get('userId'))
    try:
        user_id = int(raw) if raw not in (None, '') else None
    except (TypeError, ValueError):
        return None
    if user_id is None or get_session().get(User, user_id) is None:
        return None
    return user_id


def require_login(f):
    """Decorator: Require a logged-in user. Answers 401 JSON otherwise."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.user is None:
            return jsonify({'success': False, 'error': 'Debe iniciar sesión'}), 401
        return f(*args, **kwargs)
    return decorated_function


def require_role(*roles):
    """
    Decorator: Require one of the given roles.

    Must be used AFTER require_login.

    Usage:
        @require_login
        @require_role('super_admin')
        def update_transaction(): ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if g.user is None or g.user.role not in roles:
                raise UnauthorizedError('No tiene permisos para realizar esta acción')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
