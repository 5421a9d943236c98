"""
User service.
Login and the employee directory. Super admins cannot be deleted,
deactivated or demoted.
"""
import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from barpos.database import unit_of_work
from barpos.exceptions import NotFoundError, UnauthorizedError, ValidationError
from barpos.models import User, UserRole

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4
ROLES = tuple(role.value for role in UserRole)


def _normalize_username(username) -> str:
    return (username or '').strip().lower()


def authenticate(session, username, password):
    """
    Check credentials. Returns the active User on success, None otherwise.

    Updates last_login on success.
    """
    username = _normalize_username(username)
    if not username or not password:
        return None

    user = session.query(User).filter(func.lower(User.username) == username).first()
    if not user or not user.is_active or not user.check_password(password):
        logger.info(f"Failed login for username={username!r}")
        return None

    with unit_of_work(session):
        user.last_login = datetime.now()

    logger.info(f"User logged in: id={user.id} username={user.username}")
    return user


def get_user(session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError('Usuario no encontrado')
    return user


def list_users(session, active_only: bool = False):
    query = session.query(User)
    if active_only:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username).all()


def username_available(session, username, exclude_id=None) -> bool:
    username = _normalize_username(username)
    query = session.query(User.id).filter(func.lower(User.username) == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is None


def _validate_role(role) -> str:
    role = (role or UserRole.EMPLOYEE.value).strip().lower()
    if role not in ROLES:
        raise ValidationError('Rol inválido')
    return role


def create_user(session, username, password, role=None, full_name=None, email=None, phone=None) -> int:
    username = _normalize_username(username)
    if not username:
        raise ValidationError('El nombre de usuario es requerido')
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres')
    role = _validate_role(role)
    if not username_available(session, username):
        raise ValidationError('El nombre de usuario ya existe')

    try:
        with unit_of_work(session):
            user = User(
                username=username,
                role=role,
                full_name=(full_name or '').strip() or None,
                email=(email or '').strip() or None,
                phone=(phone or '').strip() or None,
                is_active=True
            )
            user.set_password(password)
            session.add(user)
            session.flush()
            user_id = user.id
    except IntegrityError:
        raise ValidationError('El nombre de usuario ya existe')

    logger.info(f"User created: id={user_id} username={username} role={role}")
    return user_id


def update_user(session, user_id: int, username=None, role=None, full_name=None, email=None, phone=None) -> int:
    with unit_of_work(session):
        user = get_user(session, user_id)
        if username is not None:
            username = _normalize_username(username)
            if not username:
                raise ValidationError('El nombre de usuario es requerido')
            if not username_available(session, username, exclude_id=user_id):
                raise ValidationError('El nombre de usuario ya existe')
            user.username = username
        if role is not None:
            role = _validate_role(role)
            if user.is_super_admin and role != UserRole.SUPER_ADMIN.value:
                raise UnauthorizedError('No se puede cambiar el rol del super administrador')
            user.role = role
        if full_name is not None:
            user.full_name = full_name.strip() or None
        if email is not None:
            user.email = email.strip() or None
        if phone is not None:
            user.phone = phone.strip() or None
    return 1


def reset_password(session, user_id: int, new_password) -> int:
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres')
    with unit_of_work(session):
        user = get_user(session, user_id)
        user.set_password(new_password)
    logger.info(f"Password reset for user {user_id}")
    return 1


def delete_user(session, user_id: int) -> int:
    with unit_of_work(session):
        user = get_user(session, user_id)
        if user.is_super_admin:
            raise UnauthorizedError('No se puede eliminar al super administrador')
        session.delete(user)
    logger.info(f"User {user_id} deleted")
    return 1


def toggle_status(session, user_id: int) -> bool:
    """Flip is_active. Returns the new value."""
    with unit_of_work(session):
        user = get_user(session, user_id)
        if user.is_super_admin and user.is_active:
            raise UnauthorizedError('No se puede desactivar al super administrador')
        user.is_active = not user.is_active
        is_active = user.is_active
    logger.info(f"User {user_id} active={is_active}")
    return is_active
