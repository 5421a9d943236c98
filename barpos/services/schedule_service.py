"""Schedule service - employee shifts per day."""
import calendar
import logging
from datetime import date, datetime

from barpos.database import unit_of_work
from barpos.exceptions import ValidationError
from barpos.models import Schedule, User
from barpos.services.user_service import get_user
from barpos.utils.dates import parse_date

logger = logging.getLogger(__name__)


def _parse_time(value, field):
    try:
        return datetime.strptime(str(value or '').strip()[:5], '%H:%M').time()
    except ValueError:
        raise ValidationError(f'La {field} debe tener formato HH:MM')


def list_month(session, year: int, month: int):
    """Schedules of a month, ordered by day and start time."""
    if not 1 <= month <= 12:
        raise ValidationError('Mes inválido')
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return (
        session.query(Schedule)
        .filter(Schedule.work_date >= first, Schedule.work_date <= last)
        .order_by(Schedule.work_date, Schedule.start_time)
        .all()
    )


def users_for_schedule(session):
    return (
        session.query(User)
        .filter(User.is_active.is_(True))
        .order_by(User.full_name, User.username)
        .all()
    )


def create_schedule(session, user_id, work_date, start_time, end_time) -> int:
    try:
        work_date = parse_date(work_date, field='fecha de trabajo')
    except ValueError as e:
        raise ValidationError(str(e))
    if work_date is None:
        raise ValidationError('La fecha de trabajo es requerida')
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError('El empleado es requerido')
    start = _parse_time(start_time, 'hora de inicio')
    end = _parse_time(end_time, 'hora de fin')

    with unit_of_work(session):
        get_user(session, user_id)
        schedule = Schedule(user_id=user_id, work_date=work_date, start_time=start, end_time=end)
        session.add(schedule)
        session.flush()
        schedule_id = schedule.id

    logger.info(f"Schedule created: id={schedule_id} user={user_id} date={work_date}")
    return schedule_id
