"""
Cash session service.
Opens and closes the cash drawer (one open session at a time) and computes
the suggested closing balance from ledger movements.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from barpos.database import unit_of_work
from barpos.exceptions import ConflictError, NotFoundError, ValidationError
from barpos.models import CashSession, CashSessionStatus
from barpos.services import ledger_service
from barpos.utils.number_format import parse_amount

logger = logging.getLogger(__name__)

CASH_ALREADY_OPEN = 'Ya existe una caja abierta'
NO_OPEN_CASH = 'No hay caja abierta'


def get_open_session(session) -> Optional[CashSession]:
    """Most recently opened open session, or None."""
    return (
        session.query(CashSession)
        .filter(CashSession.status == CashSessionStatus.OPEN)
        .order_by(CashSession.opened_at.desc(), CashSession.id.desc())
        .first()
    )


def open_session(session, opening_balance, user_id: Optional[int] = None) -> int:
    """
    Open the cash drawer.

    Raises:
        ConflictError: a session is already open (also when a concurrent
            open wins the race on uq_cash_sessions_single_open)
    """
    try:
        opening_balance = parse_amount(
            opening_balance if opening_balance not in (None, '') else 0,
            field='saldo inicial'
        )
    except ValueError as e:
        raise ValidationError(str(e))

    try:
        with unit_of_work(session):
            if get_open_session(session) is not None:
                raise ConflictError(CASH_ALREADY_OPEN)
            cash_session = CashSession(
                opened_by=user_id,
                opening_balance=opening_balance,
                status=CashSessionStatus.OPEN,
                opened_at=datetime.now()
            )
            session.add(cash_session)
            session.flush()
            session_id = cash_session.id
    except IntegrityError:
        raise ConflictError(CASH_ALREADY_OPEN)

    logger.info(f"Cash session opened: id={session_id} opening={opening_balance} by={user_id}")
    return session_id


def close_session(session, closing_balance, user_id: Optional[int] = None) -> int:
    """
    Close the open cash session with the counted balance.

    Returns:
        int: number of sessions closed (1)
    """
    try:
        closing_balance = parse_amount(
            closing_balance if closing_balance not in (None, '') else 0,
            field='saldo de cierre'
        )
    except ValueError as e:
        raise ValidationError(str(e))

    with unit_of_work(session):
        cash_session = get_open_session(session)
        if cash_session is None:
            raise ConflictError(NO_OPEN_CASH)
        cash_session.status = CashSessionStatus.CLOSED
        cash_session.closing_balance = closing_balance
        cash_session.closed_by = user_id
        cash_session.closed_at = datetime.now()
        session_id = cash_session.id

    logger.info(f"Cash session closed: id={session_id} closing={closing_balance} by={user_id}")
    return 1


def _resolve_session(session, session_id=None) -> Optional[CashSession]:
    if session_id is None:
        return get_open_session(session)
    cash_session = session.get(CashSession, session_id)
    if cash_session is None:
        raise NotFoundError('Sesión de caja no encontrada')
    return cash_session


def suggested_close(session, session_id=None) -> dict:
    """
    Suggested closing balance: opening + cash income - cash expense since open.

    With no session_id the open session is used; {'hasOpen': False} when
    there is none. A closed session's window ends at its close time.
    """
    try:
        cash_session = _resolve_session(session, session_id)
        if cash_session is None:
            return {'hasOpen': False}
        totals = ledger_service.summarize_window(session, cash_session.opened_at, cash_session.closed_at)
    except SQLAlchemyError as e:
        logger.warning(f"Cash summary unavailable: {e}")
        session.rollback()
        return {'hasOpen': False}

    opening = cash_session.opening_balance or 0
    return {
        'hasOpen': cash_session.is_open,
        'sessionId': cash_session.id,
        'opening': opening,
        'cashIncome': totals['income_cash'],
        'cashExpense': totals['expense_cash'],
        'suggestedClose': opening + totals['income_cash'] - totals['expense_cash'],
    }


def turn_summary(session, session_id=None) -> dict:
    """
    Shift report: suggested close plus sales / other income / expense and
    the split of income by payment method.
    """
    try:
        cash_session = _resolve_session(session, session_id)
        if cash_session is None:
            return {'hasOpen': False}
        totals = ledger_service.summarize_window(session, cash_session.opened_at, cash_session.closed_at)
    except SQLAlchemyError as e:
        logger.warning(f"Turn summary unavailable: {e}")
        session.rollback()
        return {'hasOpen': False}

    opening = cash_session.opening_balance or 0
    return {
        'hasOpen': cash_session.is_open,
        'sessionId': cash_session.id,
        'openedAt': cash_session.opened_at.isoformat() if cash_session.opened_at else None,
        'opening': opening,
        'sales': totals['sales'],
        'otherIncome': totals['other_income'],
        'expense': totals['expense'],
        'incomeCash': totals['income_cash'],
        'incomeTransfer': totals['income_transfer'],
        'cashIncome': totals['income_cash'],
        'cashExpense': totals['expense_cash'],
        'suggestedClose': opening + totals['income_cash'] - totals['expense_cash'],
    }


def list_sessions(session, start_dt=None, end_dt=None, status=None):
    """List cash sessions newest first, filtered by opened_at window and status."""
    query = session.query(CashSession)
    if start_dt:
        query = query.filter(CashSession.opened_at >= start_dt)
    if end_dt:
        query = query.filter(CashSession.opened_at < end_dt)
    if status:
        try:
            query = query.filter(CashSession.status == CashSessionStatus(str(status).lower()))
        except ValueError:
            raise ValidationError('Estado de caja inválido. Use open o closed.')
    return query.order_by(CashSession.opened_at.desc(), CashSession.id.desc()).all()
