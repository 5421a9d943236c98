"""
Ledger service.
Append-only income/expense entries plus the aggregates used by cash
reconciliation and reporting.
"""
import logging
from typing import Optional

from sqlalchemy import func

from barpos.database import unit_of_work
from barpos.exceptions import NotFoundError, UnauthorizedError, ValidationError
from barpos.models import (
    LedgerTransaction, TransactionType, LedgerReferenceType, normalize_payment_method
)
from barpos.services.cache_service import invalidate_reporting_cache
from barpos.utils.number_format import parse_amount

logger = logging.getLogger(__name__)


def parse_payment_method(value) -> str:
    """Normalize a payment method, mapping bad input to ValidationError."""
    try:
        return normalize_payment_method(value)
    except ValueError:
        raise ValidationError('Método de pago inválido. Use cash o transfer.')


def parse_transaction_type(value) -> TransactionType:
    try:
        return TransactionType(str(value or '').strip().lower())
    except ValueError:
        raise ValidationError('Tipo de movimiento inválido. Use income o expense.')


def post_entry(
    session,
    type_: TransactionType,
    amount: int,
    description: str,
    payment_method: str = 'cash',
    created_by: Optional[int] = None,
    reference_type: LedgerReferenceType = LedgerReferenceType.MANUAL,
    reference_id: Optional[int] = None
) -> LedgerTransaction:
    """
    Append one ledger entry inside the caller's unit of work.

    Does not commit.
    """
    entry = LedgerTransaction(
        type=type_,
        amount=amount,
        description=(description or '')[:500],
        payment_method=normalize_payment_method(payment_method),
        created_by=created_by,
        reference_type=reference_type,
        reference_id=reference_id
    )
    session.add(entry)
    session.flush()
    return entry


def record_manual_entry(session, type_, amount, description, payment_method='cash', user_id=None) -> int:
    """Register a manual income or expense. Returns the new entry id."""
    type_ = parse_transaction_type(type_) if not isinstance(type_, TransactionType) else type_
    try:
        amount = parse_amount(amount, allow_zero=False)
    except ValueError as e:
        raise ValidationError(str(e))
    payment_method = parse_payment_method(payment_method)
    description = (description or '').strip()
    if not description:
        raise ValidationError('La descripción es requerida')

    with unit_of_work(session):
        entry = post_entry(session, type_, amount, description, payment_method, user_id)
        entry_id = entry.id

    invalidate_reporting_cache()
    logger.info(f"Manual {type_.value} recorded: id={entry_id} amount={amount} method={payment_method}")
    return entry_id


def list_entries(session, start_dt=None, end_dt=None, type_=None, payment_method=None):
    """
    List ledger entries, newest first.

    Args:
        start_dt: inclusive lower bound (datetime) or None
        end_dt: exclusive upper bound (datetime) or None
        type_: 'income' / 'expense' or None
        payment_method: 'cash' / 'transfer' or None
    """
    query = session.query(LedgerTransaction)
    if start_dt:
        query = query.filter(LedgerTransaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(LedgerTransaction.created_at < end_dt)
    if type_:
        query = query.filter(LedgerTransaction.type == parse_transaction_type(type_))
    if payment_method:
        query = query.filter(LedgerTransaction.payment_method == parse_payment_method(payment_method))
    return query.order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc()).all()


def _require_super_admin(actor):
    if actor is None or not actor.is_super_admin:
        raise UnauthorizedError('Solo el super administrador puede modificar movimientos')


def update_entry(session, entry_id: int, actor, amount=None, description=None,
                 payment_method=None, type_=None) -> int:
    """Administrative correction of a ledger entry (super_admin only)."""
    _require_super_admin(actor)

    with unit_of_work(session):
        entry = session.get(LedgerTransaction, entry_id)
        if not entry:
            raise NotFoundError('Movimiento no encontrado')
        if amount is not None:
            try:
                entry.amount = parse_amount(amount, allow_zero=False)
            except ValueError as e:
                raise ValidationError(str(e))
        if description is not None:
            entry.description = description.strip()[:500]
        if payment_method is not None:
            entry.payment_method = parse_payment_method(payment_method)
        if type_ is not None:
            entry.type = parse_transaction_type(type_)

    invalidate_reporting_cache()
    logger.info(f"Ledger entry {entry_id} updated by user {actor.id}")
    return 1


def delete_entry(session, entry_id: int, actor) -> int:
    """Administrative removal of a ledger entry (super_admin only)."""
    _require_super_admin(actor)

    with unit_of_work(session):
        entry = session.get(LedgerTransaction, entry_id)
        if not entry:
            raise NotFoundError('Movimiento no encontrado')
        session.delete(entry)

    invalidate_reporting_cache()
    logger.info(f"Ledger entry {entry_id} deleted by user {actor.id}")
    return 1


def summarize_window(session, start_dt, end_dt=None) -> dict:
    """
    Sum ledger movements with created_at >= start_dt (and <= end_dt if given).

    Returns a dict of integer totals:
        sales, other_income, expense,
        income_cash, income_transfer, expense_cash, expense_transfer
    """
    query = session.query(
        LedgerTransaction.type,
        LedgerTransaction.payment_method,
        LedgerTransaction.reference_type,
        func.coalesce(func.sum(LedgerTransaction.amount), 0).label('total')
    ).filter(LedgerTransaction.created_at >= start_dt)
    if end_dt is not None:
        query = query.filter(LedgerTransaction.created_at <= end_dt)
    rows = query.group_by(
        LedgerTransaction.type,
        LedgerTransaction.payment_method,
        LedgerTransaction.reference_type
    ).all()

    totals = {
        'sales': 0,
        'other_income': 0,
        'expense': 0,
        'income_cash': 0,
        'income_transfer': 0,
        'expense_cash': 0,
        'expense_transfer': 0,
    }
    for row in rows:
        amount = int(row.total or 0)
        if row.type == TransactionType.INCOME:
            if row.reference_type == LedgerReferenceType.SALE:
                totals['sales'] += amount
            else:
                totals['other_income'] += amount
            totals[f'income_{row.payment_method}'] += amount
        else:
            totals['expense'] += amount
            totals[f'expense_{row.payment_method}'] += amount
    return totals
