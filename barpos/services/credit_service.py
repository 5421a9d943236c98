"""
Credit service.
Accounts receivable / payable with partial payments.

Payments are not ledgered one by one: closing a credit posts a single
ledger entry for the amount settled.
"""
import logging
from datetime import datetime
from typing import Optional

from barpos.database import unit_of_work
from barpos.exceptions import ConflictError, NotFoundError, ValidationError
from barpos.models import (
    Credit, CreditPayment, CreditType, CreditStatus,
    TransactionType, LedgerReferenceType
)
from barpos.services import ledger_service
from barpos.services.cache_service import invalidate_reporting_cache
from barpos.utils.dates import parse_date
from barpos.utils.number_format import parse_amount, money_co

logger = logging.getLogger(__name__)


def parse_credit_type(value) -> CreditType:
    try:
        return CreditType(str(value or '').strip().lower())
    except ValueError:
        raise ValidationError('Tipo de crédito inválido. Use receivable o payable.')


def parse_credit_status(value) -> CreditStatus:
    try:
        return CreditStatus(str(value or '').strip().lower())
    except ValueError:
        raise ValidationError('Estado inválido. Use open o closed.')


def get_credit(session, credit_id: int, for_update: bool = False) -> Credit:
    query = session.query(Credit).filter(Credit.id == credit_id)
    if for_update:
        query = query.with_for_update()
    credit = query.first()
    if not credit:
        raise NotFoundError('Crédito no encontrado')
    return credit


def list_credits(session, type_=None, status=None):
    query = session.query(Credit)
    if type_:
        query = query.filter(Credit.type == parse_credit_type(type_))
    if status:
        query = query.filter(Credit.status == parse_credit_status(status))
    return query.order_by(Credit.created_at.desc(), Credit.id.desc()).all()


def create_credit(session, type_, description, party, total, due_date=None,
                  user_id: Optional[int] = None) -> int:
    """Create an open credit. total must be > 0."""
    credit_type = parse_credit_type(type_)
    try:
        total = parse_amount(total, field='total', allow_zero=False)
    except ValueError as e:
        raise ValidationError(str(e))
    try:
        due_date = parse_date(due_date, field='fecha de vencimiento')
    except ValueError as e:
        raise ValidationError(str(e))

    with unit_of_work(session):
        credit = Credit(
            type=credit_type,
            description=(description or '').strip() or None,
            party=(party or '').strip() or None,
            total=total,
            status=CreditStatus.OPEN,
            due_date=due_date,
            created_by=user_id
        )
        session.add(credit)
        session.flush()
        credit_id = credit.id

    logger.info(f"Credit created: id={credit_id} type={credit_type.value} total={total}")
    return credit_id


def _close_credit(session, credit: Credit, user_id=None, payment_method=None):
    """
    Mark a credit closed and post its single closing ledger entry.

    Amount is the paid-to-date, or the full total when nothing was paid.
    Runs inside the caller's unit of work.
    """
    paid = credit.paid_amount
    amount = paid if paid > 0 else credit.total
    is_payable = credit.type == CreditType.PAYABLE

    if payment_method is None:
        payment_method = credit.payments[-1].payment_method if credit.payments else 'cash'

    label = 'Pago cuenta por pagar' if is_payable else 'Cobro cuenta por cobrar'
    detail = credit.description or 'sin descripción'
    if credit.party:
        detail = f'{detail} ({credit.party})'

    entry = ledger_service.post_entry(
        session,
        TransactionType.EXPENSE if is_payable else TransactionType.INCOME,
        amount,
        f'{label} #{credit.id}: {detail}',
        payment_method=payment_method,
        created_by=user_id,
        reference_type=LedgerReferenceType.CREDIT,
        reference_id=credit.id
    )
    credit.status = CreditStatus.CLOSED
    credit.closed_at = datetime.now()
    return entry


def add_payment(session, credit_id: int, amount, payment_method=None,
                user_id: Optional[int] = None) -> int:
    """
    Register a partial payment.

    The credit closes automatically once paid >= total.

    Raises:
        ValidationError: amount <= 0 or greater than the outstanding balance
        ConflictError: the credit is already closed
    """
    try:
        amount = parse_amount(amount, allow_zero=False)
    except ValueError as e:
        raise ValidationError(str(e))
    payment_method = ledger_service.parse_payment_method(payment_method)

    with unit_of_work(session):
        credit = get_credit(session, credit_id, for_update=True)
        if credit.status == CreditStatus.CLOSED:
            raise ConflictError('El crédito ya está cerrado')

        balance = credit.balance
        if amount > balance:
            raise ValidationError(
                f'El abono ({money_co(amount)}) no puede ser mayor al saldo pendiente ({money_co(balance)}).'
            )

        payment = CreditPayment(amount=amount, payment_method=payment_method)
        credit.payments.append(payment)
        session.flush()
        payment_id = payment.id

        closed = False
        if credit.paid_amount >= credit.total:
            _close_credit(session, credit, user_id, payment_method)
            closed = True

    if closed:
        invalidate_reporting_cache()
    logger.info(f"Credit payment registered: credit={credit_id} payment={payment_id} amount={amount} closed={closed}")
    return payment_id


def set_status(session, credit_id: int, new_status, user_id: Optional[int] = None) -> dict:
    """
    Change a credit's status.

    Closing posts one ledger entry; reopening posts nothing and keeps the
    earlier closing entry.

    Returns:
        {'changes': 0|1, 'transaction_id': id or None}
    """
    target = parse_credit_status(new_status)

    with unit_of_work(session):
        credit = get_credit(session, credit_id, for_update=True)
        if credit.status == target:
            return {'changes': 0, 'transaction_id': None}

        transaction_id = None
        if target == CreditStatus.CLOSED:
            entry = _close_credit(session, credit, user_id)
            transaction_id = entry.id
        else:
            credit.status = CreditStatus.OPEN
            credit.closed_at = None

    if transaction_id:
        invalidate_reporting_cache()
    logger.info(f"Credit {credit_id} status -> {target.value} (transaction={transaction_id})")
    return {'changes': 1, 'transaction_id': transaction_id}
