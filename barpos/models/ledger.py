"""Ledger transaction model (income / expense)."""
from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from barpos.database import Base
import enum


class TransactionType(enum.Enum):
    """Ledger type enum."""
    INCOME = "income"
    EXPENSE = "expense"


class LedgerReferenceType(enum.Enum):
    """What produced the ledger entry."""
    SALE = "sale"
    CREDIT = "credit"
    MANUAL = "manual"


class PaymentMethod(enum.Enum):
    """Payment method enum."""
    CASH = "cash"
    TRANSFER = "transfer"


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.

    Args:
        value: Can be None, PaymentMethod enum, or string

    Returns:
        str: 'cash' or 'transfer'

    Raises:
        ValueError: If value is invalid
    """
    # Default to cash if None or blank
    if value is None:
        return 'cash'

    if isinstance(value, PaymentMethod):
        return value.value

    normalized = str(value).lower().strip()
    if not normalized:
        return 'cash'
    if normalized in ('cash', 'transfer'):
        return normalized

    raise ValueError(f"Invalid payment method: {value}. Must be 'cash' or 'transfer'.")


class LedgerTransaction(Base):
    """Ledger transaction (movimiento de caja). Append-only for the engine."""

    __tablename__ = 'transactions'
    __table_args__ = (
        Index('idx_transactions_created_at', 'created_at'),
        Index('idx_transactions_type', 'type'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(
        Enum(TransactionType, name='transaction_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    amount = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=True)
    payment_method = Column(String(20), nullable=False, default='cash')
    created_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    reference_type = Column(
        Enum(LedgerReferenceType, name='ledger_ref_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=LedgerReferenceType.MANUAL
    )
    reference_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.now)

    # Relationships
    creator = relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type.value,
            'amount': self.amount,
            'description': self.description,
            'payment_method': self.payment_method,
            'created_by': self.created_by,
            'created_by_username': self.creator.username if self.creator else None,
            'reference_type': self.reference_type.value,
            'reference_id': self.reference_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<LedgerTransaction(id={self.id}, type={self.type.value}, amount={self.amount})>"
