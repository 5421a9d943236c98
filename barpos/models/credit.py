"""Credit models - accounts receivable / payable with partial payments."""
from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, Text, Date, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from barpos.database import Base
import enum


class CreditType(enum.Enum):
    """RECEIVABLE: someone owes the business. PAYABLE: the business owes someone."""
    RECEIVABLE = "receivable"
    PAYABLE = "payable"


class CreditStatus(enum.Enum):
    """Credit status enum."""
    OPEN = "open"
    CLOSED = "closed"


class Credit(Base):
    """Credit (cuenta por cobrar / por pagar)."""

    __tablename__ = 'credits'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(
        Enum(CreditType, name='credit_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    description = Column(Text, nullable=True)
    party = Column(String(120), nullable=True)
    total = Column(BigInteger, nullable=False)
    status = Column(
        Enum(CreditStatus, name='credit_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CreditStatus.OPEN
    )
    due_date = Column(Date, nullable=True)
    created_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    payments = relationship(
        'CreditPayment',
        back_populates='credit',
        cascade='all, delete-orphan',
        order_by='CreditPayment.id'
    )

    @property
    def paid_amount(self):
        """Sum of all payments registered against this credit."""
        return sum(p.amount for p in self.payments)

    @property
    def balance(self):
        """Amount still owed: total - paid_amount."""
        return self.total - self.paid_amount

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type.value,
            'description': self.description,
            'party': self.party,
            'total': self.total,
            'paid_amount': self.paid_amount,
            'balance': self.balance,
            'status': self.status.value,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'closed_at': self.closed_at.isoformat() if self.closed_at else None,
            'payments': [p.to_dict() for p in self.payments],
        }

    def __repr__(self):
        return f"<Credit(id={self.id}, type={self.type.value}, total={self.total}, status={self.status.value})>"


class CreditPayment(Base):
    """Partial payment (abono) against a credit."""

    __tablename__ = 'credit_payments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    credit_id = Column(Integer, ForeignKey('credits.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    payment_method = Column(String(20), nullable=False, default='cash')
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)

    # Relationships
    credit = relationship('Credit', back_populates='payments')

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'payment_method': self.payment_method,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<CreditPayment(id={self.id}, credit_id={self.credit_id}, amount={self.amount})>"
