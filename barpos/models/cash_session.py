"""Cash session model (turno de caja)."""
from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, DateTime, Enum, ForeignKey, Index, text
from barpos.database import Base
import enum


class CashSessionStatus(enum.Enum):
    """Cash session status enum."""
    OPEN = "open"
    CLOSED = "closed"


class CashSession(Base):
    """
    Cash drawer session.

    Only one session may be open system-wide. The partial unique index makes
    the database reject a second open row even when two requests race past
    the application-level check.
    """

    __tablename__ = 'cash_sessions'
    __table_args__ = (
        Index(
            'uq_cash_sessions_single_open', 'status', unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'")
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    opened_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    opening_balance = Column(BigInteger, nullable=False, default=0)
    closing_balance = Column(BigInteger, nullable=True)
    status = Column(
        Enum(CashSessionStatus, name='cash_session_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CashSessionStatus.OPEN
    )
    opened_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    closed_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    @property
    def is_open(self):
        return self.status == CashSessionStatus.OPEN

    def to_dict(self):
        return {
            'id': self.id,
            'opened_by': self.opened_by,
            'opening_balance': self.opening_balance,
            'closing_balance': self.closing_balance,
            'status': self.status.value,
            'opened_at': self.opened_at.isoformat() if self.opened_at else None,
            'closed_at': self.closed_at.isoformat() if self.closed_at else None,
            'closed_by': self.closed_by,
        }

    def __repr__(self):
        return f"<CashSession(id={self.id}, status={self.status.value}, opening={self.opening_balance})>"
