"""Dining table model."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Enum
from barpos.database import Base
import enum


class TableStatus(enum.Enum):
    """Table occupancy. OCCUPIED iff the table has a pending sale."""
    FREE = "free"
    OCCUPIED = "occupied"


class DiningTable(Base):
    """Table or bar spot (mesa / barra)."""

    __tablename__ = 'tables'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(60), nullable=False, unique=True)
    type = Column(String(20), nullable=False, default='table')
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(
        Enum(TableStatus, name='table_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TableStatus.FREE
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)

    @property
    def is_occupied(self):
        return self.status == TableStatus.OCCUPIED

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'capacity': self.capacity,
            'status': self.status.value,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<DiningTable(id={self.id}, name='{self.name}', status={self.status.value})>"
