"""Schedule model - staff work shifts."""
from datetime import datetime
from sqlalchemy import Column, Integer, Date, Time, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from barpos.database import Base


class Schedule(Base):
    """Schedule entry (turno de trabajo)."""

    __tablename__ = 'schedules'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    work_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)

    user = relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'work_date': self.work_date.isoformat(),
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
        }

    def __repr__(self):
        return f"<Schedule(id={self.id}, user_id={self.user_id}, work_date={self.work_date})>"
