"""Product model."""
from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime
from barpos.database import Base


class Product(Base):
    """Product with its stock counter (1 row per product)."""

    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False, index=True)
    price = Column(BigInteger, nullable=False, default=0)  # whole currency units
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String(50), nullable=False, default='general')
    # Products referenced by sale history are deactivated instead of deleted
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now, onupdate=datetime.now)

    def is_low_stock(self, threshold: int) -> bool:
        return self.stock < threshold

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'stock': self.stock,
            'category': self.category,
            'active': self.active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
