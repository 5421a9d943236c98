"""Sale and SaleItem models."""
from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from barpos.database import Base
import enum


class SaleStatus(enum.Enum):
    """Sale status enum. PENDING is an open tab, PAID is final."""
    PENDING = "pending"
    PAID = "paid"


class SaleType(enum.Enum):
    """Sale type enum, derived from the presence of a table."""
    DIRECT = "direct"
    TABLE = "table"


class Sale(Base):
    """Sale (venta) - a paid ticket or the pending order of a table."""

    __tablename__ = 'sales'
    __table_args__ = (
        # At most one pending sale per table, enforced by the database
        Index(
            'uq_sales_pending_table', 'table_id', unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'")
        ),
        Index('idx_sales_created_at', 'created_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    table_id = Column(Integer, ForeignKey('tables.id', ondelete='SET NULL'), nullable=True)
    total = Column(BigInteger, nullable=False)
    sale_type = Column(
        Enum(SaleType, name='sale_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SaleType.DIRECT
    )
    payment_method = Column(String(20), nullable=False, default='cash')
    status = Column(
        Enum(SaleStatus, name='sale_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SaleStatus.PENDING
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.now)

    # Idempotency key to prevent duplicate sales on client retries
    idempotency_key = Column(String(64), unique=True, nullable=True, index=True)

    # Relationships
    table = relationship('DiningTable')
    user = relationship('User')
    items = relationship(
        'SaleItem',
        back_populates='sale',
        cascade='all, delete-orphan',
        order_by='SaleItem.id'
    )

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    def to_dict(self, include_items=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'table_id': self.table_id,
            'total': self.total,
            'sale_type': self.sale_type.value,
            'payment_method': self.payment_method,
            'status': self.status.value,
            'idempotency_key': self.idempotency_key,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, status={self.status.value})>"


class SaleItem(Base):
    """Sale item (detalle de venta). Price is captured at sale time."""

    __tablename__ = 'sale_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(BigInteger, nullable=False)

    # Relationships
    sale = relationship('Sale', back_populates='items')
    product = relationship('Product')

    @property
    def line_total(self):
        return self.quantity * self.price

    def to_dict(self):
        return {
            'id': self.product_id,
            'name': self.product.name if self.product else None,
            'quantity': self.quantity,
            'price': self.price,
            'line_total': self.line_total,
        }

    def __repr__(self):
        return f"<SaleItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
