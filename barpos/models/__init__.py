"""Models package - exports all SQLAlchemy models."""
from barpos.models.user import User, UserRole
from barpos.models.product import Product
from barpos.models.table import DiningTable, TableStatus
from barpos.models.sale import Sale, SaleItem, SaleStatus, SaleType
from barpos.models.ledger import (
    LedgerTransaction, TransactionType, LedgerReferenceType, PaymentMethod, normalize_payment_method
)
from barpos.models.cash_session import CashSession, CashSessionStatus
from barpos.models.credit import Credit, CreditPayment, CreditType, CreditStatus
from barpos.models.schedule import Schedule

__all__ = [
    'User', 'UserRole',
    'Product',
    'DiningTable', 'TableStatus',
    'Sale', 'SaleItem', 'SaleStatus', 'SaleType',
    'LedgerTransaction', 'TransactionType', 'LedgerReferenceType', 'PaymentMethod', 'normalize_payment_method',
    'CashSession', 'CashSessionStatus',
    'Credit', 'CreditPayment', 'CreditType', 'CreditStatus',
    'Schedule',
]
