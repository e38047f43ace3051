from .tenancy import Business, Branch, User, PAPER_SIZES
from .inventory import Product
from .customers import Customer
from .promotions import Promotion
from .transactions import (
    Transaction,
    TransactionLine,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPE_REFUND,
    TRANSACTION_STATUS_PAID,
    TRANSACTION_STATUS_REFUNDED,
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
)

__all__ = [
    'Business', 'Branch', 'User', 'PAPER_SIZES',
    'Product',
    'Customer',
    'Promotion',
    'Transaction', 'TransactionLine',
    'TRANSACTION_TYPE_SALE', 'TRANSACTION_TYPE_REFUND',
    'TRANSACTION_STATUS_PAID', 'TRANSACTION_STATUS_REFUNDED', 'TRANSACTION_STATUS_PARTIALLY_REFUNDED',
]
