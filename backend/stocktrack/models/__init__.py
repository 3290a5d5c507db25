from .users import User
from .catalog import Category, Item, Warehouse
from .ledger import StockBalance, MovementLogEntry, MovementAction
from .documents import TransferRequest, TransferLineItem, TransferStatus, DocumentSequence
from .sales import Sale, SaleLineItem, SaleStatus, DiscountType, PaymentMethod, PaymentStatus

__all__ = [
    'User',
    'Category', 'Item', 'Warehouse',
    'StockBalance', 'MovementLogEntry', 'MovementAction',
    'TransferRequest', 'TransferLineItem', 'TransferStatus', 'DocumentSequence',
    'Sale', 'SaleLineItem', 'SaleStatus', 'DiscountType', 'PaymentMethod', 'PaymentStatus',
]
