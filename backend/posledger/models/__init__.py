from .catalog import Category, Product, Stock, ProductActivityLog
from .transactions import Transaction, TransactionItem, Payment, TransactionCancelLog, InvoiceSequence
from .auth import User, Role, Permission, RolePermission, SessionToken

__all__ = [
    'Category', 'Product', 'Stock', 'ProductActivityLog',
    'Transaction', 'TransactionItem', 'Payment', 'TransactionCancelLog', 'InvoiceSequence',
    'User', 'Role', 'Permission', 'RolePermission', 'SessionToken',
]
