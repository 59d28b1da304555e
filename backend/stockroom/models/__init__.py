from .auth import User, ACCOUNT_TYPES
from .tenancy import Store, UserStoreRole, STORE_TYPES
from .inventory import Product
from .sales import Sale, Purchase
from .security import SecurityEvent, AuditLog

__all__ = [
    'User', 'ACCOUNT_TYPES',
    'Store', 'UserStoreRole', 'STORE_TYPES',
    'Product',
    'Sale', 'Purchase',
    'SecurityEvent', 'AuditLog',
]
