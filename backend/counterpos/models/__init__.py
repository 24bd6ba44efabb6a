from .auth import User
from .inventory import Product
from .customers import Customer
from .sales import Sale, SaleLine

__all__ = [
    'User',
    'Product',
    'Customer',
    'Sale', 'SaleLine',
]
