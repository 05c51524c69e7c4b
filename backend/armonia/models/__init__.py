from .auth import User
from .inventory import Product, ProductSize, PRODUCT_TYPES, SIZE_TYPES
from .registers import (
    CashRegister,
    CashMovement,
    REGISTER_OPEN,
    REGISTER_CLOSED,
    MOVEMENT_INFLOW,
    MOVEMENT_OUTFLOW,
    MOVEMENT_TYPES,
)

__all__ = [
    'User',
    'Product', 'ProductSize', 'PRODUCT_TYPES', 'SIZE_TYPES',
    'CashRegister', 'CashMovement',
    'REGISTER_OPEN', 'REGISTER_CLOSED',
    'MOVEMENT_INFLOW', 'MOVEMENT_OUTFLOW', 'MOVEMENT_TYPES',
]
