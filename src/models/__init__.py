"""Database model type definitions."""

from src.models.order import (
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
)
from src.models.product import Product

__all__ = [
    "Order",
    "OrderCreate",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "ShippingAddress",
]
