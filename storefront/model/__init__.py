# ------ storefront/model/__init__.py ------

from .user import User
from .address import Address
from .product import Product, ProductVariant, CustomField
from .cart import CartItem
from .coupon import Coupon, CouponUsage
from .order import Order, OrderItem, OrderPayment

__all__ = [
    "User",
    "Address",
    "Product",
    "ProductVariant",
    "CustomField",
    "CartItem",
    "Coupon",
    "CouponUsage",
    "Order",
    "OrderItem",
    "OrderPayment",
]
