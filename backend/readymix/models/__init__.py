"""
Database models (SQLAlchemy table declarations)
"""
from .catalog import Product, ProductImage, AdditionalService, FreightCharge
from .order import Cart, CartItem, Address, Order, OrderItem, OrderAdditionalService
from .content import FaqSection, Faq, Post, Enquiry, Notification, Wishlist, BanHistory

__all__ = [
    "Product",
    "ProductImage",
    "AdditionalService",
    "FreightCharge",
    "Cart",
    "CartItem",
    "Address",
    "Order",
    "OrderItem",
    "OrderAdditionalService",
    "FaqSection",
    "Faq",
    "Post",
    "Enquiry",
    "Notification",
    "Wishlist",
    "BanHistory",
]
