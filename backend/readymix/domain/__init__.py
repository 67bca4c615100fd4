"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.

Author: ReadyMix
Date: 2025-06-02
"""
from readymix.domain.product import Product, ProductImage
from readymix.domain.cart import Cart, CartItem, AdditionalService, FreightCharge
from readymix.domain.order import Order, OrderItem, Address
from readymix.domain.content import Faq, Post, Enquiry
from readymix.domain.notification import Notification
from readymix.domain.account import WishlistItem, BanRecord

__all__ = [
    'Product', 'ProductImage',
    'Cart', 'CartItem', 'AdditionalService', 'FreightCharge',
    'Order', 'OrderItem', 'Address',
    'Faq', 'Post', 'Enquiry',
    'Notification',
    'WishlistItem', 'BanRecord',
]
