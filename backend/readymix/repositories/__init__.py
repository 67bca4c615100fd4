"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.

Author: ReadyMix
Date: 2025-06-02
"""
from readymix.repositories.product_repository import ProductRepository
from readymix.repositories.cart_repository import CartRepository
from readymix.repositories.order_repository import OrderRepository
from readymix.repositories.notification_repository import NotificationRepository
from readymix.repositories.content_repository import ContentRepository
from readymix.repositories.account_repository import AccountRepository
from readymix.repositories.analytics_repository import AnalyticsRepository

__all__ = [
    'ProductRepository',
    'CartRepository',
    'OrderRepository',
    'NotificationRepository',
    'ContentRepository',
    'AccountRepository',
    'AnalyticsRepository',
]
