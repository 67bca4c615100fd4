"""
Cart Service
Stock-checked cart operations on top of CartRepository

Author: ReadyMix
Date: 2025-06-05
"""
import logging
from typing import Dict, List, Optional

from readymix.core.exceptions import NotFoundError, ValidationError, InsufficientStockError
from readymix.domain.cart import CartItem
from readymix.repositories.cart_repository import CartRepository
from readymix.repositories.product_repository import ProductRepository
from readymix.services import pricing_service

logger = logging.getLogger(__name__)


class CartService:
    """
    Service for the shopper's cart

    Handles:
    - Merging a product/delivery-method pair into one line
    - Stock checks on add and on quantity change
    - Selection for checkout
    - Totals (delegated to pricing_service)
    """

    def __init__(
        self,
        cart_repo: Optional[CartRepository] = None,
        product_repo: Optional[ProductRepository] = None
    ):
        self.cart_repo = cart_repo or CartRepository()
        self.product_repo = product_repo or ProductRepository()

    def get_or_create_cart(self, user_id: str):
        return self.cart_repo.get_or_create_cart(user_id)

    def _available_stock(self, product_id: str) -> Dict:
        stock = self.product_repo.get_stock(product_id)
        if not stock:
            raise NotFoundError(f"Product {product_id} not found")
        return stock

    def add_to_cart(
        self,
        user_id: str,
        product_id: str,
        quantity: int = 1,
        variant_type: Optional[str] = "normal"
    ) -> str:
        """
        Add a product, merging into an existing line with the same delivery method

        Returns:
            Cart item id

        Raises:
            ValidationError: quantity < 1
            NotFoundError: unknown or unpublished product
            InsufficientStockError: merged quantity exceeds stock
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        stock = self._available_stock(product_id)
        cart = self.cart_repo.get_or_create_cart(user_id)

        existing = self.cart_repo.find_line(cart.id, product_id, variant_type)
        new_quantity = quantity + (existing['quantity'] if existing else 0)

        if new_quantity > stock['stock_quantity']:
            raise InsufficientStockError(
                f"Only {stock['stock_quantity']} available for {stock['name']}"
            )

        if existing:
            self.cart_repo.set_quantity(str(existing['id']), new_quantity)
            logger.info(f"Cart {cart.id}: merged {quantity} into line {existing['id']} (now {new_quantity})")
            return str(existing['id'])

        item_id = self.cart_repo.insert_item(cart.id, product_id, quantity, variant_type)
        logger.info(f"Cart {cart.id}: added product {product_id} x{quantity} ({variant_type})")
        return item_id

    def update_quantity(self, user_id: str, item_id: str, quantity: int) -> Optional[CartItem]:
        """
        Change a line's quantity; quantity <= 0 removes the line

        Returns:
            Updated item, or None when the line was removed
        """
        item = self.cart_repo.find_item(user_id, item_id)
        if not item:
            raise NotFoundError(f"Cart item {item_id} not found")

        if quantity <= 0:
            self.cart_repo.delete_item(user_id, item_id)
            return None

        stock = item.product.stock_quantity if item.product else 0
        if quantity > stock:
            raise InsufficientStockError(f"Only {stock} available for {item.product.name}")

        self.cart_repo.set_quantity(item_id, quantity)
        return item.model_copy(update={'quantity': quantity})

    def remove_item(self, user_id: str, item_id: str) -> None:
        if not self.cart_repo.delete_item(user_id, item_id):
            raise NotFoundError(f"Cart item {item_id} not found")

    def set_selected(self, user_id: str, selected: bool, item_id: Optional[str] = None) -> int:
        count = self.cart_repo.set_selected(user_id, selected, item_id)
        if item_id and count == 0:
            raise NotFoundError(f"Cart item {item_id} not found")
        return count

    def clear(self, user_id: str, selected_only: bool = False) -> int:
        return self.cart_repo.clear(user_id, selected_only=selected_only)

    def get_items(self, user_id: str, selected_only: bool = False) -> List[CartItem]:
        return self.cart_repo.get_items(user_id, selected_only=selected_only)

    def get_item_count(self, user_id: str) -> int:
        """Total quantity across all lines"""
        return sum(item.quantity for item in self.cart_repo.get_items(user_id))

    def get_stats(self, user_id: str) -> Dict[str, int]:
        items = self.cart_repo.get_items(user_id)
        selected = sum(1 for item in items if item.selected)
        return {
            'total_items': len(items),
            'selected_items': selected,
            'unselected_items': len(items) - selected,
        }

    def get_cart_summary(self, user_id: str) -> Dict:
        """Lines with resolved unit price and line total, plus cart totals"""
        items = self.cart_repo.get_items(user_id)

        lines = []
        for item in items:
            unit_price = pricing_service.get_product_price(item.product, item.variant_type) if item.product else 0.0
            lines.append({
                'id': item.id,
                'product_id': item.product_id,
                'quantity': item.quantity,
                'variant_type': item.variant_type,
                'selected': item.selected,
                'unit_price': unit_price,
                'line_total': pricing_service.line_total(item),
                'product': item.product.to_dict() if item.product else None,
            })

        return {
            'items': lines,
            'totals': pricing_service.calculate_cart_totals(items),
        }

    def get_services(self):
        return self.cart_repo.get_active_services()

    def get_freight_charges(self):
        return self.cart_repo.get_active_freight_charges()

    def quote(self, user_id: str, service_codes: List[str]) -> Dict:
        """Checkout totals for the selected lines and chosen services"""
        items = self.cart_repo.get_items(user_id, selected_only=True)
        return pricing_service.calculate_order_totals_with_services(
            items,
            service_codes,
            self.cart_repo.get_active_services(),
            self.cart_repo.get_active_freight_charges()
        )
