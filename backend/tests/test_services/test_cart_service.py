"""
Unit tests for CartService

Author: ReadyMix
Date: 2025-06-10
"""
import pytest
from unittest.mock import MagicMock

from readymix.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from readymix.domain.cart import Cart, CartItem
from readymix.services.cart_service import CartService
from tests.conftest import make_product


@pytest.fixture
def repos():
    cart_repo = MagicMock()
    product_repo = MagicMock()
    cart_repo.get_or_create_cart.return_value = Cart(id="cart-1", user_id="user-1")
    product_repo.get_stock.return_value = {'id': "p-1", 'name': "N25 Concrete", 'stock_quantity': 10}
    return cart_repo, product_repo


def line(item_id="ci-1", quantity=2, selected=True, stock=10):
    return CartItem(
        id=item_id, cart_id="cart-1", product_id="p-1", quantity=quantity,
        variant_type="normal", selected=selected, product=make_product(id="p-1", stock_quantity=stock)
    )


class TestAddToCart:

    def test_new_line(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_line.return_value = None
        cart_repo.insert_item.return_value = "ci-9"

        item_id = CartService(cart_repo, product_repo).add_to_cart("user-1", "p-1", 3, "pump")

        assert item_id == "ci-9"
        cart_repo.insert_item.assert_called_once_with("cart-1", "p-1", 3, "pump")

    def test_same_product_and_method_merges(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_line.return_value = {'id': "ci-1", 'quantity': 4}

        item_id = CartService(cart_repo, product_repo).add_to_cart("user-1", "p-1", 3)

        assert item_id == "ci-1"
        cart_repo.set_quantity.assert_called_once_with("ci-1", 7)
        cart_repo.insert_item.assert_not_called()

    def test_merged_quantity_over_stock(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_line.return_value = {'id': "ci-1", 'quantity': 8}

        with pytest.raises(InsufficientStockError, match="Only 10 available"):
            CartService(cart_repo, product_repo).add_to_cart("user-1", "p-1", 3)

    def test_unknown_product(self, repos):
        cart_repo, product_repo = repos
        product_repo.get_stock.return_value = None

        with pytest.raises(NotFoundError):
            CartService(cart_repo, product_repo).add_to_cart("user-1", "ghost", 1)

    def test_quantity_must_be_positive(self, repos):
        with pytest.raises(ValidationError):
            CartService(*repos).add_to_cart("user-1", "p-1", 0)


class TestUpdateQuantity:

    def test_zero_removes_line(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_item.return_value = line()

        assert CartService(cart_repo, product_repo).update_quantity("user-1", "ci-1", 0) is None
        cart_repo.delete_item.assert_called_once_with("user-1", "ci-1")

    def test_over_stock(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_item.return_value = line(stock=5)

        with pytest.raises(InsufficientStockError):
            CartService(cart_repo, product_repo).update_quantity("user-1", "ci-1", 6)

    def test_updates(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_item.return_value = line()

        item = CartService(cart_repo, product_repo).update_quantity("user-1", "ci-1", 5)

        assert item.quantity == 5
        cart_repo.set_quantity.assert_called_once_with("ci-1", 5)

    def test_foreign_line(self, repos):
        cart_repo, product_repo = repos
        cart_repo.find_item.return_value = None

        with pytest.raises(NotFoundError):
            CartService(cart_repo, product_repo).update_quantity("user-2", "ci-1", 1)


class TestCartReads:

    def test_select_missing_item(self, repos):
        cart_repo, product_repo = repos
        cart_repo.set_selected.return_value = 0

        with pytest.raises(NotFoundError):
            CartService(cart_repo, product_repo).set_selected("user-1", True, item_id="ci-404")

    def test_select_all_with_empty_cart_is_fine(self, repos):
        cart_repo, product_repo = repos
        cart_repo.set_selected.return_value = 0

        assert CartService(cart_repo, product_repo).set_selected("user-1", True) == 0

    def test_count_and_stats(self, repos):
        cart_repo, product_repo = repos
        cart_repo.get_items.return_value = [line("a", 2), line("b", 3, selected=False)]
        service = CartService(cart_repo, product_repo)

        assert service.get_item_count("user-1") == 5
        assert service.get_stats("user-1") == {'total_items': 2, 'selected_items': 1, 'unselected_items': 1}

    def test_summary(self, repos):
        cart_repo, product_repo = repos
        cart_repo.get_items.return_value = [line("a", 2)]

        summary = CartService(cart_repo, product_repo).get_cart_summary("user-1")

        assert summary['items'][0]['unit_price'] == 250.0
        assert summary['items'][0]['line_total'] == 500.0
        assert summary['totals']['total'] == 530.0

    def test_quote_uses_selected_lines(self, repos):
        cart_repo, product_repo = repos
        cart_repo.get_items.return_value = [line("a", 2)]
        cart_repo.get_active_services.return_value = []
        cart_repo.get_active_freight_charges.return_value = []

        totals = CartService(cart_repo, product_repo).quote("user-1", ["WEEKEND"])

        cart_repo.get_items.assert_called_once_with("user-1", selected_only=True)
        assert totals['subtotal'] == 500.0
        assert totals['freight'] is None
