"""
Unit tests for CartRepository

Author: ReadyMix
Date: 2025-06-10
"""
from unittest.mock import patch, MagicMock
from decimal import Decimal

from readymix.repositories.cart_repository import CartRepository
from tests.conftest import product_row


def wire(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


def cart_item_row(**overrides):
    row = product_row()
    row.pop('id')
    row.update({
        'id': "ci-1",
        'cart_id': "cart-1",
        'product_id': "p-1",
        'quantity': 3,
        'variant_type': "pump",
        'selected': True,
    })
    row.update(overrides)
    return row


class TestCartRepository:

    @patch('readymix.repositories.cart_repository.get_db_connection_dict')
    def test_get_or_create_cart_upserts(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = {'id': "cart-1", 'user_id': "user-1", 'created_at': None, 'updated_at': None}

        cart = CartRepository().get_or_create_cart("user-1")

        assert cart.id == "cart-1"
        assert "ON CONFLICT (user_id)" in mock_cursor.execute.call_args.args[0]
        mock_conn.commit.assert_called_once()

    @patch('readymix.repositories.cart_repository.get_db_connection_dict')
    def test_get_items_maps_joined_product(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = [cart_item_row()]

        items = CartRepository().get_items("user-1", selected_only=True)

        assert len(items) == 1
        assert items[0].product.id == "p-1"
        assert items[0].product.pump_price == Decimal('280.00')
        assert items[0].variant_type == "pump"
        assert "ci.selected = TRUE" in mock_cursor.execute.call_args.args[0]

    @patch('readymix.repositories.cart_repository.get_db_connection_dict')
    def test_find_item_scoped_to_user(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert CartRepository().find_item("user-2", "ci-1") is None
        assert mock_cursor.execute.call_args.args[1] == ("user-2", "ci-1")

    @patch('readymix.repositories.cart_repository.get_db_connection_dict')
    def test_set_selected_all_lines(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.rowcount = 4

        count = CartRepository().set_selected("user-1", False)

        assert count == 4
        sql, params = mock_cursor.execute.call_args.args
        assert "ci.id = %s" not in sql
        assert params == [False, "user-1"]

    @patch('readymix.repositories.cart_repository.get_db_connection_dict')
    def test_clear_selected_only(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.rowcount = 2

        assert CartRepository().clear("user-1", selected_only=True) == 2
        assert "ci.selected = TRUE" in mock_cursor.execute.call_args.args[0]

    @patch('readymix.repositories.cart_repository.get_db_connection_dict')
    def test_active_services_and_freight(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.side_effect = [
            [{'id': 1, 'service_name': "Weekend", 'service_code': "WEEKEND",
              'rate_per_m3': Decimal('20'), 'description': None, 'is_active': True}],
            [{'id': 7, 'min_volume': Decimal('0'), 'max_volume': None,
              'delivery_fee': Decimal('100'), 'description': None, 'is_active': True}],
        ]
        repo = CartRepository()

        services = repo.get_active_services()
        bands = repo.get_active_freight_charges()

        assert services[0].id == "1"
        assert services[0].to_dict()['rate_per_m3'] == 20.0
        assert bands[0].matches(1000)
