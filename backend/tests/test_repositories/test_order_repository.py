"""
Unit tests for OrderRepository

Author: ReadyMix
Date: 2025-06-10
"""
import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime
from decimal import Decimal

from readymix.repositories.order_repository import OrderRepository
from readymix.domain.order import Order


def wire(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


def order_row(**overrides):
    row = {
        'id': "o-1",
        'user_id': "user-1",
        'address_id': "a-1",
        'status': "pending",
        'payment_status': "pending",
        'payment_intent_id': "pi_123",
        'subtotal': Decimal('500.00'),
        'shipping_cost': Decimal('0'),
        'tax': Decimal('30.00'),
        'total': Decimal('530.00'),
        'notes': None,
        'created_at': datetime(2025, 6, 10, 9, 0),
        'updated_at': None,
    }
    row.update(overrides)
    return row


class TestOrderRepository:

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_with_related_data(self, mock_get_conn):
        """Test find_by_id assembles address, items and services"""
        # Arrange
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = order_row(
            full_name="Ahmad Builder", phone="0123456789", address_line1="1 Jalan Besar",
            address_line2=None, city="Kuala Lumpur", state="WP", postal_code="50000", country=None
        )
        mock_cursor.fetchall.side_effect = [
            [{
                'id': "oi-1", 'order_id': "o-1", 'product_id': "p-1", 'name': "N25 Concrete",
                'grade': "N25", 'price': Decimal('250'), 'quantity': 2, 'variant_type': "normal",
                'image_url': None, 'created_at': None,
            }],
            [{
                'id': "os-1", 'order_id': "o-1", 'additional_service_id': "s-1", 'service_name': "Weekend",
                'rate_per_m3': Decimal('20'), 'quantity': Decimal('2'), 'total_price': Decimal('40'),
            }],
        ]

        # Act
        order = OrderRepository().find_by_id("o-1")

        # Assert
        assert isinstance(order, Order)
        assert order.address.full_name == "Ahmad Builder"
        assert order.address.country == "Malaysia"
        assert order.item_count == 2
        assert order.items[0].line_total == Decimal('500')
        assert order.additional_services[0].service_name == "Weekend"
        assert order.to_dict()['total'] == 530.0
        mock_conn.close.assert_called_once()

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_not_found(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert OrderRepository().find_by_id("missing") is None

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_find_by_user_groups_items(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.side_effect = [
            [order_row(id="o-1"), order_row(id="o-2", address_id=None)],
            [{
                'id': "oi-1", 'order_id': "o-2", 'product_id': None, 'name': "Mortar 1:4",
                'grade': "M044", 'price': Decimal('190'), 'quantity': 1, 'variant_type': None,
                'image_url': None, 'created_at': None,
            }],
        ]

        orders = OrderRepository().find_by_user("user-1")

        assert [o.id for o in orders] == ["o-1", "o-2"]
        assert orders[0].items == []
        assert orders[1].items[0].grade == "M044"
        assert orders[1].address_id is None

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_create_returns_id(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = {'id': "o-9"}

        order_id = OrderRepository().create(user_id="user-1", total=530.0, payment_intent_id="pi_1")

        assert order_id == "o-9"
        mock_conn.commit.assert_called_once()

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_update_payment_returns_owner(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = {'id': "o-1", 'user_id': "user-1", 'total': Decimal('530')}

        result = OrderRepository().update_payment("o-1", "paid", "processing")

        assert result == {'id': "o-1", 'user_id': "user-1", 'total': Decimal('530')}
        assert mock_cursor.execute.call_args.args[1] == ("paid", "processing", "o-1")

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_bulk_delete_removes_orphan_addresses(self, mock_get_conn):
        """Test addresses are only deleted when no remaining order uses them"""
        # Arrange
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = [{'address_id': "a-1"}]
        mock_cursor.rowcount = 2

        # Act
        result = OrderRepository().bulk_delete(["o-1", "o-2"])

        # Assert
        assert result == {'orders': 2, 'addresses': 2}
        statements = [c.args[0] for c in mock_cursor.execute.call_args_list]
        assert "DELETE FROM order_items" in statements[1]
        assert "NOT EXISTS" in statements[-1]
        mock_conn.commit.assert_called_once()

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_bulk_delete_rolls_back(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.execute.side_effect = [None, Exception("fk violation")]
        mock_cursor.fetchall.return_value = []

        with pytest.raises(Exception):
            OrderRepository().bulk_delete(["o-1"])

        mock_conn.rollback.assert_called_once()

    @patch('readymix.repositories.order_repository.get_db_connection_dict')
    def test_co_purchased_requires_products(self, mock_get_conn):
        assert OrderRepository().find_co_purchased("user-1", []) == []
        mock_get_conn.assert_not_called()
