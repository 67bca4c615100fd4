"""
Unit tests for AnalyticsRepository
"""
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone

from readymix.repositories.analytics_repository import AnalyticsRepository


def wire(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


class TestAnalyticsRepository:

    @patch('readymix.repositories.analytics_repository.get_db_connection_dict_with_retry')
    def test_get_orders_filters(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = []
        since = datetime(2025, 6, 1, tzinfo=timezone.utc)

        AnalyticsRepository().get_orders(since=since, payment_status="paid")

        sql, params = mock_cursor.execute.call_args.args
        assert "created_at >= %s AND payment_status = %s" in sql
        assert params == [since, "paid"]
        mock_conn.close.assert_called_once()

    @patch('readymix.repositories.analytics_repository.get_db_connection_dict_with_retry')
    def test_order_items_paid_only(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = []

        AnalyticsRepository().get_order_items(paid_only=True)

        sql, params = mock_cursor.execute.call_args.args
        assert "o.payment_status = 'paid'" in sql
        assert params == []

    @patch('readymix.repositories.analytics_repository.get_db_connection_dict_with_retry')
    def test_products_by_stock(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = []

        AnalyticsRepository().get_published_products_by_stock(below=50, limit=10)

        sql, params = mock_cursor.execute.call_args.args
        assert "stock_quantity < %s" in sql
        assert sql.rstrip().endswith("LIMIT %s")
        assert params == [50, 10]

    @patch('readymix.repositories.analytics_repository.get_db_connection_dict_with_retry')
    def test_open_enquiries_counts_blank_replies(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = [{'total': 4}]

        assert AnalyticsRepository().count_open_enquiries() == 4
        assert "TRIM(staff_reply) = ''" in mock_cursor.execute.call_args.args[0]

    @patch('readymix.repositories.analytics_repository.get_db_connection_dict_with_retry')
    def test_users_with_orders(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = [{'user_id': "u-1"}, {'user_id': "u-2"}]

        assert AnalyticsRepository().get_users_with_orders() == ["u-1", "u-2"]
