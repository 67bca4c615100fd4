"""
Unit tests for NotificationRepository
"""
import pytest
from unittest.mock import patch, MagicMock
from uuid import UUID

from readymix.repositories.notification_repository import NotificationRepository


def wire(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


class TestNotificationRepository:

    @patch('readymix.repositories.notification_repository.get_db_connection_dict')
    def test_create_maps_uuid_columns(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            'id': UUID("22222222-2222-2222-2222-222222222222"),
            'user_id': UUID("33333333-3333-3333-3333-333333333333"),
            'title': "Order Created", 'message': "Your order o-1 has been created.",
            'type': "order", 'read': False, 'order_id': None,
            'created_at': None, 'updated_at': None,
        }

        notification = NotificationRepository().create("user-1", "Order Created", "msg", "order")

        assert notification.id == "22222222-2222-2222-2222-222222222222"
        assert notification.user_id == "33333333-3333-3333-3333-333333333333"
        assert notification.order_id is None
        mock_conn.commit.assert_called_once()

    @patch('readymix.repositories.notification_repository.get_db_connection_dict')
    def test_find_unread_only(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.fetchall.return_value = []

        NotificationRepository().find_by_user("user-1", unread_only=True, limit=5)

        sql, params = mock_cursor.execute.call_args.args
        assert "read = FALSE" in sql
        assert params == ("user-1", 5)

    @patch('readymix.repositories.notification_repository.get_db_connection_dict')
    def test_mark_all_read(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.rowcount = 3

        assert NotificationRepository().mark_read("user-1") == 3
        sql, params = mock_cursor.execute.call_args.args
        assert "AND id = %s" not in sql
        assert params == ["user-1"]

    @patch('readymix.repositories.notification_repository.get_db_connection_dict')
    def test_mark_one_read(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.rowcount = 1

        NotificationRepository().mark_read("user-1", "n-1")

        assert mock_cursor.execute.call_args.args[1] == ["user-1", "n-1"]

    @patch('readymix.repositories.notification_repository.get_db_connection_dict')
    def test_delete_scoped_to_user(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.rowcount = 0

        assert NotificationRepository().delete("user-2", "n-1") == 0
        assert mock_cursor.execute.call_args.args[1] == ("user-2", "n-1")

    @patch('readymix.repositories.notification_repository.get_db_connection_dict')
    def test_delete_rolls_back(self, mock_get_conn):
        mock_conn, mock_cursor = wire(mock_get_conn)
        mock_cursor.execute.side_effect = Exception("timeout")

        with pytest.raises(Exception):
            NotificationRepository().delete("user-1")

        mock_conn.rollback.assert_called_once()
        mock_conn.close.assert_called_once()
