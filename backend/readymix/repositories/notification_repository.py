"""
Notification Repository - Data Access Layer for in-app notifications

Every query is scoped by user_id.

Author: ReadyMix
Date: 2025-06-04
"""
from typing import List, Optional

from readymix.domain.notification import Notification
from readymix.core.database import get_db_connection_dict


class NotificationRepository:

    @staticmethod
    def _map_row(row: dict) -> Notification:
        data = dict(row)
        data['id'] = str(row['id'])
        data['user_id'] = str(row['user_id'])
        data['order_id'] = str(row['order_id']) if row.get('order_id') else None
        return Notification(**data)

    def create(
        self,
        user_id: str,
        title: str,
        message: str,
        type: str,
        order_id: Optional[str] = None
    ) -> Notification:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO notifications (user_id, title, message, type, read, order_id)
                VALUES (%s, %s, %s, %s, FALSE, %s)
                RETURNING id, user_id, title, message, type, read, order_id, created_at, updated_at
            """, (user_id, title, message, type, order_id))
            row = cursor.fetchone()
            conn.commit()
            return self._map_row(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_by_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        """User's notifications, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = """
                SELECT id, user_id, title, message, type, read, order_id, created_at, updated_at
                FROM notifications
                WHERE user_id = %s
            """
            if unread_only:
                query += " AND read = FALSE"
            query += " ORDER BY created_at DESC LIMIT %s"

            cursor.execute(query, (user_id, limit))
            return [self._map_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def count_unread(self, user_id: str) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*) as total
                FROM notifications
                WHERE user_id = %s AND read = FALSE
            """, (user_id,))
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def mark_read(self, user_id: str, notification_id: Optional[str] = None) -> int:
        """
        Mark one notification (or all of them when no id is given) as read

        Returns:
            Number of rows updated
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["user_id = %s", "read = FALSE"]
            params = [user_id]

            if notification_id:
                conditions.append("id = %s")
                params.append(notification_id)

            cursor.execute(f"""
                UPDATE notifications
                SET read = TRUE, updated_at = NOW()
                WHERE {" AND ".join(conditions)}
            """, params)
            count = cursor.rowcount
            conn.commit()
            return count

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def delete(self, user_id: str, notification_id: Optional[str] = None) -> int:
        """Delete one notification, or clear all of the user's notifications"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if notification_id:
                cursor.execute(
                    "DELETE FROM notifications WHERE user_id = %s AND id = %s",
                    (user_id, notification_id)
                )
            else:
                cursor.execute("DELETE FROM notifications WHERE user_id = %s", (user_id,))
            count = cursor.rowcount
            conn.commit()
            return count

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()
