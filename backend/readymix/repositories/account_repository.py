"""
Account Repository - shipping addresses, wishlists and ban history

Author: ReadyMix
Date: 2025-06-04
"""
from typing import List, Optional
from datetime import datetime

from readymix.domain.order import Address, AddressInput
from readymix.domain.account import WishlistItem, BanRecord
from readymix.core.database import get_db_connection_dict


ADDRESS_COLUMNS = """
    id, user_id, full_name, phone, address_line1, address_line2, city, state,
    postal_code, country, is_default, created_at, updated_at
"""


def _address(row: dict) -> Address:
    return Address(**{**row, 'id': str(row['id']), 'user_id': str(row['user_id'])})


class AccountRepository:

    # ========================================================================
    # Addresses
    # ========================================================================

    def list_addresses(self, user_id: str) -> List[Address]:
        """Default address first, then newest"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ADDRESS_COLUMNS}
                FROM addresses
                WHERE user_id = %s
                ORDER BY is_default DESC, created_at DESC
            """, (user_id,))
            return [_address(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_address(self, user_id: str, address_id: str) -> Optional[Address]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ADDRESS_COLUMNS}
                FROM addresses
                WHERE user_id = %s AND id = %s
            """, (user_id, address_id))
            row = cursor.fetchone()
            return _address(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def create_address(self, user_id: str, data: AddressInput) -> Address:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if data.is_default:
                cursor.execute(
                    "UPDATE addresses SET is_default = FALSE WHERE user_id = %s AND is_default = TRUE",
                    (user_id,)
                )

            cursor.execute(f"""
                INSERT INTO addresses (
                    user_id, full_name, phone, address_line1, address_line2,
                    city, state, postal_code, country, is_default
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {ADDRESS_COLUMNS}
            """, (
                user_id, data.full_name, data.phone, data.address_line1, data.address_line2,
                data.city, data.state, data.postal_code, data.country, data.is_default
            ))
            row = cursor.fetchone()
            conn.commit()
            return _address(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def update_address(self, user_id: str, address_id: str, data: AddressInput) -> Optional[Address]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if data.is_default:
                cursor.execute("""
                    UPDATE addresses SET is_default = FALSE
                    WHERE user_id = %s AND id <> %s AND is_default = TRUE
                """, (user_id, address_id))

            cursor.execute(f"""
                UPDATE addresses
                SET full_name = %s, phone = %s, address_line1 = %s, address_line2 = %s,
                    city = %s, state = %s, postal_code = %s, country = %s, is_default = %s,
                    updated_at = NOW()
                WHERE user_id = %s AND id = %s
                RETURNING {ADDRESS_COLUMNS}
            """, (
                data.full_name, data.phone, data.address_line1, data.address_line2,
                data.city, data.state, data.postal_code, data.country, data.is_default,
                user_id, address_id
            ))
            row = cursor.fetchone()
            if not row:
                conn.rollback()
                return None

            conn.commit()
            return _address(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_default_address(self, user_id: str, address_id: str) -> bool:
        """Make one address the default and unset every other default"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT id FROM addresses WHERE user_id = %s AND id = %s",
                (user_id, address_id)
            )
            if not cursor.fetchone():
                return False

            cursor.execute("""
                UPDATE addresses
                SET is_default = (id = %s), updated_at = NOW()
                WHERE user_id = %s
            """, (address_id, user_id))
            conn.commit()
            return True

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def delete_address(self, user_id: str, address_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "DELETE FROM addresses WHERE user_id = %s AND id = %s RETURNING id",
                (user_id, address_id)
            )
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    # ========================================================================
    # Wishlist
    # ========================================================================

    def list_wishlist(self, user_id: str, item_type: Optional[str] = None) -> List[WishlistItem]:
        """Saved items joined with the product name/image or the post title/image"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = """
                SELECT
                    w.id, w.user_id, w.item_type, w.item_id, w.created_at,
                    COALESCE(p.name, po.title) as title,
                    COALESCE(
                        (SELECT i.image_url FROM product_images i
                         WHERE i.product_id = p.id
                         ORDER BY i.is_primary DESC, i.sort_order LIMIT 1),
                        po.image_url
                    ) as image_url
                FROM wishlists w
                LEFT JOIN products p ON w.item_type = 'product' AND p.id = w.item_id
                LEFT JOIN posts po ON w.item_type = 'blog' AND po.id = w.item_id
                WHERE w.user_id = %s
            """
            params = [user_id]
            if item_type:
                query += " AND w.item_type = %s"
                params.append(item_type)
            query += " ORDER BY w.created_at DESC"

            cursor.execute(query, params)
            return [
                WishlistItem(**{
                    **row,
                    'id': str(row['id']),
                    'user_id': str(row['user_id']),
                    'item_id': str(row['item_id'])
                })
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def add_wishlist_item(self, user_id: str, item_type: str, item_id: str) -> str:
        """Idempotent: returns the existing row id when already saved"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO wishlists (user_id, item_type, item_id)
                VALUES (%s, %s, %s)
                ON CONFLICT (user_id, item_type, item_id)
                DO UPDATE SET updated_at = NOW()
                RETURNING id
            """, (user_id, item_type, item_id))
            wishlist_id = str(cursor.fetchone()['id'])
            conn.commit()
            return wishlist_id

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def remove_wishlist_item(self, user_id: str, item_type: str, item_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM wishlists
                WHERE user_id = %s AND item_type = %s AND item_id = %s
                RETURNING id
            """, (user_id, item_type, item_id))
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def is_in_wishlist(self, user_id: str, item_type: str, item_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM wishlists
                WHERE user_id = %s AND item_type = %s AND item_id = %s
            """, (user_id, item_type, item_id))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    # ========================================================================
    # Ban history
    # ========================================================================

    def add_ban_record(
        self,
        user_id: str,
        action: str,
        performed_by: str,
        reason: Optional[str] = None,
        banned_until: Optional[datetime] = None
    ) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO ban_history (user_id, action, reason, banned_until, performed_by)
                VALUES (%s, %s, %s, %s, %s)
            """, (user_id, action, reason, banned_until, performed_by))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def get_ban_history(self, user_id: str) -> List[BanRecord]:
        """Newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, user_id, action, reason, banned_until, performed_by, created_at
                FROM ban_history
                WHERE user_id = %s
                ORDER BY created_at DESC
            """, (user_id,))
            return [
                BanRecord(**{
                    **row,
                    'id': str(row['id']),
                    'user_id': str(row['user_id']),
                    'performed_by': str(row['performed_by']) if row.get('performed_by') else None
                })
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()
