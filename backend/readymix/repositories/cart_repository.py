"""
Cart Repository - Data Access Layer for Carts

Carts, cart lines (joined with their product), additional services and
freight charge bands.

Author: ReadyMix
Date: 2025-06-03
"""
from typing import List, Optional

from readymix.domain.cart import Cart, CartItem, AdditionalService, FreightCharge
from readymix.repositories.product_repository import ProductRepository
from readymix.core.database import get_db_connection_dict


CART_ITEM_SELECT = """
    SELECT
        ci.id, ci.cart_id, ci.product_id, ci.quantity, ci.variant_type, ci.selected,
        ci.created_at, ci.updated_at,
        p.name, p.description, p.grade, p.product_type, p.mortar_ratio, p.category,
        p.normal_price, p.pump_price, p.tremie_1_price, p.tremie_2_price, p.tremie_3_price,
        p.unit, p.stock_quantity, p.status, p.is_featured, p.keywords,
        COALESCE((
            SELECT json_agg(json_build_object(
                'id', i.id,
                'image_url', i.image_url,
                'alt_text', i.alt_text,
                'is_primary', i.is_primary,
                'sort_order', i.sort_order
            ) ORDER BY i.is_primary DESC, i.sort_order)
            FROM product_images i
            WHERE i.product_id = p.id
        ), '[]'::json) AS images
    FROM cart_items ci
    JOIN products p ON p.id = ci.product_id
"""


class CartRepository:
    """
    Repository for cart data access

    Every cart belongs to exactly one user (carts.user_id is unique).
    """

    @staticmethod
    def _map_row_to_item(row: dict) -> CartItem:
        product = ProductRepository._map_row_to_product({**row, 'id': row['product_id']})

        return CartItem(
            id=str(row['id']),
            cart_id=str(row['cart_id']),
            product_id=str(row['product_id']),
            quantity=row['quantity'],
            variant_type=row.get('variant_type'),
            selected=bool(row.get('selected')),
            product=product,
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def get_or_create_cart(self, user_id: str) -> Cart:
        """Return the user's cart, creating it on first use"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO carts (user_id)
                VALUES (%s)
                ON CONFLICT (user_id) DO UPDATE SET user_id = EXCLUDED.user_id
                RETURNING id, user_id, created_at, updated_at
            """, (user_id,))
            row = cursor.fetchone()
            conn.commit()

            return Cart(
                id=str(row['id']),
                user_id=str(row['user_id']),
                created_at=row.get('created_at'),
                updated_at=row.get('updated_at')
            )

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def get_items(self, user_id: str, selected_only: bool = False) -> List[CartItem]:
        """Cart lines of a user with their products, oldest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = CART_ITEM_SELECT + """
                JOIN carts c ON c.id = ci.cart_id
                WHERE c.user_id = %s
            """
            if selected_only:
                query += " AND ci.selected = TRUE"
            query += " ORDER BY ci.created_at"

            cursor.execute(query, (user_id,))

            return [self._map_row_to_item(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_item(self, user_id: str, item_id: str) -> Optional[CartItem]:
        """A single line, only if it belongs to the user's cart"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(CART_ITEM_SELECT + """
                JOIN carts c ON c.id = ci.cart_id
                WHERE c.user_id = %s AND ci.id = %s
            """, (user_id, item_id))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_item(row)

        finally:
            cursor.close()
            conn.close()

    def find_line(self, cart_id: str, product_id: str, variant_type: Optional[str]) -> Optional[dict]:
        """Existing line for the same product and delivery method"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, quantity
                FROM cart_items
                WHERE cart_id = %s AND product_id = %s
                  AND variant_type IS NOT DISTINCT FROM %s
            """, (cart_id, product_id, variant_type))

            return cursor.fetchone()

        finally:
            cursor.close()
            conn.close()

    def insert_item(self, cart_id: str, product_id: str, quantity: int, variant_type: Optional[str]) -> str:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO cart_items (cart_id, product_id, quantity, variant_type, selected)
                VALUES (%s, %s, %s, %s, TRUE)
                RETURNING id
            """, (cart_id, product_id, quantity, variant_type))
            item_id = str(cursor.fetchone()['id'])

            cursor.execute("UPDATE carts SET updated_at = NOW() WHERE id = %s", (cart_id,))
            conn.commit()

            return item_id

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_quantity(self, item_id: str, quantity: int) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE cart_items
                SET quantity = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, (quantity, item_id))
            updated = cursor.fetchone() is not None
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def delete_item(self, user_id: str, item_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM cart_items ci
                USING carts c
                WHERE ci.cart_id = c.id AND c.user_id = %s AND ci.id = %s
                RETURNING ci.id
            """, (user_id, item_id))
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_selected(self, user_id: str, selected: bool, item_id: Optional[str] = None) -> int:
        """
        Select/deselect one line, or every line when item_id is None

        Returns:
            Number of lines updated
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["ci.cart_id = c.id", "c.user_id = %s"]
            params = [selected, user_id]

            if item_id:
                conditions.append("ci.id = %s")
                params.append(item_id)

            cursor.execute(f"""
                UPDATE cart_items ci
                SET selected = %s, updated_at = NOW()
                FROM carts c
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

    def clear(self, user_id: str, selected_only: bool = False) -> int:
        """
        Remove the user's cart lines (all, or only the selected ones)

        Returns:
            Number of lines removed
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = """
                DELETE FROM cart_items ci
                USING carts c
                WHERE ci.cart_id = c.id AND c.user_id = %s
            """
            if selected_only:
                query += " AND ci.selected = TRUE"

            cursor.execute(query, (user_id,))
            count = cursor.rowcount
            conn.commit()
            return count

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    # ========================================================================
    # Additional services & freight
    # ========================================================================

    def get_active_services(self) -> List[AdditionalService]:
        """Active additional services ordered by service_name"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, service_name, service_code, rate_per_m3, description, is_active
                FROM additional_services
                WHERE is_active = TRUE
                ORDER BY service_name
            """)

            return [
                AdditionalService(**{**row, 'id': str(row['id'])})
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def get_active_freight_charges(self) -> List[FreightCharge]:
        """Active freight bands ordered by min_volume"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, min_volume, max_volume, delivery_fee, description, is_active
                FROM freight_charges
                WHERE is_active = TRUE
                ORDER BY min_volume
            """)

            return [
                FreightCharge(**{**row, 'id': str(row['id'])})
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()
