"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.

Author: ReadyMix
Date: 2025-06-03
"""
from typing import List, Optional, Tuple, Dict, Any

from readymix.domain.order import Order, OrderItem, OrderAdditionalService, Address
from readymix.core.database import get_db_connection_dict


ORDER_COLUMNS = """
    o.id, o.user_id, o.address_id, o.status, o.payment_status, o.payment_intent_id,
    o.subtotal, o.shipping_cost, o.tax, o.total, o.notes, o.created_at, o.updated_at
"""


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with related data (items, services, address).
    """

    @staticmethod
    def _map_row_to_order(row: dict, items=None, services=None, address=None) -> Order:
        order_dict = dict(row)
        order_dict['id'] = str(row['id'])
        order_dict['user_id'] = str(row['user_id'])
        order_dict['address_id'] = str(row['address_id']) if row.get('address_id') else None
        order_dict['items'] = items or []
        order_dict['additional_services'] = services or []
        order_dict['address'] = address
        return Order(**order_dict)

    @staticmethod
    def _fetch_items(cursor, order_ids: List[str]) -> Dict[str, List[OrderItem]]:
        if not order_ids:
            return {}

        cursor.execute("""
            SELECT id, order_id, product_id, name, grade, price, quantity,
                   variant_type, image_url, created_at
            FROM order_items
            WHERE order_id = ANY(%s::uuid[])
            ORDER BY created_at, id
        """, (order_ids,))

        grouped: Dict[str, List[OrderItem]] = {}
        for item in cursor.fetchall():
            item = dict(item)
            item['id'] = str(item['id'])
            item['order_id'] = str(item['order_id'])
            item['product_id'] = str(item['product_id']) if item.get('product_id') else None
            grouped.setdefault(item['order_id'], []).append(OrderItem(**item))
        return grouped

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """
        Find order by ID with address, items and additional services

        Args:
            order_id: Order UUID

        Returns:
            Order with all related data or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS},
                    a.full_name, a.phone, a.address_line1, a.address_line2,
                    a.city, a.state, a.postal_code, a.country
                FROM orders o
                LEFT JOIN addresses a ON a.id = o.address_id
                WHERE o.id = %s
            """, (order_id,))

            row = cursor.fetchone()
            if not row:
                return None

            address = None
            if row.get('address_id') and row.get('full_name'):
                address = Address(
                    id=str(row['address_id']),
                    user_id=str(row['user_id']),
                    full_name=row['full_name'],
                    phone=row.get('phone'),
                    address_line1=row['address_line1'],
                    address_line2=row.get('address_line2'),
                    city=row['city'],
                    state=row['state'],
                    postal_code=row['postal_code'],
                    country=row.get('country') or 'Malaysia'
                )

            items = self._fetch_items(cursor, [order_id]).get(str(row['id']), [])

            cursor.execute("""
                SELECT id, order_id, additional_service_id, service_name,
                       rate_per_m3, quantity, total_price
                FROM order_additional_services
                WHERE order_id = %s
                ORDER BY service_name
            """, (order_id,))
            services = [
                OrderAdditionalService(**{
                    **svc,
                    'id': str(svc['id']),
                    'order_id': str(svc['order_id']),
                    'additional_service_id': str(svc['additional_service_id'])
                })
                for svc in cursor.fetchall()
            ]

            order_row = {k: row[k] for k in row if k not in (
                'full_name', 'phone', 'address_line1', 'address_line2',
                'city', 'state', 'postal_code', 'country'
            )}
            return self._map_row_to_order(order_row, items, services, address)

        finally:
            cursor.close()
            conn.close()

    def find_by_user(self, user_id: str) -> List[Order]:
        """A customer's orders with items, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.user_id = %s
                ORDER BY o.created_at DESC
            """, (user_id,))
            rows = cursor.fetchall()

            items = self._fetch_items(cursor, [str(row['id']) for row in rows])

            return [self._map_row_to_order(row, items.get(str(row['id']))) for row in rows]

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters

        Args:
            status: Filter by order status
            payment_status: Filter by payment status
            from_date: Filter orders from this date
            to_date: Filter orders until this date
            search: Search by order id
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of orders, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            # Build WHERE clause
            conditions = []
            params = []

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            if payment_status:
                conditions.append("o.payment_status = %s")
                params.append(payment_status)

            if from_date:
                conditions.append("o.created_at >= %s")
                params.append(from_date)

            if to_date:
                conditions.append("o.created_at <= %s")
                params.append(to_date)

            if search:
                conditions.append("o.id::text ILIKE %s")
                params.append(f"%{search}%")

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            # Get total count
            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders o
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            # Get orders
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE {where_clause}
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

            items = self._fetch_items(cursor, [str(row['id']) for row in rows])
            orders = [self._map_row_to_order(row, items.get(str(row['id']))) for row in rows]

            return orders, total

        finally:
            cursor.close()
            conn.close()

    def find_latest_pending(self, user_id: str) -> Optional[Order]:
        """Most recent pending order of the user that already has a payment intent"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.user_id = %s
                  AND o.status = 'pending'
                  AND o.payment_intent_id IS NOT NULL
                ORDER BY o.created_at DESC
                LIMIT 1
            """, (user_id,))

            row = cursor.fetchone()
            return self._map_row_to_order(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.payment_intent_id = %s
                ORDER BY o.created_at DESC
                LIMIT 1
            """, (payment_intent_id,))

            row = cursor.fetchone()
            if not row:
                return None

            items = self._fetch_items(cursor, [str(row['id'])])
            return self._map_row_to_order(row, items.get(str(row['id'])))

        finally:
            cursor.close()
            conn.close()

    # ========================================================================
    # Writes
    # ========================================================================

    def create(
        self,
        user_id: str,
        total: float,
        subtotal: float = 0,
        shipping_cost: float = 0,
        tax: float = 0,
        address_id: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
        payment_status: str = "pending",
        status: str = "pending",
        notes: Optional[str] = None
    ) -> str:
        """
        Insert the order row

        Returns:
            New order id
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO orders (
                    user_id, address_id, status, payment_status, payment_intent_id,
                    subtotal, shipping_cost, tax, total, notes
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
            """, (
                user_id, address_id, status, payment_status, payment_intent_id,
                subtotal, shipping_cost, tax, total, notes
            ))
            order_id = str(cursor.fetchone()['id'])
            conn.commit()
            return order_id

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def insert_items(self, order_id: str, items: List[OrderItem]) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            for item in items:
                cursor.execute("""
                    INSERT INTO order_items (
                        order_id, product_id, name, grade, price, quantity, variant_type, image_url
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """, (
                    order_id, item.product_id, item.name, item.grade, item.price,
                    item.quantity, item.variant_type, item.image_url
                ))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def insert_additional_services(self, order_id: str, services: List[OrderAdditionalService]) -> None:
        if not services:
            return

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            for svc in services:
                cursor.execute("""
                    INSERT INTO order_additional_services (
                        order_id, additional_service_id, service_name,
                        rate_per_m3, quantity, total_price
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                """, (
                    order_id, svc.additional_service_id, svc.service_name,
                    svc.rate_per_m3, svc.quantity, svc.total_price
                ))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def delete(self, order_id: str) -> None:
        """Remove a half-created order (items cascade)"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM orders WHERE id = %s", (order_id,))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_payment_intent(self, order_id: str, payment_intent_id: str) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET payment_intent_id = %s, updated_at = NOW()
                WHERE id = %s
            """, (payment_intent_id, order_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def update_status(self, order_id: str, status: str) -> bool:
        """Returns False when the order does not exist"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET status = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, (status, order_id))
            updated = cursor.fetchone() is not None
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def update_payment(self, order_id: str, payment_status: str, status: str) -> Optional[dict]:
        """
        Set payment and fulfilment status together (webhook)

        Returns:
            Dict with id, user_id and total of the updated order, or None
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET payment_status = %s, status = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING id, user_id, total
            """, (payment_status, status, order_id))
            row = cursor.fetchone()
            conn.commit()

            if not row:
                return None

            return {'id': str(row['id']), 'user_id': str(row['user_id']), 'total': row['total']}

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def bulk_delete(self, order_ids: List[str]) -> Dict[str, int]:
        """
        Delete orders with their items, then addresses no other order uses

        Returns:
            Counts of deleted orders and addresses
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT DISTINCT address_id FROM orders
                WHERE id = ANY(%s::uuid[]) AND address_id IS NOT NULL
            """, (order_ids,))
            address_ids = [str(row['address_id']) for row in cursor.fetchall()]

            cursor.execute("DELETE FROM order_items WHERE order_id = ANY(%s::uuid[])", (order_ids,))
            cursor.execute("DELETE FROM order_additional_services WHERE order_id = ANY(%s::uuid[])", (order_ids,))
            cursor.execute("DELETE FROM orders WHERE id = ANY(%s::uuid[])", (order_ids,))
            deleted_orders = cursor.rowcount

            deleted_addresses = 0
            if address_ids:
                cursor.execute("""
                    DELETE FROM addresses a
                    WHERE a.id = ANY(%s::uuid[])
                      AND NOT EXISTS (SELECT 1 FROM orders o WHERE o.address_id = a.id)
                """, (address_ids,))
                deleted_addresses = cursor.rowcount

            conn.commit()

            return {'orders': deleted_orders, 'addresses': deleted_addresses}

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    # ========================================================================
    # Reporting helpers
    # ========================================================================

    def get_export_rows(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Orders with their items as a JSON list, for CSV/XLSX export"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            if payment_status:
                conditions.append("o.payment_status = %s")
                params.append(payment_status)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT
                    {ORDER_COLUMNS},
                    COALESCE((
                        SELECT json_agg(json_build_object(
                            'name', oi.name,
                            'grade', oi.grade,
                            'price', oi.price,
                            'quantity', oi.quantity,
                            'variant_type', oi.variant_type
                        ))
                        FROM order_items oi
                        WHERE oi.order_id = o.id
                    ), '[]'::json) AS items
                FROM orders o
                WHERE {where_clause}
                ORDER BY o.created_at DESC
            """, params)

            return cursor.fetchall()

        finally:
            cursor.close()
            conn.close()

    def get_purchase_history(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Products the user bought, with how many orders contained them

        Returns:
            Rows with product_id, name, grade, category, product_type, order_count
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    p.id as product_id, p.name, p.grade, p.category, p.product_type,
                    COUNT(DISTINCT o.id) as order_count,
                    SUM(oi.quantity) as total_quantity
                FROM orders o
                JOIN order_items oi ON oi.order_id = o.id
                JOIN products p ON p.id = oi.product_id
                WHERE o.user_id = %s
                GROUP BY p.id, p.name, p.grade, p.category, p.product_type
                ORDER BY order_count DESC
            """, (user_id,))

            return cursor.fetchall()

        finally:
            cursor.close()
            conn.close()

    def find_co_purchased(self, user_id: str, product_ids: List[str], limit: int = 5) -> List[Dict[str, Any]]:
        """Products bought by other customers who share a purchased product with the user"""
        if not product_ids:
            return []

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT oi.product_id, COUNT(DISTINCT o.user_id) as buyer_count
                FROM orders o
                JOIN order_items oi ON oi.order_id = o.id
                WHERE o.user_id IN (
                    SELECT DISTINCT o2.user_id
                    FROM orders o2
                    JOIN order_items oi2 ON oi2.order_id = o2.id
                    WHERE oi2.product_id = ANY(%s::uuid[]) AND o2.user_id <> %s
                )
                  AND oi.product_id IS NOT NULL
                  AND NOT (oi.product_id = ANY(%s::uuid[]))
                GROUP BY oi.product_id
                ORDER BY buyer_count DESC
                LIMIT %s
            """, (product_ids, user_id, product_ids, limit))

            return cursor.fetchall()

        finally:
            cursor.close()
            conn.close()

