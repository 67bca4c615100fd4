"""
Analytics Repository - read-only queries behind the staff dashboard

Returns raw rows; the aggregation rules (growth fallbacks, buckets, alerts)
live in analytics_service so they can be tested without a database.

Author: ReadyMix
Date: 2025-06-05
"""
from typing import List, Optional, Dict, Any
from datetime import datetime

from readymix.core.database import get_db_connection_dict_with_retry


class AnalyticsRepository:

    def _fetch_all(self, query: str, params=None) -> List[Dict[str, Any]]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(query, params or [])
            return cursor.fetchall()

        finally:
            cursor.close()
            conn.close()

    # ========================================================================
    # Orders
    # ========================================================================

    def get_orders(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        payment_status: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Order headers (id, user_id, total, status, payment_status, created_at)"""
        conditions = []
        params = []

        if since:
            conditions.append("created_at >= %s")
            params.append(since)

        if until:
            conditions.append("created_at <= %s")
            params.append(until)

        if payment_status:
            conditions.append("payment_status = %s")
            params.append(payment_status)

        if status:
            conditions.append("status = %s")
            params.append(status)

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        return self._fetch_all(f"""
            SELECT id, user_id, total, status, payment_status, created_at
            FROM orders
            WHERE {where_clause}
            ORDER BY created_at ASC
        """, params)

    def get_order_items(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        paid_only: bool = False
    ) -> List[Dict[str, Any]]:
        """Order lines joined with their order date, [since, until)"""
        conditions = []
        params = []

        if since:
            conditions.append("o.created_at >= %s")
            params.append(since)

        if until:
            conditions.append("o.created_at < %s")
            params.append(until)

        if paid_only:
            conditions.append("o.payment_status = 'paid'")

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        return self._fetch_all(f"""
            SELECT oi.product_id, oi.name, oi.quantity, oi.price,
                   o.created_at, o.payment_status, o.user_id
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            WHERE {where_clause}
        """, params)

    def get_daily_orders(self, days: int = 30) -> List[Dict[str, Any]]:
        """Orders and paid revenue per day for the last N days"""
        return self._fetch_all("""
            SELECT
                DATE(created_at) as date,
                COUNT(*) as orders,
                COALESCE(SUM(CASE WHEN payment_status = 'paid' THEN total ELSE 0 END), 0) as revenue
            FROM orders
            WHERE created_at >= NOW() - (%s * INTERVAL '1 day')
            GROUP BY DATE(created_at)
            ORDER BY date ASC
        """, [days])

    def get_product_performance(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Units sold and revenue per product, paid orders only"""
        return self._fetch_all("""
            SELECT
                oi.product_id,
                MAX(oi.name) as name,
                MAX(oi.grade) as grade,
                SUM(oi.quantity) as quantity_sold,
                SUM(oi.price * oi.quantity) as revenue,
                COUNT(DISTINCT o.id) as order_count
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            WHERE o.payment_status = 'paid'
            GROUP BY oi.product_id
            ORDER BY revenue DESC
            LIMIT %s
        """, [limit])

    # ========================================================================
    # Catalog & enquiries
    # ========================================================================

    def get_published_product_dates(self) -> List[Dict[str, Any]]:
        return self._fetch_all("""
            SELECT created_at FROM products WHERE status = 'published'
        """)

    def get_published_products_by_stock(
        self,
        below: Optional[int] = None,
        above: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Published products filtered by stock, lowest stock first"""
        conditions = ["status = 'published'"]
        params = []

        if below is not None:
            conditions.append("stock_quantity < %s")
            params.append(below)

        if above is not None:
            conditions.append("stock_quantity > %s")
            params.append(above)

        query = f"""
            SELECT id, name, grade, product_type, stock_quantity, normal_price, pump_price
            FROM products
            WHERE {" AND ".join(conditions)}
            ORDER BY stock_quantity ASC
        """
        if limit:
            query += " LIMIT %s"
            params.append(limit)

        return self._fetch_all(query, params)

    def count_open_enquiries(self) -> int:
        """Enquiries nobody has replied to yet"""
        rows = self._fetch_all("""
            SELECT COUNT(*) as total
            FROM enquiries
            WHERE staff_reply IS NULL OR TRIM(staff_reply) = ''
        """)
        return rows[0]['total'] if rows else 0

    # ========================================================================
    # Carts
    # ========================================================================

    def get_carts(self) -> List[Dict[str, Any]]:
        return self._fetch_all("SELECT id, user_id, created_at FROM carts")

    def get_cart_lines(self) -> List[Dict[str, Any]]:
        """Cart lines with the product's name and normal price"""
        return self._fetch_all("""
            SELECT ci.cart_id, ci.product_id, ci.quantity, p.name, p.normal_price
            FROM cart_items ci
            JOIN products p ON p.id = ci.product_id
        """)

    def get_users_with_orders(self) -> List[str]:
        rows = self._fetch_all("SELECT DISTINCT user_id FROM orders")
        return [str(row['user_id']) for row in rows]
