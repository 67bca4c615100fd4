"""
Product Repository - Data Access Layer for Products

Handles all database queries for products (and their images) and returns
Product domain models.

Author: ReadyMix
Date: 2025-06-02
"""
from typing import List, Optional, Tuple, Dict, Iterable

from readymix.domain.product import Product, ProductImage, ProductCreate, ProductUpdate
from readymix.core.database import get_db_connection_dict


# Product columns plus images aggregated primary-first
PRODUCT_SELECT = """
    SELECT
        p.id, p.name, p.description, p.grade, p.product_type, p.mortar_ratio,
        p.category, p.normal_price, p.pump_price, p.tremie_1_price,
        p.tremie_2_price, p.tremie_3_price, p.unit, p.stock_quantity,
        p.status, p.is_featured, p.keywords, p.created_at, p.updated_at,
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
    FROM products p
"""

UPDATABLE_FIELDS = (
    'name', 'grade', 'product_type', 'category', 'unit', 'status', 'description',
    'mortar_ratio', 'normal_price', 'pump_price', 'tremie_1_price', 'tremie_2_price',
    'tremie_3_price', 'stock_quantity', 'is_featured', 'keywords',
)


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        """Map a products row (with aggregated images) to the domain model"""
        images = [ProductImage(**img) for img in (row.get('images') or [])]

        return Product(
            id=str(row['id']),
            name=row['name'],
            description=row.get('description'),
            grade=row.get('grade'),
            product_type=row.get('product_type') or 'concrete',
            mortar_ratio=row.get('mortar_ratio'),
            category=row.get('category'),
            normal_price=row.get('normal_price'),
            pump_price=row.get('pump_price'),
            tremie_1_price=row.get('tremie_1_price'),
            tremie_2_price=row.get('tremie_2_price'),
            tremie_3_price=row.get('tremie_3_price'),
            unit=row.get('unit'),
            stock_quantity=row.get('stock_quantity') or 0,
            status=row.get('status') or 'draft',
            is_featured=bool(row.get('is_featured')),
            keywords=list(row.get('keywords') or []),
            images=images,
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """
        Find product by ID

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(PRODUCT_SELECT + " WHERE p.id = %s", (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_product(row)

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        """Load several products at once, keyed by id"""
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(PRODUCT_SELECT + " WHERE p.id = ANY(%s::uuid[])", (ids,))
            products = [self._map_row_to_product(row) for row in cursor.fetchall()]
            return {product.id: product for product in products}

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        product_type: Optional[str] = None,
        category: Optional[str] = None,
        grade: Optional[str] = None,
        is_featured: Optional[bool] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters

        Args:
            status: draft | published | archived
            product_type: concrete | mortar
            category: Filter by category
            grade: Exact grade (N25, S30, ...)
            is_featured: Only featured / non featured
            search: Search in name
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if status:
                conditions.append("p.status = %s")
                params.append(status)

            if product_type:
                conditions.append("p.product_type = %s")
                params.append(product_type)

            if category:
                conditions.append("p.category = %s")
                params.append(category)

            if grade:
                conditions.append("UPPER(p.grade) = UPPER(%s)")
                params.append(grade)

            if is_featured is not None:
                conditions.append("p.is_featured = %s")
                params.append(is_featured)

            if search:
                conditions.append("p.name ILIKE %s")
                params.append(f"%{search}%")

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(
                PRODUCT_SELECT + f"""
                WHERE {where_clause}
                ORDER BY p.is_featured DESC, p.name
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            products = [self._map_row_to_product(row) for row in cursor.fetchall()]

            return products, total

        finally:
            cursor.close()
            conn.close()

    def find_published(self) -> List[Product]:
        """Whole published catalog (small: tens of products)"""
        products, _ = self.find_all(status="published", limit=1000)
        return products

    def search_by_name(self, query: str, limit: int = 10) -> List[Product]:
        """Published products whose name contains the query"""
        products, _ = self.find_all(status="published", search=query, limit=limit)
        return products

    def get_stock(self, product_id: str) -> Optional[dict]:
        """
        Stock of a published product

        Returns:
            Dict with id, name, stock_quantity or None when missing/unpublished
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, stock_quantity
                FROM products
                WHERE id = %s AND status = 'published'
            """, (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return {
                'id': str(row['id']),
                'name': row['name'],
                'stock_quantity': row['stock_quantity'] or 0
            }

        finally:
            cursor.close()
            conn.close()

    def find_low_stock(self, threshold: int) -> List[dict]:
        """Published products with stock below threshold, lowest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, grade, product_type, stock_quantity
                FROM products
                WHERE status = 'published' AND stock_quantity < %s
                ORDER BY stock_quantity ASC
            """, (threshold,))

            return cursor.fetchall()

        finally:
            cursor.close()
            conn.close()

    def count_published(self, created_before=None) -> int:
        """Number of published products, optionally only those created before a date"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if created_before is not None:
                cursor.execute("""
                    SELECT COUNT(*) as total FROM products
                    WHERE status = 'published' AND created_at < %s
                """, (created_before,))
            else:
                cursor.execute("SELECT COUNT(*) as total FROM products WHERE status = 'published'")

            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def create(self, data: ProductCreate) -> Product:
        """
        Insert a product and its images in one transaction

        mortar_ratio is only stored for mortar products. The first image is
        the primary one; sort_order follows the given order.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            mortar_ratio = data.mortar_ratio if data.product_type == "mortar" else None

            cursor.execute("""
                INSERT INTO products (
                    name, description, grade, product_type, mortar_ratio, category,
                    normal_price, pump_price, tremie_1_price, tremie_2_price, tremie_3_price,
                    unit, stock_quantity, status, is_featured, keywords
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id, created_at, updated_at
            """, (
                data.name, data.description, data.grade, data.product_type, mortar_ratio,
                data.category, data.normal_price, data.pump_price, data.tremie_1_price,
                data.tremie_2_price, data.tremie_3_price, data.unit, data.stock_quantity,
                data.status, data.is_featured, data.keywords
            ))
            row = cursor.fetchone()
            product_id = str(row['id'])

            images = self._insert_images(cursor, product_id, data.images)

            conn.commit()

            return Product(
                id=product_id,
                **data.model_dump(exclude={'images', 'mortar_ratio'}),
                mortar_ratio=mortar_ratio,
                images=images,
                created_at=row.get('created_at'),
                updated_at=row.get('updated_at')
            )

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    @staticmethod
    def _insert_images(cursor, product_id: str, images) -> List[ProductImage]:
        inserted = []
        for index, image in enumerate(images):
            cursor.execute("""
                INSERT INTO product_images (product_id, image_url, alt_text, is_primary, sort_order)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
            """, (product_id, image.image_url, image.alt_text, index == 0, index))
            image_row = cursor.fetchone()
            inserted.append(ProductImage(
                id=str(image_row['id']),
                image_url=image.image_url,
                alt_text=image.alt_text,
                is_primary=index == 0,
                sort_order=index
            ))
        return inserted

    def update(self, product_id: str, data: ProductUpdate) -> bool:
        """
        Update the given fields; replaces the image list when images is provided

        Returns:
            False if the product does not exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            changes = data.model_dump(exclude_unset=True, exclude={'images'})
            changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

            # Ratio only makes sense for mortar
            if changes.get('product_type') == 'concrete':
                changes['mortar_ratio'] = None

            assignments = [f"{field} = %s" for field in changes]
            params = list(changes.values())
            assignments.append("updated_at = NOW()")

            cursor.execute(f"""
                UPDATE products
                SET {", ".join(assignments)}
                WHERE id = %s
                RETURNING id
            """, params + [product_id])

            if not cursor.fetchone():
                conn.rollback()
                return False

            if data.images is not None:
                cursor.execute("DELETE FROM product_images WHERE product_id = %s", (product_id,))
                self._insert_images(cursor, product_id, data.images)

            conn.commit()
            return True

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def delete(self, product_id: str) -> bool:
        """Delete a product (images cascade). Returns False when missing."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM products WHERE id = %s RETURNING id", (product_id,))
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def decrease_stock(self, quantities: Dict[str, int]) -> None:
        """
        Decrement stock for several products, never going below zero

        Args:
            quantities: product_id -> quantity sold
        """
        if not quantities:
            return

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            for product_id, quantity in quantities.items():
                cursor.execute("""
                    UPDATE products
                    SET stock_quantity = GREATEST(stock_quantity - %s, 0),
                        updated_at = NOW()
                    WHERE id = %s
                """, (quantity, product_id))

            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def get_export_rows(self, status: Optional[str] = None) -> List[dict]:
        """Flat product rows for CSV/XLSX export"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = """
                SELECT
                    id, name, grade, product_type, mortar_ratio, category, unit,
                    normal_price, pump_price, tremie_1_price, tremie_2_price, tremie_3_price,
                    stock_quantity, status, is_featured, created_at
                FROM products
            """
            params = []
            if status:
                query += " WHERE status = %s"
                params.append(status)
            query += " ORDER BY name"

            cursor.execute(query, params)
            return cursor.fetchall()

        finally:
            cursor.close()
            conn.close()
