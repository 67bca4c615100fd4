"""
Content Repository - FAQs, posts and customer enquiries

Author: ReadyMix
Date: 2025-06-04
"""
from typing import List, Optional, Tuple, Dict, Any

from readymix.domain.content import (
    Faq, FaqCreate, FaqUpdate,
    Post, PostCreate, PostUpdate,
    Enquiry, EnquiryCreate,
)
from readymix.core.database import get_db_connection_dict


POST_COLUMNS = """
    id, title, body, description, mobile_description, link_name, link,
    image_url, status, created_at, updated_at
"""

ENQUIRY_COLUMNS = """
    id, user_id, name, email, subject, message, staff_reply, status, created_at, updated_at
"""


def _stringify_ids(row: dict, *fields: str) -> dict:
    data = dict(row)
    for field in fields:
        if data.get(field) is not None:
            data[field] = str(data[field])
    return data


class ContentRepository:
    """
    Repository for back-office content

    FAQs belong to a section that is looked up by name (case-insensitive)
    and created on demand.
    """

    # ========================================================================
    # FAQ
    # ========================================================================

    @staticmethod
    def _resolve_section(cursor, name: str) -> str:
        cursor.execute(
            "SELECT id FROM faq_sections WHERE LOWER(name) = LOWER(%s) LIMIT 1",
            (name.strip(),)
        )
        row = cursor.fetchone()
        if row:
            return str(row['id'])

        cursor.execute(
            "INSERT INTO faq_sections (name) VALUES (%s) RETURNING id",
            (name.strip(),)
        )
        return str(cursor.fetchone()['id'])

    def list_faqs(self, status: Optional[str] = None) -> List[Faq]:
        """FAQs with their section name, ordered by section then creation"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = """
                SELECT f.id, f.question, f.answer, f.section_id, s.name as section_name,
                       f.status, f.created_at, f.updated_at
                FROM faq f
                LEFT JOIN faq_sections s ON s.id = f.section_id
            """
            params = []
            if status:
                query += " WHERE f.status = %s"
                params.append(status)
            query += " ORDER BY s.name NULLS LAST, f.created_at"

            cursor.execute(query, params)
            return [Faq(**_stringify_ids(row, 'id', 'section_id')) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_faq(self, faq_id: str) -> Optional[Faq]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT f.id, f.question, f.answer, f.section_id, s.name as section_name,
                       f.status, f.created_at, f.updated_at
                FROM faq f
                LEFT JOIN faq_sections s ON s.id = f.section_id
                WHERE f.id = %s
            """, (faq_id,))
            row = cursor.fetchone()
            return Faq(**_stringify_ids(row, 'id', 'section_id')) if row else None

        finally:
            cursor.close()
            conn.close()

    def create_faq(self, data: FaqCreate) -> Faq:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            section_id = self._resolve_section(cursor, data.section)

            cursor.execute("""
                INSERT INTO faq (question, answer, section_id, status)
                VALUES (%s, %s, %s, %s)
                RETURNING id, question, answer, section_id, status, created_at, updated_at
            """, (data.question, data.answer, section_id, data.status))
            row = cursor.fetchone()
            conn.commit()

            faq = _stringify_ids(row, 'id', 'section_id')
            faq['section_name'] = data.section.strip()
            return Faq(**faq)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def update_faq(self, faq_id: str, data: FaqUpdate) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            changes = data.model_dump(exclude_unset=True, exclude={'section'})
            if data.section:
                changes['section_id'] = self._resolve_section(cursor, data.section)

            assignments = [f"{field} = %s" for field in changes] + ["updated_at = NOW()"]

            cursor.execute(f"""
                UPDATE faq
                SET {", ".join(assignments)}
                WHERE id = %s
                RETURNING id
            """, list(changes.values()) + [faq_id])
            updated = cursor.fetchone() is not None
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def delete_faq(self, faq_id: str) -> bool:
        return self._delete("faq", faq_id)

    # ========================================================================
    # POSTS
    # ========================================================================

    def list_posts(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Post], int]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            where_clause = "status = %s" if status else "1=1"
            params = [status] if status else []

            cursor.execute(f"SELECT COUNT(*) as total FROM posts WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {POST_COLUMNS}
                FROM posts
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            posts = [Post(**_stringify_ids(row, 'id')) for row in cursor.fetchall()]
            return posts, total

        finally:
            cursor.close()
            conn.close()

    def find_post(self, post_id: str, published_only: bool = False) -> Optional[Post]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = f"SELECT {POST_COLUMNS} FROM posts WHERE id = %s"
            if published_only:
                query += " AND status = 'published'"

            cursor.execute(query, (post_id,))
            row = cursor.fetchone()
            return Post(**_stringify_ids(row, 'id')) if row else None

        finally:
            cursor.close()
            conn.close()

    def create_post(self, data: PostCreate) -> Post:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO posts (
                    title, body, description, mobile_description, link_name, link, image_url, status
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {POST_COLUMNS}
            """, (
                data.title, data.body, data.description, data.mobile_description,
                data.link_name, data.link, data.image_url, data.status
            ))
            row = cursor.fetchone()
            conn.commit()
            return Post(**_stringify_ids(row, 'id'))

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def update_post(self, post_id: str, data: PostUpdate) -> Optional[Post]:
        row = self._update("posts", post_id, data.model_dump(exclude_unset=True), POST_COLUMNS)
        return Post(**_stringify_ids(row, 'id')) if row else None

    def delete_post(self, post_id: str) -> bool:
        return self._delete("posts", post_id)

    # ========================================================================
    # ENQUIRIES
    # ========================================================================

    def create_enquiry(self, data: EnquiryCreate, user_id: Optional[str] = None) -> Enquiry:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO enquiries (user_id, name, email, subject, message, status)
                VALUES (%s, %s, %s, %s, %s, 'open')
                RETURNING {ENQUIRY_COLUMNS}
            """, (user_id, data.name, data.email, data.subject, data.message))
            row = cursor.fetchone()
            conn.commit()
            return Enquiry(**_stringify_ids(row, 'id', 'user_id'))

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def list_enquiries(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Enquiry], int]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            where_clause = "status = %s" if status else "1=1"
            params = [status] if status else []

            cursor.execute(f"SELECT COUNT(*) as total FROM enquiries WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ENQUIRY_COLUMNS}
                FROM enquiries
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            enquiries = [Enquiry(**_stringify_ids(row, 'id', 'user_id')) for row in cursor.fetchall()]
            return enquiries, total

        finally:
            cursor.close()
            conn.close()

    def find_enquiry(self, enquiry_id: str) -> Optional[Enquiry]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {ENQUIRY_COLUMNS} FROM enquiries WHERE id = %s", (enquiry_id,))
            row = cursor.fetchone()
            return Enquiry(**_stringify_ids(row, 'id', 'user_id')) if row else None

        finally:
            cursor.close()
            conn.close()

    def update_enquiry(self, enquiry_id: str, staff_reply: Optional[str], status: str) -> Optional[Enquiry]:
        row = self._update(
            "enquiries", enquiry_id,
            {'staff_reply': staff_reply, 'status': status},
            ENQUIRY_COLUMNS
        )
        return Enquiry(**_stringify_ids(row, 'id', 'user_id')) if row else None

    def delete_enquiry(self, enquiry_id: str) -> bool:
        return self._delete("enquiries", enquiry_id)

    # ========================================================================
    # Shared helpers
    # ========================================================================

    @staticmethod
    def _update(table: str, record_id: str, changes: Dict[str, Any], returning: str) -> Optional[dict]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            assignments = [f"{field} = %s" for field in changes] + ["updated_at = NOW()"]

            cursor.execute(f"""
                UPDATE {table}
                SET {", ".join(assignments)}
                WHERE id = %s
                RETURNING {returning}
            """, list(changes.values()) + [record_id])
            row = cursor.fetchone()
            conn.commit()
            return row

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    @staticmethod
    def _delete(table: str, record_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"DELETE FROM {table} WHERE id = %s RETURNING id", (record_id,))
            deleted = cursor.fetchone() is not None
            conn.commit()
            return deleted

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()
