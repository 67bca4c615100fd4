#!/usr/bin/env python3
"""
Create the ReadyMix storefront schema
=====================================

Creates every table declared in readymix.models (no-op for tables that
already exist) and installs the decrease_stock(product_id, qty) SQL
function used by stored procedures and the Supabase dashboard.

Usage:
    DATABASE_URL=postgresql://... python3 scripts/create_schema.py
"""
import os
import sys

from sqlalchemy import text

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.abspath(os.path.join(SCRIPT_DIR, '..')))

from readymix.core.database import Base, engine  # noqa: E402
import readymix.models  # noqa: E402,F401  (registers the tables on Base.metadata)

DECREASE_STOCK_FUNCTION = """
CREATE OR REPLACE FUNCTION decrease_stock(p_product_id UUID, p_qty INTEGER)
RETURNS VOID AS $$
BEGIN
    UPDATE products
    SET stock_quantity = GREATEST(stock_quantity - p_qty, 0),
        updated_at = NOW()
    WHERE id = p_product_id;
END;
$$ LANGUAGE plpgsql;
"""


def main():
    print("Creating tables...")
    Base.metadata.create_all(engine)

    for table in sorted(Base.metadata.tables):
        print(f"  - {table}")

    print("Installing decrease_stock()...")
    with engine.begin() as conn:
        conn.execute(text(DECREASE_STOCK_FUNCTION))

    print("Schema ready")


if __name__ == "__main__":
    main()
