"""
Storefront Chat Tools for Claude AI Integration

Tools the chat assistant can call while answering a customer:
1. search_products - Published products by name/grade/type
2. get_product_details - Full product with every delivery price
3. calculate_price - Price for a volume and delivery method, with SST
4. check_stock - Current stock for a product

Every tool returns a JSON string; errors are returned as {"error": ...}
so the model can recover instead of the request failing.

Author: ReadyMix
Date: 2025-06-07
"""
import json
from typing import Optional, Dict, Any

from readymix.core.config import settings
from readymix.domain.product import DELIVERY_PRICE_FIELDS
from readymix.repositories.product_repository import ProductRepository
from readymix.services import pricing_service

_product_repo: Optional[ProductRepository] = None


def get_product_repo() -> ProductRepository:
    global _product_repo
    if _product_repo is None:
        _product_repo = ProductRepository()
    return _product_repo


def _summary(product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "grade": product.grade,
        "product_type": product.product_type,
        "mortar_ratio": product.mortar_ratio,
        "normal_price": float(product.normal_price) if product.normal_price is not None else None,
        "unit": product.unit or "m3",
        "stock_quantity": product.stock_quantity,
    }


# ============================================================================
# TOOL 1: search_products
# ============================================================================

def search_products(
    query: Optional[str] = None,
    product_type: Optional[str] = None,
    grade: Optional[str] = None,
    limit: int = 5
) -> str:
    """
    Search published products.

    Args:
        query: Text contained in the product name
        product_type: concrete | mortar
        grade: Exact grade (N25, S30, M044)
        limit: Maximum results (capped at 10)

    Returns:
        JSON string with matching products
    """
    products, total = get_product_repo().find_all(
        status="published",
        product_type=product_type,
        grade=grade,
        search=query,
        limit=min(max(int(limit), 1), 10)
    )

    return json.dumps({
        "total": total,
        "products": [_summary(p) for p in products],
    }, ensure_ascii=False)


# ============================================================================
# TOOL 2: get_product_details
# ============================================================================

def get_product_details(product_id: str) -> str:
    product = get_product_repo().find_by_id(product_id)
    if not product or not product.is_published:
        return json.dumps({"error": f"Product {product_id} not found"}, ensure_ascii=False)

    details = _summary(product)
    details.update({
        "description": product.description,
        "category": product.category,
        "prices": {
            method: float(getattr(product, field))
            for method, field in DELIVERY_PRICE_FIELDS.items()
            if getattr(product, field) is not None
        },
        "available_delivery_methods": product.available_delivery_methods,
    })
    return json.dumps(details, ensure_ascii=False)


# ============================================================================
# TOOL 3: calculate_price
# ============================================================================

def calculate_price(product_id: str, volume: float, delivery_method: str = "normal") -> str:
    """
    Price a volume of a product for a delivery method.

    Returns:
        JSON string with unit price, subtotal, SST and total (RM)
    """
    if volume <= 0:
        return json.dumps({"error": "Volume must be greater than 0"}, ensure_ascii=False)

    product = get_product_repo().find_by_id(product_id)
    if not product or not product.is_published:
        return json.dumps({"error": f"Product {product_id} not found"}, ensure_ascii=False)

    unit_price = pricing_service.get_product_price(product, delivery_method)
    subtotal = round(unit_price * volume, 2)
    tax = round(subtotal * settings.TAX_RATE, 2)

    return json.dumps({
        "product": product.name,
        "delivery_method": delivery_method if delivery_method in DELIVERY_PRICE_FIELDS else "normal",
        "volume": volume,
        "unit_price": unit_price,
        "subtotal": subtotal,
        "tax": tax,
        "total": round(subtotal + tax, 2),
        "currency": "RM",
    }, ensure_ascii=False)


# ============================================================================
# TOOL 4: check_stock
# ============================================================================

def check_stock(product_id: str) -> str:
    stock = get_product_repo().get_stock(product_id)
    if not stock:
        return json.dumps({"error": f"Product {product_id} not found"}, ensure_ascii=False)

    stock["in_stock"] = stock["stock_quantity"] > 0
    return json.dumps(stock, ensure_ascii=False)


# ============================================================================
# TOOL DEFINITIONS (Anthropic format)
# ============================================================================

TOOLS = [
    {
        "name": "search_products",
        "description": "Search the published catalog by name text, product type or grade. Use this before quoting any product.",
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Text contained in the product name"},
                "product_type": {"type": "string", "enum": ["concrete", "mortar"]},
                "grade": {"type": "string", "description": "Exact grade such as N25, S30 or M044"},
                "limit": {"type": "integer", "description": "Maximum results (default 5, max 10)"}
            },
            "required": []
        }
    },
    {
        "name": "get_product_details",
        "description": "Full details of one product including the price of every delivery method.",
        "input_schema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "Product UUID from search_products"}
            },
            "required": ["product_id"]
        }
    },
    {
        "name": "calculate_price",
        "description": "Calculate the cost of a volume (m3) of a product for a delivery method, including 6% SST.",
        "input_schema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string"},
                "volume": {"type": "number", "description": "Volume in cubic meters"},
                "delivery_method": {
                    "type": "string",
                    "enum": ["normal", "pump", "tremie_1", "tremie_2", "tremie_3"]
                }
            },
            "required": ["product_id", "volume"]
        }
    },
    {
        "name": "check_stock",
        "description": "Current available stock (m3) for a product.",
        "input_schema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string"}
            },
            "required": ["product_id"]
        }
    },
]


# ============================================================================
# TOOL REGISTRY
# ============================================================================

TOOL_FUNCTIONS = {
    "search_products": search_products,
    "get_product_details": get_product_details,
    "calculate_price": calculate_price,
    "check_stock": check_stock,
}


def execute_tool(tool_name: str, tool_input: Dict[str, Any]) -> str:
    """
    Execute a tool by name with given input parameters.

    Returns:
        JSON string result from the tool
    """
    if tool_name not in TOOL_FUNCTIONS:
        return json.dumps({"error": f"Tool '{tool_name}' not found"}, ensure_ascii=False)

    try:
        return TOOL_FUNCTIONS[tool_name](**tool_input)
    except TypeError as e:
        return json.dumps({"error": f"Invalid parameters for {tool_name}: {str(e)}"}, ensure_ascii=False)
    except Exception as e:
        return json.dumps({"error": f"Error executing {tool_name}: {str(e)}"}, ensure_ascii=False)
