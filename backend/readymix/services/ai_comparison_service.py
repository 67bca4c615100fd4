"""
AI Comparison Service
Side-by-side comparison of 2-4 products written by Claude, with a
deterministic fallback built from the product data

Author: ReadyMix
Date: 2025-06-07
"""
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import anthropic

from readymix.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from readymix.domain.product import Product
from readymix.repositories.product_repository import ProductRepository
from readymix.services.ai_text_client import AITextClient, get_ai_text_client

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
GRADE_NUMBER_PATTERN = re.compile(r"(\d+)")

MIN_PRODUCTS = 2
MAX_PRODUCTS = 4
MAX_DIFFERENCES = 5
MAX_RECOMMENDATIONS = 4
MAX_USE_CASES = 4
MAX_INSIGHTS = 5


def _price(product: Product) -> Optional[float]:
    value = product.normal_price or product.pump_price or product.tremie_1_price
    return float(value) if value else None


def _grade_number(product: Product) -> int:
    match = GRADE_NUMBER_PATTERN.search(product.grade or "")
    return int(match.group(1)) if match else 0


def build_prompt(products: List[Product]) -> str:
    lines = []
    for i, p in enumerate(products, start=1):
        price = _price(p)
        lines.append(
            f"{i}. {p.name} - {p.product_type}, Grade {p.grade or 'N/A'}"
            f"{f', ratio {p.mortar_ratio}' if p.mortar_ratio else ''}, "
            f"RM{price if price is not None else 'N/A'}/{p.unit or 'm3'}, Stock: {p.stock_quantity}"
        )

    return f"""Compare these {len(products)} construction materials sold by a Malaysian ready-mix supplier:

{chr(10).join(lines)}

Respond with ONLY this JSON:
{{
  "summary": "2-sentence comparison of the key differences and value",
  "keyDifferences": ["up to 5 differences in grade, price and application"],
  "recommendations": [{{"scenario": "Project situation", "recommendedProduct": "Product name", "reason": "Why"}}],
  "useCases": [{{"product": "Product name", "bestFor": ["application", "application"]}}],
  "costAnalysis": "Short cost and value comparison",
  "insights": ["up to 5 practical tips"]
}}"""


def parse_comparison(text: str, products: List[Product]) -> Optional[Dict[str, Any]]:
    """
    Extract the JSON object from the model text

    Returns:
        The normalised comparison, or None when nothing usable was found
    """
    match = JSON_OBJECT_PATTERN.search(text or "")
    if not match:
        return None

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None

    def as_list(key, cap):
        value = parsed.get(key)
        return value[:cap] if isinstance(value, list) else []

    result = {
        'summary': parsed.get('summary') if isinstance(parsed.get('summary'), str)
        else f"Comparison of {len(products)} construction materials with varying grades and prices.",
        'keyDifferences': as_list('keyDifferences', MAX_DIFFERENCES),
        'recommendations': as_list('recommendations', MAX_RECOMMENDATIONS),
        'useCases': as_list('useCases', MAX_USE_CASES),
        'costAnalysis': parsed.get('costAnalysis') if isinstance(parsed.get('costAnalysis'), str)
        else "Cost analysis unavailable.",
        'insights': as_list('insights', MAX_INSIGHTS),
    }

    if not result['keyDifferences']:
        result['keyDifferences'] = fallback_differences(products)
    if not result['recommendations']:
        result['recommendations'] = fallback_recommendations(products)

    return result


# ============================================================================
# Fallback
# ============================================================================

def _price_range(products: List[Product]):
    prices = [price for price in (_price(p) for p in products) if price]
    return (min(prices), max(prices)) if prices else (0.0, 0.0)


def fallback_differences(products: List[Product]) -> List[str]:
    differences = []

    min_price, max_price = _price_range(products)
    if max_price > min_price:
        differences.append(f"Price range: RM{min_price:.2f}-{max_price:.2f} per cubic meter")

    grades = list(dict.fromkeys(p.grade for p in products if p.grade))
    if len(grades) > 1:
        differences.append(f"Grade variations: {', '.join(grades)} affecting strength capacity")

    types = list(dict.fromkeys(p.product_type for p in products))
    if len(types) > 1:
        differences.append(f"Product types differ: {' vs '.join(types)}")

    in_stock = [p.name for p in products if p.is_in_stock]
    if len(in_stock) < len(products):
        differences.append(f"Only {len(in_stock)} of {len(products)} products currently in stock")
    else:
        differences.append("Stock availability varies affecting project scheduling")

    return differences[:MAX_DIFFERENCES]


def fallback_recommendations(products: List[Product]) -> List[Dict[str, str]]:
    strongest = max(products, key=_grade_number)
    priced = [p for p in products if _price(p)]
    cheapest = min(priced, key=_price) if priced else products[0]

    return [
        {
            'scenario': "Structural work",
            'recommendedProduct': strongest.name,
            'reason': f"{strongest.grade or 'Highest'} grade gives the highest compressive strength",
        },
        {
            'scenario': "Budget projects",
            'recommendedProduct': cheapest.name,
            'reason': f"Lowest price at RM{_price(cheapest) or 0:.2f} per {cheapest.unit or 'm3'}",
        },
    ]


def fallback_use_cases(products: List[Product]) -> List[Dict[str, Any]]:
    use_cases = []
    for product in products[:MAX_USE_CASES]:
        grade = _grade_number(product)
        if grade >= 25:
            best_for = ["Beams and columns", "Suspended slabs", "Load-bearing structures"]
        elif grade >= 20:
            best_for = ["Residential slabs", "Foundations", "Ground beams"]
        else:
            best_for = ["Driveways", "Pathways", "Non-structural work"]
        use_cases.append({'product': product.name, 'bestFor': best_for})
    return use_cases


def fallback_comparison(products: List[Product]) -> Dict[str, Any]:
    min_price, max_price = _price_range(products)
    grades = list(dict.fromkeys(p.grade for p in products if p.grade))

    return {
        'summary': (
            f"Comparing {len(products)} materials with grades {', '.join(grades) or 'N/A'} "
            f"and prices RM{min_price:.2f}-{max_price:.2f}. "
            f"Each suits different construction applications."
        ),
        'keyDifferences': fallback_differences(products),
        'recommendations': fallback_recommendations(products),
        'useCases': fallback_use_cases(products),
        'costAnalysis': (
            f"Price range: RM{min_price:.2f}-{max_price:.2f}. Higher grades offer more strength "
            f"but cost more; match the grade to the project rather than overspecifying."
        ),
        'insights': [
            "Higher grades (N25+) suit structural work; N20 covers most general use at lower cost",
            "Pump delivery reduces labour on multi-storey pours",
            "Check stock levels before finalising large orders",
        ],
    }


class AIComparisonService:

    def __init__(
        self,
        product_repo: Optional[ProductRepository] = None,
        ai_client: Optional[AITextClient] = None
    ):
        self.product_repo = product_repo or ProductRepository()
        self.ai_client = ai_client or get_ai_text_client()

    def compare(self, product_ids: List[str]) -> Dict[str, Any]:
        """
        Compare 2-4 products

        Returns:
            Comparison dict plus source ("ai" | "fallback") and metadata
        """
        ids = list(dict.fromkeys(product_ids or []))
        if not MIN_PRODUCTS <= len(ids) <= MAX_PRODUCTS:
            raise ValidationError("2-4 products required for comparison")

        found = self.product_repo.find_by_ids(ids)
        missing = [product_id for product_id in ids if product_id not in found]
        if missing:
            raise NotFoundError(f"Product not found: {missing[0]}")
        products = [found[product_id] for product_id in ids]

        result = None
        source = "fallback"
        try:
            text = self.ai_client.generate(build_prompt(products), max_tokens=1500)
            result = parse_comparison(text, products)
            if result:
                source = "ai"
            else:
                logger.warning("AI comparison returned no parsable JSON, using fallback")
        except (ConfigurationError, anthropic.APIError) as e:
            logger.warning(f"AI comparison unavailable, using fallback: {e}")

        if result is None:
            result = fallback_comparison(products)

        result['source'] = source
        result['metadata'] = {
            'products_analyzed': len(products),
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
        return result
