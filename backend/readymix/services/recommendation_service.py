"""
Recommendation Service
Rule-based product recommendations and purchase-history recommendations

Author: ReadyMix
Date: 2025-06-06
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from readymix.domain.order import Order
from readymix.domain.product import Product
from readymix.repositories.order_repository import OrderRepository
from readymix.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

CONCRETE_GRADE_PATTERN = re.compile(r"^[NS](\d+)$", re.IGNORECASE)
MORTAR_RATIO_PATTERN = re.compile(r"^(\d+):(\d+)$")
HISTORY_GRADE_PATTERN = re.compile(r"[NS](\d+)|M0(\d+)", re.IGNORECASE)

MAX_GRADE_STEP = 10
GROUP_SIZE = 3
MAX_HISTORY_RECOMMENDATIONS = 6


@dataclass
class Recommendation:
    product: Product
    reason: str
    type: str
    score: float

    def to_dict(self) -> dict:
        return {
            'product': self.product.to_dict(),
            'reason': self.reason,
            'type': self.type,
            'score': self.score,
        }


def concrete_grade(grade: Optional[str]) -> Optional[int]:
    """Strength in MPa for N/S grades (N25 -> 25)"""
    match = CONCRETE_GRADE_PATTERN.match((grade or "").strip())
    return int(match.group(1)) if match else None


def mortar_ratio(ratio: Optional[str]) -> Optional[Tuple[int, int]]:
    """'1:4' -> (1, 4) as (cement, sand)"""
    match = MORTAR_RATIO_PATTERN.match((ratio or "").strip())
    return (int(match.group(1)), int(match.group(2))) if match else None


def history_grade(grade: Optional[str]) -> Optional[int]:
    match = HISTORY_GRADE_PATTERN.search(grade or "")
    if not match:
        return None
    return int(match.group(1) or match.group(2))


# ============================================================================
# Rules
# ============================================================================

def _concrete_rules(product: Product, candidates: List[Product]) -> List[Recommendation]:
    current = concrete_grade(product.grade)
    if product.product_type != "concrete" or current is None:
        return []

    results = []
    graded = [
        (concrete_grade(p.grade), p) for p in candidates
        if p.product_type == "concrete" and concrete_grade(p.grade) is not None
    ]

    higher = sorted(
        [(g, p) for g, p in graded if current < g <= current + MAX_GRADE_STEP],
        key=lambda pair: pair[0]
    )
    if higher:
        grade, upsell = higher[0]
        results.append(Recommendation(
            upsell, f"For higher strength applications requiring {grade}MPa", "upsell", 0.9
        ))

    lower = sorted(
        [(g, p) for g, p in graded if current - MAX_GRADE_STEP <= g < current],
        key=lambda pair: pair[0],
        reverse=True
    )
    if lower:
        grade, downsell = lower[0]
        results.append(Recommendation(
            downsell, f"Cost-effective option for lighter applications ({grade}MPa)", "downsell", 0.8
        ))

    mortar = next((p for p in candidates if p.product_type == "mortar"), None)
    if mortar:
        results.append(Recommendation(
            mortar, "Consider mortar for wall construction and non-structural applications", "alternative", 0.6
        ))

    return results


def _mortar_rules(product: Product, candidates: List[Product]) -> List[Recommendation]:
    current = mortar_ratio(product.mortar_ratio)
    if product.product_type != "mortar" or current is None:
        return []

    results = []
    rated = [
        (mortar_ratio(p.mortar_ratio), p) for p in candidates
        if p.product_type == "mortar" and mortar_ratio(p.mortar_ratio) is not None
    ]

    # More cement parts = stronger mix
    stronger = sorted(
        [(r, p) for r, p in rated if r[0] > current[0]],
        key=lambda pair: pair[0][0],
        reverse=True
    )
    if stronger:
        upsell = stronger[0][1]
        results.append(Recommendation(
            upsell, f"Higher strength mortar ({upsell.mortar_ratio}) for load-bearing walls", "upsell", 0.9
        ))

    weaker = sorted(
        [(r, p) for r, p in rated if r[0] < current[0]],
        key=lambda pair: pair[0][0]
    )
    if weaker:
        downsell = weaker[0][1]
        results.append(Recommendation(
            downsell,
            f"Cost-effective option ({downsell.mortar_ratio}) for non-load bearing applications",
            "downsell",
            0.8
        ))

    concrete = next((p for p in candidates if p.product_type == "concrete"), None)
    if concrete:
        results.append(Recommendation(
            concrete, "Consider concrete for structural applications requiring higher strength", "alternative", 0.7
        ))

    return results


def _similar_rule(product: Product, candidates: List[Product]) -> List[Recommendation]:
    similar = [
        p for p in candidates
        if p.product_type == product.product_type
        and (p.grade != product.grade or p.mortar_ratio != product.mortar_ratio)
    ][:2]

    return [
        Recommendation(
            p, f"Alternative {product.product_type} option with different specifications", "alternative", 0.5
        )
        for p in similar
    ]


RULES = (_concrete_rules, _mortar_rules, _similar_rule)


def recommend_for_product(product: Product, catalog: List[Product]) -> List[Dict]:
    """
    Grouped recommendations for a product page

    Returns:
        List of groups: {title, description, products: [...]}; each group
        holds at most 3 recommendations
    """
    candidates = [p for p in catalog if p.id != product.id and p.is_published]

    collected: List[Recommendation] = []
    for rule in RULES:
        collected.extend(rule(product, candidates))

    seen = set()
    unique = []
    for rec in collected:
        if rec.product.id in seen:
            continue
        seen.add(rec.product.id)
        unique.append(rec)
    unique.sort(key=lambda rec: rec.score, reverse=True)

    groups = []
    sections = (
        ("Upgrade Options", "Higher performance options for demanding applications", ("upsell",)),
        ("Budget-Friendly Alternatives", "Cost-effective options for lighter applications", ("downsell",)),
        ("Alternative Solutions", "Different product types for various construction needs", ("alternative", "cross-sell")),
    )
    for title, description, types in sections:
        matches = [rec for rec in unique if rec.type in types]
        if matches:
            groups.append({
                'title': title,
                'description': description,
                'products': [rec.to_dict() for rec in matches[:GROUP_SIZE]],
            })

    if not groups and unique:
        groups.append({
            'title': "You Might Also Like",
            'description': "Similar products other customers have considered",
            'products': [rec.to_dict() for rec in unique[:GROUP_SIZE]],
        })

    return groups


# ============================================================================
# Purchase history
# ============================================================================

def _frequently_bought(orders: List[Order], catalog: Dict[str, Product]) -> List[Recommendation]:
    counts: Dict[str, int] = {}
    for order in orders:
        for item in order.items:
            if item.product_id:
                counts[item.product_id] = counts.get(item.product_id, 0) + item.quantity

    results = []
    for product_id, count in counts.items():
        if count >= 2 and product_id in catalog:
            results.append(Recommendation(
                catalog[product_id], f"You've ordered this {count} times before", "frequently_bought", 0.9
            ))
    return results[:3]


def _upgrades(orders: List[Order], catalog: Dict[str, Product]) -> List[Recommendation]:
    recent_items = [item for order in orders for item in order.items if item.grade][:5]

    results = []
    for item in recent_items:
        current = history_grade(item.grade)
        if current is None:
            continue
        wanted_type = "concrete" if item.grade.upper().startswith(("N", "S")) else "mortar"

        upgrades = [
            p for p in catalog.values()
            if p.product_type == wanted_type
            and history_grade(p.grade) is not None
            and current < history_grade(p.grade) <= current + MAX_GRADE_STEP
        ][:2]
        for upgrade in upgrades:
            results.append(Recommendation(
                upgrade, f"Upgrade from {item.grade} for higher strength applications", "upgrade", 0.8
            ))

    return results[:3]


def _category_popular(orders: List[Order], catalog: Dict[str, Product]) -> List[Recommendation]:
    product_types = set()
    for order in orders:
        for item in order.items:
            if item.grade and re.match(r"^[NS]\d+", item.grade, re.IGNORECASE):
                product_types.add("concrete")
            elif item.grade and re.match(r"^M0", item.grade, re.IGNORECASE):
                product_types.add("mortar")

    if not product_types:
        return []

    newest = sorted(
        (p for p in catalog.values() if p.product_type in product_types),
        key=lambda p: p.created_at.timestamp() if p.created_at else 0,
        reverse=True
    )
    return [
        Recommendation(p, f"Popular choice in {p.product_type} category", "category_popular", 0.6)
        for p in newest[:3]
    ]


class RecommendationService:

    def __init__(
        self,
        product_repo: Optional[ProductRepository] = None,
        order_repo: Optional[OrderRepository] = None
    ):
        self.product_repo = product_repo or ProductRepository()
        self.order_repo = order_repo or OrderRepository()

    def for_product(self, product_id: str) -> Optional[List[Dict]]:
        """None when the product does not exist"""
        product = self.product_repo.find_by_id(product_id)
        if not product:
            return None
        return recommend_for_product(product, self.product_repo.find_published())

    def from_history(self, user_id: str) -> List[Dict]:
        """
        Up to 6 recommendations from the user's orders, best confidence first
        """
        orders = self.order_repo.find_by_user(user_id)
        if not orders:
            return []

        catalog = {p.id: p for p in self.product_repo.find_published()}

        collected: List[Recommendation] = []
        collected.extend(_frequently_bought(orders, catalog))
        collected.extend(_upgrades(orders, catalog))
        collected.extend(_category_popular(orders, catalog))

        purchased = list({item.product_id for order in orders for item in order.items if item.product_id})
        for row in self.order_repo.find_co_purchased(user_id, purchased, limit=3):
            product = catalog.get(str(row['product_id']))
            if product:
                collected.append(Recommendation(
                    product, "Customers with similar purchases also bought this", "similar_customers", 0.7
                ))

        seen = set()
        unique = []
        for rec in sorted(collected, key=lambda rec: rec.score, reverse=True):
            if rec.product.id in seen:
                continue
            seen.add(rec.product.id)
            unique.append(rec)

        logger.info(f"History recommendations for {user_id}: {len(unique)} candidates")

        return [
            {
                'product': rec.product.to_dict(),
                'reason': rec.reason,
                'confidence': rec.score,
                'type': rec.type,
            }
            for rec in unique[:MAX_HISTORY_RECOMMENDATIONS]
        ]
