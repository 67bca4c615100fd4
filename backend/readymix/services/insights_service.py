"""
AI Insights Service
General business insights for the staff dashboard: Claude analyses the last
weeks of sales, stock and customer data; a deterministic rule set answers
when the model is unavailable or returns nothing usable.

Author: ReadyMix
Date: 2025-06-07
"""
import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import anthropic

from readymix.core.exceptions import ConfigurationError
from readymix.repositories.analytics_repository import AnalyticsRepository
from readymix.services.ai_text_client import AITextClient, get_ai_text_client
from readymix.services.analytics_service import MONSOON_MONTHS, RAINY_MONTHS

logger = logging.getLogger(__name__)

JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
GRADE_IN_NAME_PATTERN = re.compile(r"([NS]\d+|M0\d+)")

LOW_STOCK_THRESHOLD = 200
CRITICAL_STOCK_THRESHOLD = 50
OVERSTOCK_THRESHOLD = 2000
MAX_INSIGHTS = 6
MIN_CONFIDENCE = 60
MAX_CONFIDENCE = 95


def _sum_by(items: List[Dict[str, Any]], key) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for item in items:
        name = key(item)
        totals[name] = totals.get(name, 0) + item['quantity']
    return totals


def _grade_of(item: Dict[str, Any]) -> str:
    match = GRADE_IN_NAME_PATTERN.search(item.get('name') or "")
    return match.group(1) if match else "Other"


def calculate_insight_metrics(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Args:
        data: recent_orders, monthly_orders (paid), recent_items and
              previous_items (paid, this week / last week), customers
              (paid orders this week), low_stock, high_stock
    """
    recent_orders = data['recent_orders']
    recent_revenue = sum(
        float(order['total'] or 0) for order in recent_orders if order.get('payment_status') == 'paid'
    )
    monthly_revenue = sum(float(order['total'] or 0) for order in data['monthly_orders'])

    top_products = sorted(
        ({'name': name, 'quantity': quantity}
         for name, quantity in _sum_by(data['recent_items'], lambda item: item.get('name') or "Unknown").items()),
        key=lambda entry: entry['quantity'],
        reverse=True
    )

    current_lines = len(data['recent_items'])
    previous_lines = len(data['previous_items'])
    weekly_growth = (current_lines - previous_lines) / previous_lines * 100 if previous_lines else 0.0

    recent_grades = _sum_by(data['recent_items'], _grade_of)
    previous_grades = _sum_by(data['previous_items'], _grade_of)
    grade_trends = []
    for grade, current in list(recent_grades.items())[:3]:
        previous = previous_grades.get(grade, 0)
        growth = (current - previous) / previous * 100 if previous else 0.0
        grade_trends.append(f"{grade}: {'+' if growth > 0 else ''}{growth:.1f}%")

    customers = data['customers']
    unique_customers = len({str(order['user_id']) for order in customers})

    hours: Dict[int, int] = {}
    for item in data['recent_items']:
        if item.get('created_at'):
            hour = item['created_at'].hour
            hours[hour] = hours.get(hour, 0) + 1
    peak_hour = max(hours, key=lambda h: hours[h]) if hours else None
    recent_items = data['recent_items']
    average_size = sum(item['quantity'] for item in recent_items) / len(recent_items) if recent_items else 0.0

    return {
        'recent_revenue': round(recent_revenue),
        'monthly_revenue': round(monthly_revenue),
        'average_order_value': round(recent_revenue / max(len(recent_orders), 1)),
        'weekly_growth': round(weekly_growth, 1),
        'top_products': top_products,
        'grade_trends': ", ".join(grade_trends),
        'unique_customers': unique_customers,
        'orders_per_customer': round(len(customers) / max(unique_customers, 1), 1),
        'peak_hour': peak_hour,
        'average_order_size': round(average_size, 1),
    }


def build_prompt(data: Dict[str, Any], metrics: Dict[str, Any], now: datetime) -> str:
    top = ", ".join(f"{p['name']} ({p['quantity']} m³)" for p in metrics['top_products'][:3]) or "none"
    critical = len([p for p in data['low_stock'] if p['stock_quantity'] < CRITICAL_STOCK_THRESHOLD])
    peak = f"{metrics['peak_hour']}:00" if metrics['peak_hour'] is not None else "n/a"

    return f"""Analyze this Malaysian concrete business data and provide actionable insights:

SALES DATA:
- Last 7 days: {len(data['recent_orders'])} orders, RM{metrics['recent_revenue']} revenue
- Last 30 days: {len(data['monthly_orders'])} paid orders, RM{metrics['monthly_revenue']} revenue
- Average order value: RM{metrics['average_order_value']}
- Week-over-week growth: {metrics['weekly_growth']}%

PRODUCT PERFORMANCE:
- Top selling products: {top}
- Grade trends: {metrics['grade_trends'] or 'n/a'}

INVENTORY STATUS:
- Low stock: {len(data['low_stock'])} products below {LOW_STOCK_THRESHOLD} m³
- Critical stock: {critical} products below {CRITICAL_STOCK_THRESHOLD} m³
- Overstock: {len(data['high_stock'])} products above {OVERSTOCK_THRESHOLD} m³

CUSTOMER BEHAVIOR:
- {metrics['unique_customers']} unique customers, {metrics['orders_per_customer']} orders per customer
- Peak ordering hour: {peak}, average order size {metrics['average_order_size']} m³

Respond with a JSON array of 4-6 insights. Each insight must have:
{{
  "id": "unique-id",
  "type": "sales|prediction|alert|recommendation|analysis",
  "title": "Specific actionable title",
  "description": "Analysis with specific numbers and Malaysian market context",
  "impact": "high|medium|low",
  "confidence": confidence_percentage,
  "timestamp": "{now.isoformat()}"
}}

Focus on seasonal patterns (monsoon/dry season), grade preferences, stock management and customer retention."""


def parse_insights(text: str, now: datetime) -> Optional[List[Dict[str, Any]]]:
    match = JSON_ARRAY_PATTERN.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list):
        return None

    insights = []
    for insight in parsed:
        if not isinstance(insight, dict):
            continue
        try:
            confidence = float(insight.get('confidence') or 75)
        except (TypeError, ValueError):
            confidence = 75.0
        insights.append({
            **insight,
            'confidence': min(max(confidence, MIN_CONFIDENCE), MAX_CONFIDENCE),
            'timestamp': now.isoformat(),
        })
    return insights[:MAX_INSIGHTS] or None


def fallback_insights(data: Dict[str, Any], metrics: Dict[str, Any], now: datetime) -> List[Dict[str, Any]]:
    timestamp = now.isoformat()
    growth = metrics['weekly_growth']
    insights = []

    trend = (
        f"Sales increased by {growth}% compared to last week."
        if growth > 0 else f"Sales declined by {abs(growth)}% from last week."
    )
    insights.append({
        'id': "sales-performance",
        'type': "sales",
        'title': "Weekly Sales Performance",
        'description': (
            f"Generated RM{metrics['recent_revenue']:,} from {len(data['recent_orders'])} orders this week. "
            f"{trend} Average order value: RM{metrics['average_order_value']:,}."
        ),
        'impact': "high" if growth > 10 else "medium" if growth > 0 else "low",
        'confidence': 92,
        'timestamp': timestamp,
    })

    if metrics['top_products']:
        top = metrics['top_products'][0]
        trends = f"Grade trends: {metrics['grade_trends']}. " if metrics['grade_trends'] else ""
        insights.append({
            'id': "product-performance",
            'type': "analysis",
            'title': "Top Product Performance",
            'description': (
                f"{top['name']} led sales with {top['quantity']} m³ this week. {trends}"
                f"Keep high-performing grades stocked and promote slower-moving stock."
            ),
            'impact': "medium",
            'confidence': 88,
            'timestamp': timestamp,
        })

    low_stock = data['low_stock']
    if low_stock:
        critical = len([p for p in low_stock if p['stock_quantity'] < CRITICAL_STOCK_THRESHOLD])
        critical_note = f"{critical} products are critically low (<{CRITICAL_STOCK_THRESHOLD} m³). " if critical else ""
        insights.append({
            'id': "inventory-management",
            'type': "alert",
            'title': "Inventory Management Alert",
            'description': (
                f"{len(low_stock)} products have stock below {LOW_STOCK_THRESHOLD} m³. {critical_note}"
                f"Top concern: {low_stock[0]['name']} with only {low_stock[0]['stock_quantity']} m³ remaining."
            ),
            'impact': "high" if critical else "medium",
            'confidence': 95,
            'timestamp': timestamp,
        })

    peak = f"{metrics['peak_hour']}:00" if metrics['peak_hour'] is not None else "n/a"
    insights.append({
        'id': "customer-behavior",
        'type': "recommendation",
        'title': "Customer Purchase Patterns",
        'description': (
            f"{metrics['unique_customers']} unique customers, {metrics['orders_per_customer']} orders per customer. "
            f"Peak ordering: {peak}, average order size {metrics['average_order_size']} m³. "
            f"Consider loyalty pricing for repeat contractors."
        ),
        'impact': "medium",
        'confidence': 80,
        'timestamp': timestamp,
    })

    if now.month in MONSOON_MONTHS:
        insights.append({
            'id': "seasonal-monsoon",
            'type': "prediction",
            'title': "Monsoon Season Preparation",
            'description': (
                "Currently in monsoon season. Expect a 25-35% increase in tremie concrete demand. "
                "Ensure adequate inventory of tremie products and waterproofing additives."
            ),
            'impact': "high",
            'confidence': 85,
            'timestamp': timestamp,
        })
    elif now.month in RAINY_MONTHS:
        insights.append({
            'id': "seasonal-rainy",
            'type': "prediction",
            'title': "Rainy Season Impact",
            'description': (
                "Rainy season. Expect a 20-30% increase in covered concrete demand and possible delivery "
                "delays; communicate schedules proactively with customers."
            ),
            'impact': "medium",
            'confidence': 82,
            'timestamp': timestamp,
        })

    high_stock = data['high_stock']
    if high_stock:
        grades = ", ".join(p.get('grade') or p['name'] for p in high_stock[:3])
        insights.append({
            'id': "overstock-optimization",
            'type': "recommendation",
            'title': "Overstock Optimization Opportunity",
            'description': (
                f"{len(high_stock)} products hold more than {OVERSTOCK_THRESHOLD} m³. "
                f"Consider promotions for {grades} grades to improve cash flow."
            ),
            'impact': "medium",
            'confidence': 75,
            'timestamp': timestamp,
        })

    return insights[:MAX_INSIGHTS]


class InsightsService:

    def __init__(
        self,
        repo: Optional[AnalyticsRepository] = None,
        ai_client: Optional[AITextClient] = None
    ):
        self.repo = repo or AnalyticsRepository()
        self.ai_client = ai_client or get_ai_text_client()

    def collect_data(self, now: datetime) -> Dict[str, Any]:
        week_ago = now - timedelta(days=7)
        return {
            'recent_orders': self.repo.get_orders(since=week_ago),
            'monthly_orders': self.repo.get_orders(since=now - timedelta(days=30), payment_status='paid'),
            'recent_items': self.repo.get_order_items(since=week_ago, paid_only=True),
            'previous_items': self.repo.get_order_items(
                since=now - timedelta(days=14), until=week_ago, paid_only=True
            ),
            'customers': self.repo.get_orders(since=week_ago, payment_status='paid'),
            'low_stock': self.repo.get_published_products_by_stock(below=LOW_STOCK_THRESHOLD),
            'high_stock': self.repo.get_published_products_by_stock(above=OVERSTOCK_THRESHOLD),
        }

    def generate(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Returns:
            {"insights": [...], "source": "ai" | "fallback"}
        """
        now = now or datetime.now(timezone.utc)
        data = self.collect_data(now)
        metrics = calculate_insight_metrics(data)

        insights = None
        try:
            text = self.ai_client.generate(build_prompt(data, metrics, now), max_tokens=2000)
            insights = parse_insights(text, now)
            if insights is None:
                logger.warning("AI insights response had no parsable JSON array, using fallback")
        except (ConfigurationError, anthropic.APIError) as e:
            logger.warning(f"AI insights unavailable, using fallback: {e}")

        if insights is None:
            return {'insights': fallback_insights(data, metrics, now), 'source': "fallback"}

        logger.info(f"Generated {len(insights)} AI insights")
        return {'insights': insights, 'source': "ai"}
