"""
Analytics Service
Staff dashboard metrics: KPIs with growth fallbacks, cart analytics,
daily summary and predictive stock alerts.

The calculation helpers are plain functions over rows so the rules can be
exercised without a database.

Author: ReadyMix
Date: 2025-06-06
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from readymix.repositories.analytics_repository import AnalyticsRepository

logger = logging.getLogger(__name__)

CART_AGE_BUCKETS = ("< 1 hour", "1-24 hours", "1-7 days", "> 7 days")
CART_AGE_COLORS = {
    "< 1 hour": "#ef4444",
    "1-24 hours": "#f97316",
    "1-7 days": "#eab308",
    "> 7 days": "#6b7280",
}

STOCK_WATCH_THRESHOLD = 300
STOCK_ALERT_THRESHOLD = 150
DAILY_STOCK_RISK_THRESHOLD = 100
DEMAND_SPIKE_GROWTH = 30
DEMAND_SPIKE_MIN_UNITS = 100
MONSOON_MONTHS = (11, 12, 1, 2, 3)
RAINY_MONTHS = (6, 7, 8)
POPULAR_GRADES = ("N25", "N20", "M054", "M044")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _round2(value: float) -> float:
    return round(float(value), 2)


def _percent_change(current: float, previous: float) -> float:
    return (current - previous) / previous * 100 if previous > 0 else 0.0


# ============================================================================
# KPI
# ============================================================================

def comparison_periods(now: datetime) -> List[Tuple[datetime, datetime, datetime]]:
    """
    (current_start, previous_start, previous_end) for, in order:
    month over month, last 30 vs previous 30 days, last 7 vs previous 7 days
    """
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    previous_month_start = month_start - relativedelta(months=1)
    previous_month_end = month_start - timedelta(microseconds=1)

    return [
        (month_start, previous_month_start, previous_month_end),
        (now - timedelta(days=30), now - timedelta(days=60), now - timedelta(days=30)),
        (now - timedelta(days=7), now - timedelta(days=14), now - timedelta(days=7)),
    ]


def growth_with_fallback(
    rows: Iterable[Dict[str, Any]],
    now: datetime,
    value: Optional[Callable[[Dict[str, Any]], float]] = None
) -> Dict[str, Any]:
    """
    Growth % of a metric, falling back to shorter windows until the previous
    period has data

    Args:
        rows: Dicts with created_at
        value: Extracts the amount from a row; counts rows when omitted

    Returns:
        {"growth": float, "has_valid_comparison": bool}
    """
    rows = [row for row in rows if row.get('created_at')]
    extract = value or (lambda row: 1)

    for current_start, previous_start, previous_end in comparison_periods(now):
        current = sum(
            extract(row) for row in rows
            if _aware(row['created_at']) >= current_start
        )
        previous = sum(
            extract(row) for row in rows
            if previous_start <= _aware(row['created_at']) <= previous_end
        )
        if previous > 0:
            return {
                'growth': _round2(_percent_change(current, previous)),
                'has_valid_comparison': True,
            }

    return {'growth': 0.0, 'has_valid_comparison': False}


def calculate_kpis(
    paid_orders: List[Dict[str, Any]],
    all_orders: List[Dict[str, Any]],
    published_products: List[Dict[str, Any]],
    open_enquiries: int,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    now = now or utcnow()
    order_total = lambda row: float(row.get('total') or 0)  # noqa: E731

    revenue_growth = growth_with_fallback(paid_orders, now, order_total)
    orders_growth = growth_with_fallback(all_orders, now)
    products_growth = growth_with_fallback(published_products, now)

    return {
        'revenue': {
            'value': _round2(sum(order_total(row) for row in paid_orders)),
            **revenue_growth,
        },
        'orders': {'value': len(all_orders), **orders_growth},
        'products': {'value': len(published_products), **products_growth},
        'open_enquiries': {'value': open_enquiries},
    }


# ============================================================================
# Carts
# ============================================================================

def cart_age_bucket(created_at: datetime, now: datetime) -> str:
    hours = (now - _aware(created_at)).total_seconds() / 3600
    if hours < 1:
        return "< 1 hour"
    if hours < 24:
        return "1-24 hours"
    if hours < 24 * 7:
        return "1-7 days"
    return "> 7 days"


def calculate_cart_analytics(
    carts: List[Dict[str, Any]],
    cart_lines: List[Dict[str, Any]],
    users_with_orders: Iterable[str],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Abandoned carts are carts whose user never ordered
    """
    now = now or utcnow()
    ordered = {str(user_id) for user_id in users_with_orders}

    lines_by_cart: Dict[str, List[Dict[str, Any]]] = {}
    for line in cart_lines:
        lines_by_cart.setdefault(str(line['cart_id']), []).append(line)

    def line_value(line):
        return float(line.get('normal_price') or 0) * line['quantity']

    cart_values = [
        sum(line_value(line) for line in lines_by_cart.get(str(cart['id']), []))
        for cart in carts
    ]
    abandoned = [cart for cart in carts if str(cart['user_id']) not in ordered]

    by_hour: Dict[int, Dict[str, int]] = {}
    for cart in carts:
        hour = _aware(cart['created_at']).hour
        entry = by_hour.setdefault(hour, {'carts': 0, 'abandoned': 0})
        entry['carts'] += 1
        if str(cart['user_id']) not in ordered:
            entry['abandoned'] += 1

    top: Dict[str, Dict[str, Any]] = {}
    for cart in abandoned:
        for line in lines_by_cart.get(str(cart['id']), []):
            entry = top.setdefault(str(line['product_id']), {
                'name': line.get('name') or "Unknown",
                'abandoned_count': 0,
                'value': 0.0,
            })
            entry['abandoned_count'] += line['quantity']
            entry['value'] += line_value(line)

    ages = {bucket: 0 for bucket in CART_AGE_BUCKETS}
    for cart in abandoned:
        ages[cart_age_bucket(cart['created_at'], now)] += 1

    users_with_orders_count = len(ordered)

    return {
        'abandoned_carts': len(abandoned),
        'average_cart_value': _round2(sum(cart_values) / (len(cart_values) or 1)),
        'conversion_rate': _round2(users_with_orders_count / len(carts) * 100) if carts else 0.0,
        'carts_by_hour': [
            {'hour': f"{hour:02d}", **counts}
            for hour, counts in sorted(by_hour.items())
        ],
        'top_abandoned_products': [
            {**entry, 'value': _round2(entry['value'])}
            for entry in sorted(top.values(), key=lambda e: e['abandoned_count'], reverse=True)[:3]
        ],
        'cart_age_distribution': [
            {'age_range': bucket, 'count': ages[bucket], 'color': CART_AGE_COLORS[bucket]}
            for bucket in CART_AGE_BUCKETS
        ],
    }


# ============================================================================
# Daily summary
# ============================================================================

def build_daily_summary(
    yesterday_items: List[Dict[str, Any]],
    today_order_count: int,
    yesterday_orders: List[Dict[str, Any]],
    low_stock: List[Dict[str, Any]],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    now = now or utcnow()

    top = max(yesterday_items, key=lambda item: item['quantity'], default=None)
    yesterday_count = len(yesterday_orders)
    revenue = sum(
        float(order.get('total') or 0) for order in yesterday_orders
        if order.get('payment_status') == 'paid'
    )

    return {
        'date': now.date().isoformat(),
        'top_selling_product': top['name'] if top else "N25 Concrete",
        'order_growth': round(_percent_change(today_order_count, yesterday_count)) if yesterday_count else 0,
        'stock_risks': [product['name'] for product in low_stock][:3],
        'revenue': round(revenue),
        'new_customers': len({str(order['user_id']) for order in yesterday_orders}),
    }


# ============================================================================
# Predictive alerts
# ============================================================================

def restock_suggestion(product: Dict[str, Any], stock: int, month: int) -> Dict[str, Any]:
    """Suggested reorder volume by grade, season and stock criticality"""
    grade = (product.get('grade') or "").upper()
    product_type = product.get('product_type')

    amount = 1000.0
    reasons = []

    if product_type == "concrete":
        if "N25" in grade or "N20" in grade:
            amount, reasons = 1500, ["Popular residential grades - high turnover expected"]
        elif "S40" in grade or "S45" in grade:
            amount, reasons = 600, ["Premium structural grade - specialized applications"]
        elif "S30" in grade or "S35" in grade:
            amount, reasons = 800, ["Commercial structural grade - steady demand"]
        elif "N15" in grade or "N10" in grade:
            amount, reasons = 1200, ["General purpose grade - consistent usage"]
    elif product_type == "mortar":
        mortar_amounts = {
            "M034": (700, "High-strength mortar - structural masonry applications"),
            "M044": (850, "Standard structural mortar - balanced demand"),
            "M054": (1000, "Most popular mortar ratio - high demand"),
            "M064": (600, "General purpose mortar - moderate usage"),
        }
        for code, (base, reason) in mortar_amounts.items():
            if code in grade:
                amount, reasons = base, [reason]
                break

    if month in MONSOON_MONTHS + RAINY_MONTHS:
        amount = round(amount * 1.3)
        reasons.append("Seasonal demand increase")

    if stock < 20:
        amount *= 2.5
        reasons.append("CRITICAL emergency restock required")
    elif stock < 50:
        amount *= 1.8
        reasons.append("High priority restock needed")
    elif stock < 100:
        amount *= 1.3
        reasons.append("Standard restock recommended")

    if any(code in grade for code in POPULAR_GRADES):
        amount *= 1.2
        reasons.append("Popular grade buffer applied")

    target = max(amount, 1200 - stock)

    return {
        'amount': round(target),
        'reasoning': " + ".join(reasons) or "Standard restock calculation based on grade and demand",
        'target_level': round(stock + target),
    }


def stockout_alert(product: Dict[str, Any], index: int, month: int) -> Optional[Dict[str, Any]]:
    stock = int(product.get('stock_quantity') or 0)
    if stock >= STOCK_ALERT_THRESHOLD:
        return None

    days = max(1, stock // 50)
    probability = max(65, min(95, 100 - stock / 2))
    severity = "Critical" if stock < 50 else "High" if stock < 100 else "Medium"
    restock = restock_suggestion(product, stock, month)

    if days <= 2:
        timeframe = "1-2 days"
    elif days <= 5:
        timeframe = "3-5 days"
    else:
        timeframe = "Within a week"

    if stock < 50:
        action = f"URGENT: Emergency reorder of {restock['amount']} m³ ({restock['reasoning']})"
    else:
        action = (
            f"Reorder {restock['amount']} m³ of {product.get('grade')} grade within 48 hours. "
            f"{restock['reasoning']}"
        )

    return {
        'id': f"stockout-{index}",
        'type': "stockout",
        'product': product.get('name'),
        'product_id': str(product.get('id')),
        'current_stock': stock,
        'days_until_stockout': days,
        'suggested_restock': restock,
        'probability': round(probability),
        'severity': severity,
        'timeframe': timeframe,
        'impact': (
            f"{severity} - Current stock: {stock} m³. Estimated depletion in {days} days. "
            f"Suggested restock: {restock['amount']} m³"
        ),
        'action': action,
    }


def demand_spike_alerts(
    recent_items: List[Dict[str, Any]],
    previous_items: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Week-over-week unit growth above 30 % on more than 100 units"""
    def totals(items):
        demand: Dict[Tuple[str, str], int] = {}
        for item in items:
            key = (str(item.get('product_id')), item.get('name'))
            demand[key] = demand.get(key, 0) + item['quantity']
        return demand

    recent = totals(recent_items)
    previous = totals(previous_items)

    alerts = []
    for (product_id, name), current_week in recent.items():
        previous_week = previous.get((product_id, name), 0)
        growth = _percent_change(current_week, previous_week)

        if growth > DEMAND_SPIKE_GROWTH and current_week > DEMAND_SPIKE_MIN_UNITS:
            alerts.append({
                'id': f"demand-spike-{product_id}",
                'type': "demand_spike",
                'product': name,
                'product_id': product_id,
                'probability': min(90, 60 + int(growth // 5)),
                'timeframe': "Next 7-14 days",
                'impact': (
                    f"High growth trend: {growth:.1f}% increase "
                    f"({current_week} m³ vs {previous_week} m³ last week)"
                ),
                'action': (
                    f"Increase inventory by {round(growth)}% and alert procurement team about trending demand"
                ),
            })
    return alerts


def seasonal_alerts(month: int) -> List[Dict[str, Any]]:
    alerts = []
    if month in RAINY_MONTHS:
        alerts.append({
            'id': "weather-seasonal",
            'type': "weather_impact",
            'product': "All Concrete Products",
            'probability': 75,
            'timeframe': "Next 2-4 weeks",
            'impact': "Rainy season approaching - expect 20-30% increase in covered concrete demand",
            'action': "Prepare additional covered storage and increase tremie concrete inventory",
        })
    if month in MONSOON_MONTHS:
        alerts.append({
            'id': "monsoon-alert",
            'type': "weather_impact",
            'product': "Tremie Concrete Products",
            'probability': 80,
            'timeframe': "Next 4-6 weeks",
            'impact': "Monsoon season - increased demand for tremie concrete due to water table issues",
            'action': "Stock up on tremie 1, 2, and 3 grades. Prepare waterproofing additives.",
        })
    return alerts


def price_optimization_alert(product: Dict[str, Any]) -> Dict[str, Any]:
    grade = (product.get('grade') or "").upper()
    increase = "5-10%"
    if product.get('product_type') == "concrete" and "S" in grade:
        increase = "8-12%"
    elif product.get('product_type') == "mortar":
        increase = "3-8%"

    return {
        'id': f"price-optimization-{product.get('id')}",
        'type': "price_optimization",
        'product': product.get('name'),
        'product_id': str(product.get('id')),
        'current_stock': product.get('stock_quantity'),
        'probability': 82,
        'timeframe': "Immediate",
        'impact': (
            f"Low stock + market demand = pricing opportunity. Current: RM{product.get('normal_price')}. "
            f"Market supports {increase} increase."
        ),
        'action': (
            f"Consider {increase} price increase due to supply constraints. "
            f"Monitor competitor pricing and customer response."
        ),
    }


def prioritize_alerts(alerts: List[Dict[str, Any]], limit: int = 5) -> List[Dict[str, Any]]:
    """Stockouts weigh 1.2, delivery delays 1.1, everything else 1.0"""
    weights = {'stockout': 1.2, 'delivery_delay': 1.1}
    ranked = [
        {**alert, 'priority': round(alert['probability'] * weights.get(alert['type'], 1.0), 2)}
        for alert in alerts
    ]
    ranked.sort(key=lambda alert: alert['priority'], reverse=True)
    return ranked[:limit]


class AnalyticsService:
    """
    Service for the staff dashboard

    Handles:
    - KPI cards (revenue, orders, products, open enquiries)
    - Cart and order analytics
    - Daily summary and predictive alerts
    """

    def __init__(self, repo: Optional[AnalyticsRepository] = None):
        self.repo = repo or AnalyticsRepository()

    def get_kpis(self) -> Dict[str, Any]:
        return calculate_kpis(
            paid_orders=self.repo.get_orders(payment_status='paid'),
            all_orders=self.repo.get_orders(),
            published_products=self.repo.get_published_product_dates(),
            open_enquiries=self.repo.count_open_enquiries()
        )

    def get_cart_analytics(self) -> Dict[str, Any]:
        return calculate_cart_analytics(
            carts=self.repo.get_carts(),
            cart_lines=self.repo.get_cart_lines(),
            users_with_orders=self.repo.get_users_with_orders()
        )

    def get_orders_analytics(self, days: int = 30) -> Dict[str, Any]:
        rows = self.repo.get_daily_orders(days)
        daily = [
            {
                'date': row['date'].isoformat() if hasattr(row['date'], 'isoformat') else str(row['date']),
                'orders': row['orders'],
                'revenue': _round2(row['revenue'] or 0),
            }
            for row in rows
        ]
        return {
            'days': days,
            'total_orders': sum(day['orders'] for day in daily),
            'total_revenue': _round2(sum(day['revenue'] for day in daily)),
            'daily': daily,
        }

    def get_product_performance(self, limit: int = 20) -> List[Dict[str, Any]]:
        return [
            {
                'product_id': str(row['product_id']) if row.get('product_id') else None,
                'name': row['name'],
                'grade': row.get('grade'),
                'quantity_sold': int(row['quantity_sold'] or 0),
                'revenue': _round2(row['revenue'] or 0),
                'order_count': row['order_count'],
            }
            for row in self.repo.get_product_performance(limit)
        ]

    def get_daily_summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday_start = today_start - timedelta(days=1)

        return build_daily_summary(
            yesterday_items=self.repo.get_order_items(since=yesterday_start, until=today_start),
            today_order_count=len(self.repo.get_orders(since=today_start)),
            yesterday_orders=self.repo.get_orders(since=yesterday_start, until=today_start - timedelta(microseconds=1)),
            low_stock=self.repo.get_published_products_by_stock(below=DAILY_STOCK_RISK_THRESHOLD, limit=5),
            now=now
        )

    def get_predictive_alerts(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or utcnow()
        month = now.month
        alerts: List[Dict[str, Any]] = []

        watched = self.repo.get_published_products_by_stock(below=STOCK_WATCH_THRESHOLD, limit=10)
        for index, product in enumerate(watched):
            alert = stockout_alert(product, index, month)
            if alert:
                alerts.append(alert)

        week_ago = now - timedelta(days=7)
        alerts.extend(demand_spike_alerts(
            self.repo.get_order_items(since=week_ago),
            self.repo.get_order_items(since=now - timedelta(days=14), until=week_ago)
        ))

        alerts.extend(seasonal_alerts(month))

        scarce = self.repo.get_published_products_by_stock(below=500, limit=3)
        if scarce:
            alerts.append(price_optimization_alert(scarce[0]))

        stale = self.repo.get_orders(status='processing', until=now - timedelta(days=2))
        if len(stale) > 3:
            alerts.append({
                'id': "delivery-optimization",
                'type': "delivery_delay",
                'product': "Order Processing System",
                'probability': 85,
                'timeframe': "Immediate attention needed",
                'impact': (
                    f"{len(stale)} orders pending >48hrs. "
                    f"Risk of customer complaints and delayed deliveries"
                ),
                'action': "Review logistics workflow, contact delivery partners, and implement priority processing",
            })

        logger.info(f"Generated {len(alerts)} predictive alerts")
        return prioritize_alerts(alerts)
