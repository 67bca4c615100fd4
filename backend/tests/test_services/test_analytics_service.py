"""
Unit tests for dashboard analytics

The calculations are plain functions over rows, so most tests build rows by
hand and pin "now" instead of mocking the clock.

Author: ReadyMix
Date: 2025-06-11
"""
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timedelta, timezone

from readymix.services.analytics_service import (
    AnalyticsService,
    calculate_cart_analytics,
    calculate_kpis,
    build_daily_summary,
    cart_age_bucket,
    demand_spike_alerts,
    growth_with_fallback,
    prioritize_alerts,
    restock_suggestion,
    seasonal_alerts,
    stockout_alert,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def at(**delta):
    return NOW - timedelta(**delta)


class TestGrowthWithFallback:

    def test_month_over_month(self):
        rows = [
            {'created_at': datetime(2025, 6, 10, tzinfo=timezone.utc), 'total': 200},
            {'created_at': datetime(2025, 5, 10, tzinfo=timezone.utc), 'total': 100},
        ]

        result = growth_with_fallback(rows, NOW, lambda row: row['total'])

        assert result == {'growth': 100.0, 'has_valid_comparison': True}

    def test_falls_back_to_thirty_day_window(self):
        # Nothing in May, but April 20 falls in the 30-60 day window
        rows = [
            {'created_at': datetime(2025, 6, 10, tzinfo=timezone.utc), 'total': 300},
            {'created_at': datetime(2025, 4, 20, tzinfo=timezone.utc), 'total': 100},
        ]

        result = growth_with_fallback(rows, NOW, lambda row: row['total'])

        assert result == {'growth': 200.0, 'has_valid_comparison': True}

    def test_no_comparison_data(self):
        rows = [{'created_at': at(hours=1)}]

        assert growth_with_fallback(rows, NOW) == {'growth': 0.0, 'has_valid_comparison': False}

    def test_naive_timestamps_treated_as_utc(self):
        rows = [
            {'created_at': datetime(2025, 6, 2)},
            {'created_at': datetime(2025, 5, 2)},
            {'created_at': datetime(2025, 5, 3)},
        ]

        assert growth_with_fallback(rows, NOW)['growth'] == -50.0


class TestKpis:

    def test_kpi_cards(self):
        paid = [
            {'created_at': datetime(2025, 6, 3, tzinfo=timezone.utc), 'total': 150.5},
            {'created_at': datetime(2025, 5, 3, tzinfo=timezone.utc), 'total': 100},
        ]
        orders = paid + [{'created_at': datetime(2025, 6, 4, tzinfo=timezone.utc), 'total': 20}]

        kpis = calculate_kpis(paid, orders, [], open_enquiries=4, now=NOW)

        assert kpis['revenue']['value'] == 250.5
        assert kpis['revenue']['growth'] == 50.5
        assert kpis['orders'] == {'value': 3, 'growth': 100.0, 'has_valid_comparison': True}
        assert kpis['products'] == {'value': 0, 'growth': 0.0, 'has_valid_comparison': False}
        assert kpis['open_enquiries'] == {'value': 4}


class TestCartAnalytics:

    @pytest.mark.parametrize("age,bucket", [
        (timedelta(minutes=10), "< 1 hour"),
        (timedelta(hours=5), "1-24 hours"),
        (timedelta(days=3), "1-7 days"),
        (timedelta(days=8), "> 7 days"),
    ])
    def test_age_buckets(self, age, bucket):
        assert cart_age_bucket(NOW - age, NOW) == bucket

    def test_cart_analytics(self):
        carts = [
            {'id': "c1", 'user_id': "u1", 'created_at': at(minutes=30)},
            {'id': "c2", 'user_id': "u2", 'created_at': at(hours=3)},
            {'id': "c3", 'user_id': "u3", 'created_at': at(days=10)},
        ]
        lines = [
            {'cart_id': "c1", 'product_id': "p1", 'name': "N25 Concrete", 'normal_price': 100, 'quantity': 2},
            {'cart_id': "c2", 'product_id': "p2", 'name': "N20 Concrete", 'normal_price': 50, 'quantity': 3},
            {'cart_id': "c3", 'product_id': "p2", 'name': "N20 Concrete", 'normal_price': 50, 'quantity': 1},
        ]

        result = calculate_cart_analytics(carts, lines, users_with_orders=["u1"], now=NOW)

        assert result['abandoned_carts'] == 2
        assert result['average_cart_value'] == 133.33
        assert result['conversion_rate'] == 33.33
        assert result['top_abandoned_products'] == [
            {'name': "N20 Concrete", 'abandoned_count': 4, 'value': 200.0}
        ]
        ages = {row['age_range']: row['count'] for row in result['cart_age_distribution']}
        assert ages == {"< 1 hour": 0, "1-24 hours": 1, "1-7 days": 0, "> 7 days": 1}
        assert sum(row['carts'] for row in result['carts_by_hour']) == 3

    def test_no_carts(self):
        result = calculate_cart_analytics([], [], [], now=NOW)

        assert result['abandoned_carts'] == 0
        assert result['average_cart_value'] == 0.0
        assert result['conversion_rate'] == 0.0


class TestDailySummary:

    def test_summary(self):
        yesterday_orders = [
            {'user_id': "u1", 'total': 300.4, 'payment_status': 'paid'},
            {'user_id': "u1", 'total': 99, 'payment_status': 'pending'},
        ]
        items = [
            {'name': "N20 Concrete", 'quantity': 3},
            {'name': "S30 Concrete", 'quantity': 8},
        ]
        low_stock = [{'name': f"Product {i}"} for i in range(5)]

        summary = build_daily_summary(items, 3, yesterday_orders, low_stock, now=NOW)

        assert summary['date'] == "2025-06-15"
        assert summary['top_selling_product'] == "S30 Concrete"
        assert summary['order_growth'] == 50
        assert summary['stock_risks'] == ["Product 0", "Product 1", "Product 2"]
        assert summary['revenue'] == 300
        assert summary['new_customers'] == 1

    def test_quiet_day_defaults(self):
        summary = build_daily_summary([], 2, [], [], now=NOW)

        assert summary['top_selling_product'] == "N25 Concrete"
        assert summary['order_growth'] == 0


class TestPredictiveAlerts:

    def test_restock_for_critical_popular_grade(self):
        product = {'grade': "N25", 'product_type': "concrete"}

        restock = restock_suggestion(product, stock=10, month=4)

        # 1500 x 2.5 (critical) x 1.2 (popular grade)
        assert restock['amount'] == 4500
        assert restock['target_level'] == 4510
        assert "CRITICAL emergency restock required" in restock['reasoning']

    def test_restock_seasonal_uplift(self):
        product = {'grade': "S40", 'product_type': "concrete"}

        restock = restock_suggestion(product, stock=400, month=12)

        # 600 x 1.3 = 780, but the target level floor is 1200 - 400
        assert restock['amount'] == 800
        assert "Seasonal demand increase" in restock['reasoning']

    def test_stockout_alert_thresholds(self):
        assert stockout_alert({'stock_quantity': 200}, 0, 4) is None

        alert = stockout_alert(
            {'id': "p1", 'name': "N25 Concrete", 'grade': "N25", 'product_type': "concrete", 'stock_quantity': 40},
            0, 4
        )

        assert alert['severity'] == "Critical"
        assert alert['days_until_stockout'] == 1
        assert alert['timeframe'] == "1-2 days"
        assert alert['probability'] == 80
        assert alert['action'].startswith("URGENT")

    def test_demand_spike(self):
        recent = [{'product_id': "p1", 'name': "N25 Concrete", 'quantity': 150}]
        previous = [{'product_id': "p1", 'name': "N25 Concrete", 'quantity': 100}]

        alerts = demand_spike_alerts(recent, previous)

        assert len(alerts) == 1
        assert alerts[0]['probability'] == 70

    def test_no_spike_without_previous_week(self):
        recent = [{'product_id': "p1", 'name': "N25 Concrete", 'quantity': 500}]

        assert demand_spike_alerts(recent, []) == []

    @pytest.mark.parametrize("month,ids", [
        (7, ["weather-seasonal"]),
        (12, ["monsoon-alert"]),
        (4, []),
    ])
    def test_seasonal_alerts(self, month, ids):
        assert [alert['id'] for alert in seasonal_alerts(month)] == ids

    def test_prioritize_weights_and_limit(self):
        alerts = [
            {'id': "a", 'type': "price_optimization", 'probability': 90},
            {'id': "b", 'type': "stockout", 'probability': 80},
            {'id': "c", 'type': "delivery_delay", 'probability': 85},
        ]

        ranked = prioritize_alerts(alerts, limit=2)

        assert [alert['id'] for alert in ranked] == ["b", "c"]
        assert ranked[0]['priority'] == 96.0

    def test_service_combines_sources(self):
        repo = MagicMock()
        low = {
            'id': "p1", 'name': "N20 Concrete", 'grade': "N20", 'product_type': "concrete",
            'stock_quantity': 40, 'normal_price': 220,
        }
        repo.get_published_products_by_stock.return_value = [low]
        repo.get_order_items.return_value = []
        repo.get_orders.return_value = [{'id': f"o{i}"} for i in range(4)]

        alerts = AnalyticsService(repo=repo).get_predictive_alerts(now=datetime(2025, 4, 2, tzinfo=timezone.utc))

        types = {alert['type'] for alert in alerts}
        assert types == {"stockout", "price_optimization", "delivery_delay"}
        assert alerts[0]['type'] == "stockout"
