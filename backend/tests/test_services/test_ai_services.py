"""
Unit tests for the Claude-backed comparison and insights services

The model is always mocked; what matters is prompt handling, response
parsing and the deterministic fallbacks.

Author: ReadyMix
Date: 2025-06-11
"""
import json
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock
from datetime import datetime, timezone
from decimal import Decimal

import anthropic
import httpx

from readymix.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from readymix.services.ai_text_client import AITextClient
from readymix.services.ai_comparison_service import (
    AIComparisonService,
    fallback_comparison,
    parse_comparison,
)
from readymix.services.insights_service import (
    InsightsService,
    calculate_insight_metrics,
    fallback_insights,
    parse_insights,
)
from tests.conftest import make_product

NOW = datetime(2025, 6, 15, 9, 0, tzinfo=timezone.utc)


def timeout_error():
    return anthropic.APITimeoutError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))


class TestAITextClient:

    def test_missing_key_raises_configuration_error(self):
        client = AITextClient(api_key="")

        assert client.configured is False
        with pytest.raises(ConfigurationError):
            client.generate("hello")

    def test_generate_joins_text_blocks(self):
        fake = MagicMock()
        fake.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text="Hello "), SimpleNamespace(type="tool_use"), SimpleNamespace(text="world")],
            usage=SimpleNamespace(input_tokens=10, output_tokens=4)
        )

        text = AITextClient(api_key="", client=fake).generate("hi", max_tokens=50)

        assert text == "Hello world"
        kwargs = fake.messages.create.call_args.kwargs
        assert kwargs['max_tokens'] == 50
        assert kwargs['messages'] == [{"role": "user", "content": "hi"}]


class TestComparison:

    @pytest.fixture
    def products(self):
        return {
            "n20": make_product(id="n20", name="N20 Concrete", grade="N20", normal_price=Decimal('220')),
            "n25": make_product(id="n25", name="N25 Concrete", grade="N25", normal_price=Decimal('250')),
        }

    def _service(self, products, ai_client=None):
        repo = MagicMock()
        repo.find_by_ids.side_effect = lambda ids: {i: products[i] for i in ids if i in products}
        return AIComparisonService(product_repo=repo, ai_client=ai_client or MagicMock())

    @pytest.mark.parametrize("ids", [[], ["n20"], ["n20", "n20"], ["a", "b", "c", "d", "e"]])
    def test_requires_two_to_four_products(self, products, ids):
        with pytest.raises(ValidationError):
            self._service(products).compare(ids)

    def test_missing_product(self, products):
        with pytest.raises(NotFoundError):
            self._service(products).compare(["n20", "ghost"])

    def test_ai_response_is_parsed_and_capped(self, products):
        payload = {
            'summary': "N25 is stronger, N20 is cheaper.",
            'keyDifferences': ["Strength", "Price"],
            'recommendations': [
                {'scenario': f"s{i}", 'recommendedProduct': "N25 Concrete", 'reason': "r"} for i in range(6)
            ],
            'useCases': [{'product': "N20 Concrete", 'bestFor': ["Slabs"]}],
            'costAnalysis': "N20 saves RM30 per m3.",
            'insights': ["Tip"],
        }
        ai_client = MagicMock()
        ai_client.generate.return_value = f"Sure! Here it is:\n{json.dumps(payload)}\nThanks"

        result = self._service(products, ai_client).compare(["n20", "n25"])

        assert result['source'] == "ai"
        assert result['summary'] == payload['summary']
        assert len(result['recommendations']) == 4
        assert result['metadata']['products_analyzed'] == 2

    @pytest.mark.parametrize("failure", [
        ConfigurationError("AI service not configured"),
        timeout_error(),
    ])
    def test_fallback_when_ai_unavailable(self, products, failure):
        ai_client = MagicMock()
        ai_client.generate.side_effect = failure

        result = self._service(products, ai_client).compare(["n20", "n25"])

        assert result['source'] == "fallback"
        assert result['recommendations'][0]['recommendedProduct'] == "N25 Concrete"

    def test_fallback_when_no_json(self, products):
        ai_client = MagicMock()
        ai_client.generate.return_value = "I cannot compare these."

        result = self._service(products, ai_client).compare(["n20", "n25"])

        assert result['source'] == "fallback"

    def test_fallback_content(self, products):
        result = fallback_comparison([products["n20"], products["n25"]])

        assert "Price range: RM220.00-250.00 per cubic meter" in result['keyDifferences']
        assert "Grade variations: N20, N25 affecting strength capacity" in result['keyDifferences']
        assert result['recommendations'] == [
            {
                'scenario': "Structural work",
                'recommendedProduct': "N25 Concrete",
                'reason': "N25 grade gives the highest compressive strength",
            },
            {
                'scenario': "Budget projects",
                'recommendedProduct': "N20 Concrete",
                'reason': "Lowest price at RM220.00 per m3",
            },
        ]
        assert result['useCases'][1]['bestFor'][0] == "Beams and columns"

    def test_partial_json_is_completed(self, products):
        result = parse_comparison('{"summary": "Short"}', list(products.values()))

        assert result['summary'] == "Short"
        assert result['keyDifferences']
        assert len(result['recommendations']) == 2
        assert result['costAnalysis'] == "Cost analysis unavailable."

    def test_broken_json(self, products):
        assert parse_comparison('{"summary": ', list(products.values())) is None


class TestInsights:

    def _data(self, **overrides):
        data = {
            'recent_orders': [
                {'user_id': "u1", 'total': 1000, 'payment_status': 'paid'},
                {'user_id': "u2", 'total': 500, 'payment_status': 'pending'},
            ],
            'monthly_orders': [{'total': 1000}, {'total': 2000}],
            'recent_items': [
                {'name': "N25 Concrete", 'quantity': 10, 'created_at': datetime(2025, 6, 14, 8, tzinfo=timezone.utc)},
                {'name': "N25 Concrete", 'quantity': 6, 'created_at': datetime(2025, 6, 13, 8, tzinfo=timezone.utc)},
                {'name': "Mortar M054", 'quantity': 2, 'created_at': datetime(2025, 6, 12, 15, tzinfo=timezone.utc)},
            ],
            'previous_items': [{'name': "N25 Concrete", 'quantity': 8}],
            'customers': [{'user_id': "u1"}, {'user_id': "u1"}],
            'low_stock': [],
            'high_stock': [],
        }
        data.update(overrides)
        return data

    def test_metrics(self):
        metrics = calculate_insight_metrics(self._data())

        assert metrics['recent_revenue'] == 1000
        assert metrics['monthly_revenue'] == 3000
        assert metrics['average_order_value'] == 500
        assert metrics['weekly_growth'] == 200.0
        assert metrics['top_products'][0] == {'name': "N25 Concrete", 'quantity': 16}
        assert metrics['grade_trends'].startswith("N25: +100.0%")
        assert metrics['unique_customers'] == 1
        assert metrics['orders_per_customer'] == 2.0
        assert metrics['peak_hour'] == 8
        assert metrics['average_order_size'] == 6.0

    def test_parse_clamps_confidence(self):
        text = json.dumps([
            {'id': "a", 'confidence': 30},
            {'id': "b", 'confidence': "very"},
            {'id': "c", 'confidence': 99},
            "not an insight",
        ])

        insights = parse_insights(f"Insights:\n{text}", NOW)

        assert [i['confidence'] for i in insights] == [60, 75.0, 95]
        assert all(i['timestamp'] == NOW.isoformat() for i in insights)

    @pytest.mark.parametrize("text", ["no json here", "[]", "[1, 2"])
    def test_parse_unusable(self, text):
        assert parse_insights(text, NOW) is None

    def test_fallback_covers_stock_and_season(self):
        data = self._data(
            low_stock=[{'name': "S30 Concrete", 'stock_quantity': 20}],
            high_stock=[{'name': "N10 Concrete", 'grade': "N10", 'stock_quantity': 2500}],
        )
        metrics = calculate_insight_metrics(data)

        insights = fallback_insights(data, metrics, NOW)

        ids = [insight['id'] for insight in insights]
        assert ids == [
            "sales-performance",
            "product-performance",
            "inventory-management",
            "customer-behavior",
            "seasonal-rainy",
            "overstock-optimization",
        ]
        assert insights[2]['impact'] == "high"

    def test_generate_falls_back_without_ai(self):
        repo = MagicMock()
        repo.get_orders.return_value = []
        repo.get_order_items.return_value = []
        repo.get_published_products_by_stock.return_value = []
        ai_client = MagicMock()
        ai_client.generate.side_effect = ConfigurationError("AI service not configured")

        result = InsightsService(repo=repo, ai_client=ai_client).generate(now=NOW)

        assert result['source'] == "fallback"
        assert [i['id'] for i in result['insights']] == ["sales-performance", "customer-behavior", "seasonal-rainy"]

    def test_generate_uses_ai(self):
        repo = MagicMock()
        repo.get_orders.return_value = []
        repo.get_order_items.return_value = []
        repo.get_published_products_by_stock.return_value = []
        ai_client = MagicMock()
        ai_client.generate.return_value = json.dumps([{'id': "x", 'title': "T", 'confidence': 80}])

        result = InsightsService(repo=repo, ai_client=ai_client).generate(now=NOW)

        assert result == {
            'insights': [{'id': "x", 'title': "T", 'confidence': 80, 'timestamp': NOW.isoformat()}],
            'source': "ai",
        }
