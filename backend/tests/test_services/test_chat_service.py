"""
Unit tests for the storefront chat assistant: intent analysis, tools and
the Claude tool-use loop (with a fake client)

Author: ReadyMix
Date: 2025-06-12
"""
import json
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from decimal import Decimal

from readymix.core.exceptions import ConfigurationError
from readymix.services.chat_intent import (
    analyze_intent,
    extract_delivery_method,
    extract_grade,
    extract_volume,
    keyword_score,
)
from readymix.services.chat_service import ChatResult, ChatService, limit_history, format_product_context
from readymix.services import chat_tools
from tests.conftest import make_product


class TestIntentAnalysis:

    def test_mortar_markers_win(self):
        analysis = analyze_intent("I need mortar 1:4 for brickwork")

        assert analysis.intent == "mortar_inquiry"
        assert analysis.confidence == 0.9
        assert analysis.extracted['product_type'] == "mortar"
        assert analysis.extracted['mortar_ratio'] == "1:4"
        assert analysis.extracted['grade'] == "M044"
        assert analysis.extracted['application_type'] == "brickwork"

    def test_concrete_message_extracts_details(self):
        analysis = analyze_intent("Price of N25 concrete for 12 m3 with pump")

        assert analysis.intent == "product_search"
        assert analysis.extracted['grade'] == "N25"
        assert analysis.extracted['volume'] == 12.0
        assert analysis.extracted['delivery_method'] == "pump"

    def test_cart_request(self):
        assert analyze_intent("Show my cart").intent == "cart_show"

    def test_order_status(self):
        assert analyze_intent("Where is my order?").intent == "order_status"

    def test_small_talk_is_general(self):
        analysis = analyze_intent("hello there")

        assert analysis.intent == "general_question"
        assert analysis.to_dict()['confidence'] == 0.1

    @pytest.mark.parametrize("message,grade", [
        ("n 20 please", "N20"),
        ("s30 for columns", "S30"),
        ("m054 bags", "M054"),
        ("n99 does not exist", None),
    ])
    def test_extract_grade(self, message, grade):
        assert extract_grade(message) == grade

    @pytest.mark.parametrize("message,method", [
        ("tremie 2 please", "tremie_2"),
        ("underwater pour", "tremie_1"),
        ("standard lorry", "normal"),
        ("no idea", None),
    ])
    def test_extract_delivery_method(self, message, method):
        assert extract_delivery_method(message) == method

    def test_extract_volume(self):
        assert extract_volume("about 5.5 cubic meters") == 5.5
        assert extract_volume("a lot") is None

    def test_keyword_score_caps_at_one(self):
        assert keyword_score("cart", ["cart"]) == 1.0
        assert keyword_score("nothing", ["cart", "basket"]) == 0.0


class TestHistoryAndResult:

    def test_history_keeps_last_ten(self):
        history = [{"role": "user", "content": f"message {i}"} for i in range(12)]

        limited, _ = limit_history(history)

        assert len(limited) == 10
        assert limited[0]['content'] == "message 2"

    def test_history_trimmed_by_tokens_keeps_two(self):
        history = [{"role": "user", "content": "x" * 20000} for _ in range(3)]

        limited, tokens = limit_history(history)

        assert len(limited) == 2
        assert tokens == 10000

    def test_empty_history(self):
        assert limit_history([]) == ([], 0)

    def test_cost_estimate(self):
        result = ChatResult(
            response="ok", intent="general_question", tools_used=[], model="m",
            input_tokens=1_000_000, output_tokens=1_000_000
        )

        assert result.estimated_cost_usd == 1.5

    def test_product_context(self, sample_product):
        context = format_product_context([sample_product])

        assert "N25 Concrete" in context
        assert "Normal: RM250.00" in context
        assert "Pump: RM280.00" in context
        assert format_product_context([]) == "No specific products found for this query."


class TestChatTools:

    @pytest.fixture
    def repo(self):
        repo = MagicMock()
        with patch.object(chat_tools, 'get_product_repo', return_value=repo):
            yield repo

    def test_search_products_caps_limit(self, repo, sample_product):
        repo.find_all.return_value = ([sample_product], 1)

        result = json.loads(chat_tools.search_products(query="N25", limit=50))

        assert result['total'] == 1
        assert result['products'][0]['normal_price'] == 250.0
        assert repo.find_all.call_args.kwargs['limit'] == 10
        assert repo.find_all.call_args.kwargs['status'] == "published"

    def test_calculate_price_with_sst(self, repo, sample_product):
        repo.find_by_id.return_value = sample_product

        result = json.loads(chat_tools.calculate_price(sample_product.id, 10, "pump"))

        assert result['unit_price'] == 280.0
        assert result['subtotal'] == 2800.0
        assert result['tax'] == 168.0
        assert result['total'] == 2968.0

    def test_calculate_price_rejects_zero_volume(self, repo):
        assert "error" in json.loads(chat_tools.calculate_price("p", 0))

    def test_unpublished_product_hidden(self, repo):
        repo.find_by_id.return_value = make_product(status="draft")

        assert "error" in json.loads(chat_tools.get_product_details("p"))

    def test_product_details_prices(self, repo, sample_product):
        repo.find_by_id.return_value = sample_product

        details = json.loads(chat_tools.get_product_details(sample_product.id))

        assert details['prices'] == {'normal': 250.0, 'pump': 280.0}
        assert details['available_delivery_methods'] == ["normal", "pump"]

    def test_check_stock(self, repo):
        repo.get_stock.return_value = {'id': "p", 'name': "N25 Concrete", 'stock_quantity': 0}

        assert json.loads(chat_tools.check_stock("p"))['in_stock'] is False

    def test_execute_tool_errors_are_json(self, repo):
        assert "not found" in json.loads(chat_tools.execute_tool("drop_tables", {}))['error']
        assert "Invalid parameters" in json.loads(chat_tools.execute_tool("check_stock", {'sku': "x"}))['error']


class TestChatService:

    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            ChatService(api_key="", product_repo=MagicMock())

    @patch('readymix.services.chat_service.execute_tool')
    def test_tool_use_loop(self, mock_execute_tool):
        mock_execute_tool.return_value = '{"stock_quantity": 500}'
        usage = SimpleNamespace(input_tokens=100, output_tokens=20)
        client = MagicMock()
        client.messages.create.side_effect = [
            SimpleNamespace(
                stop_reason="tool_use",
                usage=usage,
                content=[SimpleNamespace(type="tool_use", id="tu_1", name="check_stock", input={'product_id': "n25"})]
            ),
            SimpleNamespace(
                stop_reason="end_turn",
                usage=usage,
                content=[SimpleNamespace(type="text", text="We have 500 m3 of N25 in stock.")]
            ),
        ]
        product_repo = MagicMock()
        product_repo.find_all.return_value = ([make_product(stock_quantity=0)], 1)

        service = ChatService(api_key="", product_repo=product_repo, client=client)
        result = service.process_query(
            "Do you have N25 concrete?",
            history=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "Hello!"}]
        )

        assert result.response == "We have 500 m3 of N25 in stock."
        assert result.intent == "product_search"
        assert result.tools_used == ["check_stock"]
        assert result.input_tokens == 200
        assert result.output_tokens == 40
        # 2 history + question + assistant tool call + tool result
        assert result.context_messages == 5
        mock_execute_tool.assert_called_once_with("check_stock", {'product_id': "n25"})

    def test_empty_answer_gets_apology(self):
        client = MagicMock()
        client.messages.create.return_value = SimpleNamespace(
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=1, output_tokens=1),
            content=[]
        )
        product_repo = MagicMock()
        product_repo.find_all.return_value = ([], 0)

        result = ChatService(api_key="", product_repo=product_repo, client=client).process_query("hello")

        assert result.response.startswith("Sorry")

    def test_context_retries_without_grade(self):
        product_repo = MagicMock()
        product_repo.find_all.side_effect = [([], 0), ([make_product()], 1)]
        service = ChatService(api_key="", product_repo=product_repo, client=MagicMock())

        products = service.context_products(analyze_intent("S45 concrete"))

        assert len(products) == 1
        assert product_repo.find_all.call_count == 2
        assert 'grade' not in product_repo.find_all.call_args.kwargs
