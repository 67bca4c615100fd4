"""
Claude Chat Service for the ReadyMix storefront

Answers customer questions about concrete and mortar products with Claude
(Anthropic).

Features:
- Intent analysis to preload relevant in-stock products
- 4 catalog tools (search, details, price calculation, stock)
- Tool use loop for multi-step questions
- Conversation history trimming to control cost

Author: ReadyMix
Date: 2025-06-07
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple

import anthropic

from readymix.core.config import settings
from readymix.core.exceptions import ConfigurationError
from readymix.domain.product import Product
from readymix.repositories.product_repository import ProductRepository
from readymix.services.chat_intent import IntentAnalysis, analyze_intent
from readymix.services.chat_tools import TOOLS, execute_tool

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

MAX_TOKENS = 4096

# Context limits to control costs
MAX_HISTORY_MESSAGES = 10
MAX_HISTORY_TOKENS = 8000
MAX_CONTEXT_PRODUCTS = 8


def estimate_tokens(text: str) -> int:
    """Rough token estimation: ~4 chars per token."""
    return len(text) // 4


def limit_history(history: List[Dict[str, str]]) -> Tuple[List[Dict[str, str]], int]:
    """
    Limit conversation history to prevent context explosion.

    Strategy:
    1. Keep at most MAX_HISTORY_MESSAGES recent messages
    2. Further trim if estimated tokens exceed MAX_HISTORY_TOKENS

    Returns:
        Tuple of (limited_history, estimated_tokens)
    """
    if not history:
        return [], 0

    limited = history[-MAX_HISTORY_MESSAGES:] if len(history) > MAX_HISTORY_MESSAGES else history.copy()

    total_tokens = sum(estimate_tokens(msg.get("content", "")) for msg in limited)

    while total_tokens > MAX_HISTORY_TOKENS and len(limited) > 2:
        # Remove oldest messages (keep at least 2 for context)
        removed = limited.pop(0)
        total_tokens -= estimate_tokens(removed.get("content", ""))

    if len(history) > len(limited):
        logger.info(f"History trimmed: {len(history)} -> {len(limited)} messages (~{total_tokens} tokens)")

    return limited, total_tokens


def format_product_context(products: List[Product]) -> str:
    if not products:
        return "No specific products found for this query."

    lines = []
    for p in products:
        prices = []
        for label, value in (
            ("Normal", p.normal_price),
            ("Pump", p.pump_price),
            ("Tremie 1", p.tremie_1_price),
            ("Tremie 2", p.tremie_2_price),
            ("Tremie 3", p.tremie_3_price),
        ):
            if value:
                prices.append(f"{label}: RM{float(value):.2f}")
        lines.append(
            f"- {p.name} (id {p.id}, Grade {p.grade or '-'}): {p.description or ''}\n"
            f"  Pricing: {', '.join(prices) or 'on request'} per {p.unit or 'm3'}\n"
            f"  Stock: {p.stock_quantity}"
        )
    return "Relevant products from our catalog:\n" + "\n\n".join(lines)


def get_system_prompt(products: List[Product], analysis: IntentAnalysis) -> str:
    """Generate the system prompt with today's date, intent and product context."""
    today = datetime.now().strftime("%Y-%m-%d")

    return f"""You are the customer assistant of a Malaysian ready-mix concrete and mortar supplier.

## Today
{today}

## Products
- Concrete N-series: N10, N15, N20, N25 (residential and light commercial)
- Concrete S-series: S30, S35, S40, S45 (structural and heavy-duty)
- Mortar by cement:sand ratio: 1:3 (M034), 1:4 (M044), 1:5 (M054), 1:6 (M064)

## Delivery methods
- Normal: standard mixer truck
- Pump: concrete pump for hard-to-reach pours
- Tremie 1, 2, 3: underwater or difficult-access placement

## Business rules
- Prices are in Malaysian Ringgit (RM) per cubic meter (m3), one flat price per delivery method
- 6% SST applies to orders
- Freight is charged by total ordered volume; additional services are charged per m3

## Customer intent
- Intent: {analysis.intent}
- Confidence: {round(analysis.confidence * 100)}%
- Extracted: {json.dumps(analysis.extracted, ensure_ascii=False)}

## Catalog context
{format_product_context(products)}

## Guidelines
1. Only quote prices and stock returned by the tools or listed above; never invent products
2. Explain grade differences clearly (N-series for general use, S-series for structural)
3. Suggest a delivery method that fits the site
4. Ask about the application and volume when they are missing
5. Keep answers short, friendly and professional
"""


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class ChatResult:
    """Result of processing a chat query"""
    response: str
    intent: str
    tools_used: List[str]
    model: str
    input_tokens: int
    output_tokens: int
    estimated_cost_usd: float = 0.0
    context_messages: int = 0

    def __post_init__(self):
        # Claude Haiku pricing: $0.25/1M input, $1.25/1M output
        input_cost = (self.input_tokens / 1_000_000) * 0.25
        output_cost = (self.output_tokens / 1_000_000) * 1.25
        self.estimated_cost_usd = round(input_cost + output_cost, 6)


# ============================================================================
# MAIN SERVICE CLASS
# ============================================================================

class ChatService:
    """
    Service for answering storefront questions using Claude AI.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        product_repo: Optional[ProductRepository] = None,
        client: Optional[Any] = None
    ):
        api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        if not api_key and client is None:
            raise ConfigurationError("Chat service not configured")

        self.client = client or anthropic.Anthropic(api_key=api_key)
        self.model = settings.CLAUDE_MODEL
        self.product_repo = product_repo or ProductRepository()
        logger.info(f"ChatService initialized with model: {self.model}")

    def context_products(self, analysis: IntentAnalysis) -> List[Product]:
        """In-stock published products matching the extracted type/grade"""
        extracted = analysis.extracted
        products, _ = self.product_repo.find_all(
            status="published",
            product_type=extracted.get('product_type'),
            grade=extracted.get('grade'),
            limit=MAX_CONTEXT_PRODUCTS * 2
        )
        if not products and extracted.get('grade'):
            products, _ = self.product_repo.find_all(
                status="published",
                product_type=extracted.get('product_type'),
                limit=MAX_CONTEXT_PRODUCTS * 2
            )
        return [p for p in products if p.is_in_stock][:MAX_CONTEXT_PRODUCTS]

    def process_query(
        self,
        message: str,
        history: Optional[List[Dict[str, str]]] = None
    ) -> ChatResult:
        """
        Answer a customer message.

        Args:
            message: Customer's message
            history: Optional conversation history (list of {"role": "user"|"assistant", "content": "..."})

        Returns:
            ChatResult with response text and metadata
        """
        tools_used = []
        total_input_tokens = 0
        total_output_tokens = 0
        history_tokens = 0

        analysis = analyze_intent(message)
        system_prompt = get_system_prompt(self.context_products(analysis), analysis)

        messages = []
        if history:
            limited_history, history_tokens = limit_history(history)
            for msg in limited_history:
                messages.append({
                    "role": msg["role"],
                    "content": msg["content"]
                })

        messages.append({
            "role": "user",
            "content": message
        })

        logger.info(
            f"Processing query ({analysis.intent}): {message[:100]}... "
            f"[{len(messages)} messages, ~{history_tokens + estimate_tokens(message)} tokens]"
        )

        response = self.client.messages.create(
            model=self.model,
            max_tokens=MAX_TOKENS,
            system=system_prompt,
            tools=TOOLS,
            messages=messages
        )

        total_input_tokens += response.usage.input_tokens
        total_output_tokens += response.usage.output_tokens

        # Tool use loop
        while response.stop_reason == "tool_use":
            tool_use_blocks = [
                block for block in response.content
                if block.type == "tool_use"
            ]

            tool_results = []
            for tool_use in tool_use_blocks:
                logger.info(f"Executing tool: {tool_use.name} with input: {tool_use.input}")
                tools_used.append(tool_use.name)

                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": tool_use.id,
                    "content": execute_tool(tool_use.name, tool_use.input)
                })

            messages.append({
                "role": "assistant",
                "content": response.content
            })
            messages.append({
                "role": "user",
                "content": tool_results
            })

            response = self.client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                system=system_prompt,
                tools=TOOLS,
                messages=messages
            )

            total_input_tokens += response.usage.input_tokens
            total_output_tokens += response.usage.output_tokens

        text_content = None
        for block in response.content:
            if hasattr(block, 'text'):
                text_content = block.text
                break

        if not text_content:
            text_content = "Sorry, I couldn't put together an answer. Could you rephrase your question?"

        logger.info(f"Query completed. Tools used: {tools_used}, Tokens: {total_input_tokens}/{total_output_tokens}")

        return ChatResult(
            response=text_content,
            intent=analysis.intent,
            tools_used=tools_used,
            model=self.model,
            input_tokens=total_input_tokens,
            output_tokens=total_output_tokens,
            context_messages=len(messages)
        )


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

_service_instance: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """
    Get the singleton chat service instance.

    Raises:
        ConfigurationError: ANTHROPIC_API_KEY is not set
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = ChatService()
    return _service_instance
