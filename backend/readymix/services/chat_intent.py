"""
Chat intent analysis

Keyword and regex classification of customer chat messages for the
concrete/mortar store. The result is passed to the model as context and
decides which products are preloaded into the system prompt.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

INTENTS = (
    "product_search",
    "grade_inquiry",
    "mortar_inquiry",
    "price_inquiry",
    "delivery_inquiry",
    "stock_inquiry",
    "recommendation",
    "comparison_request",
    "application_inquiry",
    "technical_question",
    "cart_show",
    "order_status",
    "general_question",
)

VALID_GRADES = ("N10", "N15", "N20", "N25", "S30", "S35", "S40", "S45", "M034", "M044", "M054", "M064")
MORTAR_RATIO_CODES = {"3": "M034", "4": "M044", "5": "M054", "6": "M064"}

PRODUCT_KEYWORDS = [
    "concrete", "mortar", "mix", "cement", "grade", "strength", "foundation",
    "structural", "building", "construction", "ready mix", "premix", "readymix",
    "concrete mix", "building materials", "slab", "beam", "column", "footing",
    "driveway", "floor", "patio", "sidewalk", "pavement", "pathway", "basement",
]

GRADE_KEYWORDS = [
    "n10", "n15", "n20", "n25", "s30", "s35", "s40", "s45",
    "m034", "m044", "m054", "m064",
    "grade", "strength", "class", "series", "mpa", "n/mm2", "megapascal", "newton",
    "low grade", "medium grade", "high grade", "standard grade", "premium grade",
    "residential grade", "commercial grade", "structural grade",
    "mortar", "cement mortar", "mortar mix", "mortar ratio", "1:3", "1:4", "1:5", "1:6",
]

PRICE_KEYWORDS = [
    "price", "cost", "rate", "how much", "expensive", "cheap", "budget", "per m3",
    "per cubic", "per cube", "rm", "ringgit", "quotation", "quote", "estimate",
    "pricing", "charges", "fees", "affordable", "economical", "value", "total cost",
    "unit price",
]

TECHNICAL_KEYWORDS = [
    "specification", "spec", "datasheet", "properties", "technical data",
    "compressive strength", "workability", "slump", "aggregate", "cement content",
    "mix design", "curing", "setting time", "durability", "waterproof", "admixture",
    "additive", "water cement ratio", "consistency", "density", "porosity",
    "permeability", "shrinkage", "expansion", "freeze thaw", "chemical resistance",
    "abrasion resistance",
]

DELIVERY_INQUIRY_KEYWORDS = [
    "delivery", "deliver", "transport", "shipping", "schedule", "when", "location",
    "area", "distance", "minimum order", "lead time", "same day", "next day",
    "urgent", "rush", "timing", "availability", "coverage area", "service area",
    "delivery fee", "freight",
]

STOCK_KEYWORDS = [
    "available", "stock", "inventory", "in stock", "supply", "shortage",
    "availability", "ready", "immediate", "on hand", "reserve", "backorder",
    "out of stock", "restock", "replenish",
]

APPLICATION_KEYWORDS = [
    "residential", "home", "house", "driveway", "garage", "patio", "sidewalk",
    "pathway", "basement", "foundation", "slab",
    "commercial", "office", "retail", "warehouse", "factory", "industrial",
    "shopping center", "building",
    "bridge", "tunnel", "road", "highway", "airport", "port", "infrastructure",
    "public works",
    "beam", "column", "wall", "footing", "pile", "deck", "staircase", "ramp",
    "curb", "gutter",
]

COMPARISON_KEYWORDS = ["compare", "vs", "versus", "difference", "better", "best"]
RECOMMENDATION_KEYWORDS = ["recommend", "suggest", "best", "suitable", "which", "what should"]

CART_KEYWORDS = [
    "cart", "my cart", "show cart", "view cart", "shopping cart", "basket",
    "my basket", "what's in my cart", "items in cart", "what did i add",
    "review my cart", "shopping list",
]

ORDER_STATUS_KEYWORDS = [
    "order", "orders", "my order", "my orders", "order status", "order history",
    "order details", "recent order", "last order", "past orders", "track order",
    "track my order", "order tracking", "delivery status", "shipping status",
    "where is my order", "has my order shipped", "is my order delivered",
    "when will my order arrive", "order shipped", "order delivered", "order cancelled",
]

DELIVERY_METHOD_KEYWORDS = {
    "normal": ["normal", "standard", "regular", "truck", "lorry", "mixer truck"],
    "pump": ["pump", "pumped", "pumping", "boom pump", "line pump"],
    "tremie": ["tremie", "underwater", "special delivery", "difficult access"],
}

MORTAR_MARKERS = [
    "mortar", "ratio", "1:", "brickwork", "blockwork", "masonry", "plastering",
    "pointing", "rendering", "m034", "m044", "m054", "m064",
]

CONCRETE_MARKERS = [
    "concrete", "grade", "n15", "n20", "n25", "n30", "s30", "s35", "s40", "s45",
    "ready mix", "readymix", "pump", "tremie", "structural", "foundation", "slab",
]

MORTAR_APPLICATIONS = {
    "brickwork": ["brick", "brickwork", "brick wall"],
    "blockwork": ["block", "blockwork", "concrete block"],
    "plastering": ["plaster", "plastering", "render", "rendering"],
    "pointing": ["pointing", "repointing", "joint"],
    "bedding": ["bedding", "laying", "setting"],
}

APPLICATION_TYPES = {
    "residential": ["residential", "home", "house", "driveway", "garage", "patio"],
    "commercial": ["commercial", "office", "retail", "warehouse", "factory", "industrial"],
    "infrastructure": ["bridge", "tunnel", "road", "highway", "airport", "port"],
    "structural": ["beam", "column", "structural", "load bearing", "reinforced"],
}

GRADE_PATTERNS = [
    re.compile(r"\b([ns])\s*(\d{2})\b", re.IGNORECASE),
    re.compile(r"\b(m)(\d{3})\b", re.IGNORECASE),
    re.compile(r"\b(mortar)\s+1:([3-6])\b", re.IGNORECASE),
]
VOLUME_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(?:m3|m³|cubic\s*met(?:er|re)s?|(?:meter|metre)s?\s*cube|cube)",
    re.IGNORECASE
)
MORTAR_RATIO_PATTERN = re.compile(r"(1:[3-6])")


@dataclass
class IntentAnalysis:
    intent: str
    confidence: float
    extracted: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'intent': self.intent,
            'confidence': round(self.confidence, 2),
            'extracted': self.extracted,
        }


def keyword_score(message: str, keywords: List[str]) -> float:
    """Share of keywords present, whole-word hits weighing 1.5; capped at 1"""
    score = 0.0
    for keyword in keywords:
        if keyword in message:
            whole_word = re.search(rf"\b{re.escape(keyword)}\b", message) is not None
            score += (1.5 if whole_word else 1.0) / len(keywords)
    return min(score, 1.0)


def extract_grade(message: str) -> Optional[str]:
    for pattern in GRADE_PATTERNS:
        for match in pattern.finditer(message):
            prefix, digits = match.group(1).lower(), match.group(2)
            if prefix == "mortar":
                grade = MORTAR_RATIO_CODES[digits]
            else:
                grade = f"{prefix.upper()}{digits}"
            if grade in VALID_GRADES:
                return grade
    return None


def extract_delivery_method(message: str) -> Optional[str]:
    for method, keywords in DELIVERY_METHOD_KEYWORDS.items():
        if any(keyword in message for keyword in keywords):
            if method != "tremie":
                return method
            for n in ("1", "2", "3"):
                if f"tremie {n}" in message or f"tremie{n}" in message:
                    return f"tremie_{n}"
            return "tremie_1"
    return None


def extract_volume(message: str) -> Optional[float]:
    match = VOLUME_PATTERN.search(message)
    return float(match.group(1)) if match else None


def _first_matching(message: str, table: Dict[str, List[str]]) -> Optional[str]:
    for name, keywords in table.items():
        if any(keyword in message for keyword in keywords):
            return name
    return None


def extract_data(message: str) -> Dict[str, Any]:
    lower = message.lower()
    data: Dict[str, Any] = {'query': message.strip()}

    if "concrete" in lower or "ready mix" in lower:
        data['product_type'] = "concrete"
    elif "mortar" in lower:
        data['product_type'] = "mortar"

    grade = extract_grade(lower)
    if grade:
        data['grade'] = grade

    delivery_method = extract_delivery_method(lower)
    if delivery_method:
        data['delivery_method'] = delivery_method

    volume = extract_volume(lower)
    if volume is not None:
        data['volume'] = volume

    application = _first_matching(lower, APPLICATION_TYPES)
    if application:
        data['application_type'] = application

    return data


def analyze_intent(message: str) -> IntentAnalysis:
    """
    Classify a chat message

    Mortar markers win first, then concrete markers; anything else is
    scored per intent by keyword density with question-word boosts.
    """
    lower = message.lower()
    data = extract_data(message)

    if any(marker in lower for marker in MORTAR_MARKERS):
        data['product_type'] = "mortar"
        ratio = MORTAR_RATIO_PATTERN.search(lower)
        if ratio:
            data['mortar_ratio'] = ratio.group(1)
        application = _first_matching(lower, MORTAR_APPLICATIONS)
        if application:
            data['application_type'] = application
        return IntentAnalysis("mortar_inquiry", 0.9, data)

    if any(marker in lower for marker in CONCRETE_MARKERS):
        data['product_type'] = "concrete"
        return IntentAnalysis("product_search", 0.85, data)

    scores = {
        'product_search': keyword_score(lower, PRODUCT_KEYWORDS) * 1.2,
        'grade_inquiry': keyword_score(lower, GRADE_KEYWORDS) * 1.5,
        'price_inquiry': keyword_score(lower, PRICE_KEYWORDS) * 1.3,
        'delivery_inquiry': keyword_score(lower, DELIVERY_INQUIRY_KEYWORDS) * 1.1,
        'technical_question': keyword_score(lower, TECHNICAL_KEYWORDS),
        'stock_inquiry': keyword_score(lower, STOCK_KEYWORDS) * 1.1,
        'application_inquiry': keyword_score(lower, APPLICATION_KEYWORDS),
        'comparison_request': keyword_score(lower, COMPARISON_KEYWORDS) * 0.9,
        'recommendation': keyword_score(lower, RECOMMENDATION_KEYWORDS) * 0.9,
        'general_question': 0.1,
        'cart_show': keyword_score(lower, CART_KEYWORDS) * 2.0,
        'order_status': keyword_score(lower, ORDER_STATUS_KEYWORDS) * 2.0,
    }

    if any(word in lower for word in ("what", "which", "how")):
        if any(keyword in lower for keyword in GRADE_KEYWORDS):
            scores['grade_inquiry'] *= 1.5
        if any(keyword in lower for keyword in PRICE_KEYWORDS):
            scores['price_inquiry'] *= 1.3
        if any(keyword in lower for keyword in TECHNICAL_KEYWORDS):
            scores['technical_question'] *= 1.4
        if any(keyword in lower for keyword in APPLICATION_KEYWORDS):
            scores['application_inquiry'] *= 1.3

    if any(word in lower for word in ("compare", "vs", "difference")):
        scores['comparison_request'] *= 2.0

    if data.get('grade'):
        scores['grade_inquiry'] *= 1.8

    # max() keeps the first of equal scores
    intent = max(scores, key=lambda name: scores[name])
    return IntentAnalysis(intent, min(scores[intent], 1.0), data)
