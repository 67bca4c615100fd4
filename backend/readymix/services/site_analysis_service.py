"""
Site Analysis Service
Turns Vision labels from a construction-site photo into a project estimate:
project type, concrete volume, matching product, costs per delivery method
and practical recommendations.

All estimation rules are plain functions over label lists.

Author: ReadyMix
Date: 2025-06-08
"""
import logging
import math
from typing import Any, Dict, List, Optional

from readymix.connectors.google_vision_connector import GoogleVisionConnector, VisionResult
from readymix.domain.product import Product
from readymix.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

SAFETY_MARGIN = 0.15

PROJECT_PATTERNS = {
    'foundation': {
        'keywords': [
            "foundation", "footing", "basement", "ground", "excavation", "concrete foundation",
            "building foundation", "house foundation", "strip foundation", "pad foundation",
            "pile", "deep foundation", "concrete footing", "base", "groundwork", "raft foundation",
        ],
        'base_volume': 35, 'multiplier': 1.2, 'confidence': "high",
    },
    'slab': {
        'keywords': [
            "slab", "floor", "concrete floor", "ground floor", "patio", "concrete slab",
            "floor slab", "suspended slab", "garage floor", "industrial floor", "flooring",
            "reinforced slab", "flat slab",
        ],
        'base_volume': 20, 'multiplier': 1.0, 'confidence': "high",
    },
    'column': {
        'keywords': [
            "column", "pillar", "post", "support", "concrete column", "structural column",
            "concrete pillar", "structural support", "vertical support",
        ],
        'base_volume': 8, 'multiplier': 1.0, 'confidence': "high",
    },
    'beam': {
        'keywords': [
            "beam", "lintel", "structural beam", "concrete beam", "girder", "joist",
            "grade beam", "tie beam", "plinth beam", "structural member",
        ],
        'base_volume': 10, 'multiplier': 1.2, 'confidence': "high",
    },
    'wall': {
        'keywords': [
            "wall", "retaining wall", "barrier", "boundary", "concrete wall", "shear wall",
            "basement wall", "boundary wall", "precast wall", "load bearing wall",
        ],
        'base_volume': 15, 'multiplier': 1.3, 'confidence': "medium",
    },
    'stairs': {
        'keywords': [
            "stairs", "steps", "staircase", "concrete stairs", "stairway", "concrete steps",
            "stair landing",
        ],
        'base_volume': 6, 'multiplier': 1.4, 'confidence': "medium",
    },
    'driveway': {
        'keywords': [
            "driveway", "parking", "carport", "concrete driveway", "parking lot",
            "access road", "pavement", "concrete pavement",
        ],
        'base_volume': 12, 'multiplier': 1.1, 'confidence': "medium",
    },
    'pool': {
        'keywords': [
            "pool", "swimming", "water feature", "swimming pool", "concrete pool",
            "water tank", "reservoir", "pool deck",
        ],
        'base_volume': 50, 'multiplier': 1.5, 'confidence': "medium",
    },
    'highrise': {
        'keywords': [
            "high-rise building", "skyscraper", "tower", "commercial building",
            "office building", "apartment building", "multi-story", "high-rise",
            "concrete building", "building construction", "concrete structure",
        ],
        'base_volume': 100, 'multiplier': 2.0, 'confidence': "high",
    },
    'infrastructure': {
        'keywords': [
            "bridge", "tunnel", "highway", "infrastructure", "public works", "overpass",
            "underpass", "civil engineering", "heavy construction", "mass concrete",
        ],
        'base_volume': 200, 'multiplier': 3.0, 'confidence': "high",
    },
}

SIZE_INDICATORS = [
    "large", "big", "massive", "huge", "extensive", "major", "complex",
    "multi-story", "high-rise", "commercial", "industrial", "infrastructure",
]

CONSTRUCTION_INDICATORS = [
    "building", "construction", "concrete", "cement", "structure", "site", "work",
    "project", "development", "engineering", "architectural", "structural",
    "industrial", "commercial", "residential",
]

GRADE_LABEL_PATTERNS = {
    "N10": ["blinding", "filling", "leveling", "non-structural", "base"],
    "N15": ["footpath", "kerb", "light duty", "residential", "small"],
    "N20": ["driveway", "general", "versatile", "standard", "residential", "floor"],
    "N25": ["structural", "commercial", "column", "beam", "load bearing"],
    "S30": ["high strength", "suspended", "precast", "structural", "commercial"],
    "S35": ["high-rise", "tower", "skyscraper", "infrastructure", "heavy duty"],
}
HIGHRISE_LABELS = ("high-rise", "skyscraper", "tower")
HIGH_STRENGTH_GRADES = ("S30", "S35")

RECOMMENDED_GRADES = {
    'foundation': ["N25", "N30", "S30"],
    'slab': ["N20", "N25"],
    'driveway': ["N20", "N25"],
    'wall': ["N20", "N25", "S30"],
    'column': ["N25", "S30", "S35"],
    'beam': ["S30", "S35"],
    'stairs': ["N20", "N25"],
    'pool': ["N25", "S30"],
    'general': ["N20", "N25"],
}

# Pour days per 10 m3
TIMELINE_DAYS = {
    'foundation': 3, 'slab': 2, 'driveway': 1, 'wall': 2, 'column': 1,
    'beam': 2, 'stairs': 3, 'pool': 5, 'general': 2,
}

DELIVERY_OPTIONS = [
    ("normal_price", "Standard Delivery", "Best for accessible sites"),
    ("pump_price", "Pump Delivery", "High-rise or restricted access"),
    ("tremie_1_price", "Tremie Method 1", "Underwater/specialized placement"),
    ("tremie_2_price", "Tremie Method 2", "Deep foundation work"),
    ("tremie_3_price", "Tremie Method 3", "Marine construction"),
]


def _round1(value: float) -> float:
    return round(value * 10) / 10


def _any_label(labels: List[str], *needles: str) -> bool:
    return any(needle in label for label in labels for needle in needles)


# ============================================================================
# Quantity estimation
# ============================================================================

def score_project_types(labels: List[str]) -> List[Dict[str, Any]]:
    """
    Score each project type against the labels, best first

    +1 per keyword contained in any label, +0.5 when a label equals the
    keyword, +0.3 for multi-word keywords
    """
    matches = []
    for project_type, pattern in PROJECT_PATTERNS.items():
        score = 0.0
        for keyword in pattern['keywords']:
            if any(keyword in label for label in labels):
                score += 1
                if keyword in labels:
                    score += 0.5
                if " " in keyword:
                    score += 0.3
        if score > 0:
            matches.append({'type': project_type, 'score': round(score, 2), 'pattern': pattern})

    matches.sort(key=lambda match: match['score'], reverse=True)
    return matches


def estimate_quantity(labels: List[str], object_count: int) -> Dict[str, Any]:
    labels = [label.lower() for label in labels]
    matches = score_project_types(labels)

    if matches:
        best = matches[0]
        pattern = best['pattern']
        volume = float(pattern['base_volume'])
        confidence_level = pattern['confidence']
        project_type = best['type']
        reasoning = f"{project_type.capitalize()} project detected (score {best['score']})"

        size_indicators = len([label for label in labels if any(i in label for i in SIZE_INDICATORS)])
        if object_count > 15 or size_indicators > 2:
            volume *= 2.5
            reasoning += " - Large scale complex project"
            confidence_level = "high"
        elif object_count > 8 or size_indicators > 1:
            volume *= 1.8
            reasoning += " - Medium scale project"
        elif object_count < 4 and size_indicators == 0:
            volume *= 0.6
            reasoning += " - Small scale project"

        volume *= pattern['multiplier']

        if project_type == "highrise":
            confidence_level = "high"
            reasoning += " - High-strength concrete recommended for high-rise construction"
    else:
        indicators = len([label for label in labels if any(i in label for i in CONSTRUCTION_INDICATORS)])
        if indicators > 2:
            volume, project_type, confidence_level = 25.0, "general", "medium"
            reasoning = f"General construction project detected ({indicators} construction indicators)"
        elif indicators > 0:
            volume, project_type, confidence_level = 15.0, "basic", "low"
            reasoning = f"Basic construction work estimated ({indicators} indicators)"
        else:
            volume, project_type, confidence_level = 8.0, "basic", "low"
            reasoning = "Minimal concrete work estimated - consider manual verification"

    final_volume = _round1(volume)

    return {
        'estimated_volume': final_volume,
        'safety_volume': _round1(final_volume * (1 + SAFETY_MARGIN)),
        'confidence_level': confidence_level,
        'reasoning': reasoning,
        'project_type': project_type,
        'range': {
            'min': _round1(final_volume * 0.8),
            'max': _round1(final_volume * 1.4),
            'recommended': _round1(final_volume * 1.15),
        },
        'breakdown': {
            'base_estimate': _round1(final_volume / (1 + SAFETY_MARGIN)),
            'safety_margin': _round1(final_volume * SAFETY_MARGIN),
            'wastage_allowance': _round1(final_volume * 0.05),
        },
    }


# ============================================================================
# Product matching and costs
# ============================================================================

def match_product(labels: List[str], products: List[Product]) -> Optional[Product]:
    if not products:
        return None

    labels = [label.lower() for label in labels]
    highrise = _any_label(labels, *HIGHRISE_LABELS)

    best, best_score = None, 0
    for product in products:
        grade = (product.grade or "").upper()
        score = 0

        for pattern in GRADE_LABEL_PATTERNS.get(grade, []):
            if _any_label(labels, pattern):
                score += 3

        for keyword in product.keywords:
            if _any_label(labels, keyword.lower()):
                score += 2

        name = product.name.lower()
        description = (product.description or "").lower()
        short_name = name.replace("concrete ", "")
        for label in labels:
            if label in name or (short_name and short_name in label):
                score += 3
            if label in description:
                score += 1

        if highrise and grade in HIGH_STRENGTH_GRADES:
            score += 5

        if score > best_score:
            best, best_score = product, score

    if best:
        return best

    if highrise or _any_label(labels, "commercial"):
        strong = next((p for p in products if (p.grade or "").upper() in HIGH_STRENGTH_GRADES), None)
        if strong:
            return strong

    return next((p for p in products if (p.grade or "").upper() == "N20"), products[0])


def cost_breakdown(product: Optional[Product], quantity: Dict[str, Any]) -> Dict[str, Any]:
    if product is None:
        return {}

    breakdown = {}
    for field, label, description in DELIVERY_OPTIONS:
        price = getattr(product, field)
        if not price or price <= 0:
            continue
        price = float(price)
        breakdown[field] = {
            'label': label,
            'description': description,
            'price_per_unit': price,
            'costs': {
                'estimated': round(price * quantity['estimated_volume']),
                'with_safety': round(price * quantity['safety_volume']),
                'recommended': round(price * quantity['range']['recommended']),
                'range': {
                    'min': round(price * quantity['range']['min']),
                    'max': round(price * quantity['range']['max']),
                },
            },
        }
    return breakdown


# ============================================================================
# Advice
# ============================================================================

def build_recommendations(
    labels: List[str],
    project_type: str,
    volume: float,
    confidence: int,
    object_count: int
) -> List[str]:
    labels = [label.lower() for label in labels]
    recs = []

    if volume > 50:
        recs.append("Large volume project - consider multiple delivery schedules")
        recs.append("Coordinate multiple trucks for a continuous pour")
    elif volume > 20:
        recs.append("Medium-scale project - ensure adequate workforce for placement")
    elif volume < 5:
        recs.append("Small volume - consider bagged premix for better cost efficiency")

    if confidence < 70:
        recs.append("Consider consulting a structural engineer for precise requirements")
        recs.append("Verify concrete specifications with building plans")
    elif confidence > 90:
        recs.append("High confidence analysis - proceed with recommended specifications")

    if object_count > 15:
        recs.append("Complex structure detected - ensure proper reinforcement placement")
    elif object_count < 3:
        recs.append("Simple structure - standard placement techniques recommended")

    if _any_label(labels, "steel", "rebar", "reinforcement"):
        recs.append("Reinforced concrete required - ensure steel is placed before the pour")
    if _any_label(labels, "precast", "prefab"):
        recs.append("Precast elements detected - use high early strength concrete")
    if _any_label(labels, "pump", "high"):
        recs.append("High-rise construction - use a pumpable mix design")
    if _any_label(labels, "hot", "summer"):
        recs.append("Hot weather placement - use retarding admixtures to extend workability")

    if project_type == "foundation" and _any_label(labels, "water", "wet"):
        recs.append("Wet conditions - use waterproof concrete with crystalline admixtures")
    elif project_type == "slab" and _any_label(labels, "industrial", "warehouse"):
        recs.append("Industrial slab - use fibre reinforcement for crack control")
    elif project_type == "column":
        recs.append("Vertical placement - use self-consolidating concrete to avoid honeycombing")
    elif project_type == "pool":
        recs.append("Swimming pool - use sulfate-resistant cement and a waterproofing system")

    if volume > 10:
        recs.append("Schedule concrete testing - slump, air content and compressive strength")

    if _any_label(labels, "marine", "coastal", "salt"):
        recs.append("Marine environment - use a low water-cement ratio for chloride resistance")

    if not recs:
        recs = [
            "Ensure proper curing for 28-day design strength",
            "Maintain the water-cement ratio required by the structural design",
        ]

    return recs[:6]


def build_special_considerations(labels: List[str], project_type: str, volume: float) -> List[str]:
    labels = [label.lower() for label in labels]
    notes = []

    if _any_label(labels, "water", "pool", "swimming", "wet"):
        notes.append("Waterproofing measures required - consider integral waterproofing admixtures")
    if _any_label(labels, "outdoor", "exterior", "weather", "exposed"):
        notes.append("Weather exposure - plan curing protection against heavy rain")
    if _any_label(labels, "underground", "basement", "below"):
        notes.append("Below-grade construction - ensure proper drainage and moisture protection")
    if _any_label(labels, "high", "tall", "tower", "story"):
        notes.append("High-rise construction - coordinate delivery with the construction schedule")
    if _any_label(labels, "span", "beam", "long"):
        notes.append("Long spans detected - verify deflection requirements and concrete strength")
    if _any_label(labels, "repair", "patch", "retrofit"):
        notes.append("Repair work - ensure compatibility between new and existing concrete")

    if volume > 100:
        notes.append("Large volume pour - plan continuous placement to avoid cold joints")

    per_type = {
        'foundation': "Foundation work - verify bearing capacity and settlement requirements",
        'slab': "Slab construction - plan joint layout and reinforcement continuity",
        'wall': "Wall construction - prevent honeycombing with proper consolidation",
        'column': "Column construction - ensure concrete flows around reinforcement",
        'stairs': "Stair construction - ensure non-slip surface treatment and precise forming",
        'pool': "Pool construction - plan for hydrostatic pressure during curing",
    }
    if project_type in per_type:
        notes.append(per_type[project_type])

    if volume > 20:
        notes.append("Quality control - implement systematic testing for concrete acceptance")

    if not notes:
        notes = [
            "Standard concrete construction practices apply",
            "Ensure proper site preparation and formwork inspection",
        ]

    return notes[:8]


def recommended_grades(project_type: str) -> List[str]:
    return RECOMMENDED_GRADES.get(project_type, RECOMMENDED_GRADES['general'])


def estimate_timeline(project_type: str, volume: float) -> Dict[str, str]:
    days = max(1, math.ceil(volume / 10 * TIMELINE_DAYS.get(project_type, 2)))
    return {
        'concrete': f"{days} day{'s' if days > 1 else ''}",
        'curing': "28 days for full strength",
        'total': f"{days + 1}-{days + 3} days including preparation",
    }


def label_confidence(labels: List[Dict[str, Any]]) -> float:
    """Average score of the top 3 labels, clamped to 0.4-0.95"""
    if not labels:
        return 0.5
    top = labels[:3]
    average = sum(label.get('score') or 0 for label in top) / len(top)
    return min(0.95, max(0.4, average))


def build_analysis(vision: VisionResult, products: List[Product]) -> Dict[str, Any]:
    labels = vision.label_texts
    object_count = len(vision.objects)

    quantity = estimate_quantity(labels, object_count)
    product = match_product(labels, products)
    confidence = round(label_confidence(vision.labels) * 100)
    project_type = quantity['project_type']

    return {
        'detected_labels': labels,
        'matched_product': product.to_dict() if product else None,
        'confidence': confidence,
        'message': (
            f"{product.name} recommended for {project_type} project"
            if product else "Analysis complete - see recommendations below"
        ),
        'total_products': len(products),
        'quantity_estimation': quantity,
        'costs': cost_breakdown(product, quantity),
        'recommendations': build_recommendations(
            labels, project_type, quantity['estimated_volume'], confidence, object_count
        ),
        'project_insights': {
            'complexity': "high" if object_count > 10 else "medium" if object_count > 5 else "low",
            'recommended_grades': recommended_grades(project_type),
            'timeline': estimate_timeline(project_type, quantity['estimated_volume']),
            'special_considerations': build_special_considerations(
                labels, project_type, quantity['estimated_volume']
            ),
        },
        'analysis_metadata': {
            'elements_detected': object_count,
            'labels_found': len(vision.labels),
            'label_details': [
                {'description': label['description'], 'score': round((label.get('score') or 0) * 100)}
                for label in vision.labels[:10]
            ],
        },
    }


class SiteAnalysisService:

    def __init__(
        self,
        product_repo: Optional[ProductRepository] = None,
        vision: Optional[GoogleVisionConnector] = None
    ):
        self.product_repo = product_repo or ProductRepository()
        self._vision = vision

    @property
    def vision(self) -> GoogleVisionConnector:
        if self._vision is None:
            self._vision = GoogleVisionConnector()
        return self._vision

    async def analyze(self, image_bytes: bytes) -> Dict[str, Any]:
        vision_result = await self.vision.annotate(image_bytes)
        products = self.product_repo.find_published()

        analysis = build_analysis(vision_result, products)
        logger.info(
            f"Site analysis: {analysis['quantity_estimation']['project_type']} "
            f"{analysis['quantity_estimation']['estimated_volume']} m3, confidence {analysis['confidence']}%"
        )
        return analysis
