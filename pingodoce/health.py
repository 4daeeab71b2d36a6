"""Diet health scoring from purchased product names.

Products are sorted into food categories by keyword, and each category's
share of categorized purchases is scored against a target share.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta

from .db import PurchaseFact, Storage
from .normalize import fold_text, round_half_up

logger = logging.getLogger(__name__)

# Accented and unaccented spellings both listed; matching folds anyway
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "protein": [
        "proteic", "protein", "proteín", "proteina", "prot",
        "tofu", "seitan", "tempeh",
        "skyr", "yopro", "goactive", "quark",
        "ovo", "ovos", "egg", "eggs",
    ],
    "fermented": [
        "kefir", "kombucha", "kimchi", "chucrute", "sauerkraut",
        "ferm", "iogurte", "yogurt", "yoghurt",
    ],
    "legumes": [
        "grao", "grão", "tortitas",
        "hummus", "humus", "homus",
        "lentilha", "lentilhas", "feijao", "feijão",
        "tremoco", "tremoço", "tremocos",
        "fava", "favas", "ervilha", "ervilhas",
        "falafel", "aveia", "aveias",
        "quinoa", "quinua",
    ],
    "nuts_seeds": [
        "chia", "linhaca", "linhaça",
        "nozes", "noz",
        "canhamo", "cânhamo",
        "amendoa", "amêndoa", "amendoim",
        "caju", "cajus",
        "pistach", "pistacio", "pistachio", "pistáchio",
        "girassol",
        "sesamo", "sésamo", "sesame",
        "sementes", "semente",
    ],
    "greens": [
        "espinafre", "espinafres", "brocol", "brócolo", "broculos", "bróculos",
        "brocolos",
        "couve", "couves", "kale",
        "rucula", "rúcula",
        "agiao", "agrião",
        "alface", "alfaces",
    ],
    "vegetables": [
        "pimento", "pimentos", "pimentao", "pimentão",
        "cenoura", "cenouras",
        "curgete", "curgetes", "curgette", "courgette",
        "cebola", "cebolas",
        "tomate", "tomates",
        "pepino", "pepinos",
        "beringela", "beringelas",
        "cogumelo", "cogumelos",
        "aipo", "abobrinha",
        "salada", "saladas",
        "batata", "batatas",
        "legumes", "vegetais",
    ],
    "fruits": [
        "banana", "bananas",
        "maca", "maçã", "macas", "maçãs",
        "laranja", "laranjas",
        "limao", "limão", "limaos", "limões",
        "kiwi", "kiwis",
        "manga", "mangas",
        "pera", "peras",
        "uva", "uvas",
        "melao", "melão", "melancia",
        "tangerina", "clementina",
        "ananas", "ananás",
        "papaia", "mamao", "mamão",
    ],
    "berries": [
        "mirtilo", "mirtilos", "blueberry",
        "framboesa", "framboesas", "raspberry",
        "amora", "amoras",
        "morango", "morangos", "strawberry",
        "berry", "berries", "silvestres",
        "groselha", "arandos",
        "acai", "açaí",
    ],
    "healthy_fats": [
        "guacamole",
        "abacate", "abacates", "avocado",
        "azeite",
    ],
    "sweets": [
        "chocolate", "chocolates",
        "bombom", "bombons",
        "bolacha", "bolachas",
        "gomas", "goma",
        "milka", "kinder", "haribo",
        "croissant", "donut", "donuts",
        "wafer", "waffles",
        "cookie", "cookies",
        "candy",
    ],
}

CATEGORY_NAMES: dict[str, str] = {
    "protein": "Protein Sources",
    "fermented": "Fermented/Probiotic",
    "legumes": "Legumes & Fiber",
    "nuts_seeds": "Nuts, Seeds & Omega-3",
    "greens": "Green Leafy Vegetables",
    "vegetables": "Vegetables",
    "fruits": "Fruits",
    "berries": "Berries & Antioxidants",
    "healthy_fats": "Healthy Fats",
    "sweets": "Sweets & Processed",
}

# Dark chocolate percentages and protein snacks are not counted as sweets
SWEETS_EXCLUDED_DIGITS = ("85", "90", "99")
SWEETS_EXCLUDED_WORDS = ("proteic", "protein")

# Target share of categorized purchases, in percent
TARGET_SHARES: dict[str, float] = {
    "protein": 12,
    "fermented": 8,
    "legumes": 8,
    "nuts_seeds": 5,
    "greens": 5,
    "vegetables": 10,
    "fruits": 8,
    "berries": 3,
    "healthy_fats": 5,
}
SWEETS_TARGET_SHARE = 3

OVERALL_WEIGHTS: dict[str, float] = {
    "protein": 0.15,
    "fermented": 0.10,
    "legumes": 0.10,
    "nuts_seeds": 0.10,
    "greens": 0.10,
    "vegetables": 0.15,
    "fruits": 0.10,
    "berries": 0.05,
    "healthy_fats": 0.05,
    "sweets": -0.10,
}

FRESH_VEGETABLE_STEMS = (
    "piment", "cenour", "curgete", "cebola", "tomate", "brocol",
    "couve", "beringela", "pepino", "alho", "cogumelo",
)
FRESH_FRUIT_STEMS = (
    "banana", "maçã", "laranja", "limão", "kiwi", "abacate", "manga", "mirtilo",
)

CATEGORY_PRODUCT_LIMIT = 15
TOP_PRODUCTS_LIMIT = 25
FRESH_PRODUCE_LIMIT = 10

_FOLDED_KEYWORDS: dict[str, tuple[str, ...]] = {
    category: tuple(dict.fromkeys(fold_text(k) for k in keywords))
    for category, keywords in CATEGORY_KEYWORDS.items()
}


def matches_category(category: str, name: str) -> bool:
    """Check whether a product name belongs to a food category."""
    folded = fold_text(name)
    if not any(k in folded for k in _FOLDED_KEYWORDS[category]):
        return False
    if category == "sweets":
        if any(d in name for d in SWEETS_EXCLUDED_DIGITS):
            return False
        if any(w in folded for w in SWEETS_EXCLUDED_WORDS):
            return False
    return True


def score_share(count: float, total: float, target: float) -> int:
    """Score a category share against its target, capped at 100."""
    actual = round_half_up(count / total * 100, 1)
    return int(round_half_up(min(actual / target * 100, 100)))


@dataclass
class ProductCount:
    name: str
    count: int
    quantity: float


@dataclass
class CategorySummary:
    name: str
    total_purchases: int = 0
    total_spent: float = 0.0
    products: list[ProductCount] = field(default_factory=list)


@dataclass
class HealthScores:
    protein_score: int
    fermented_score: int
    legume_score: int
    nuts_seeds_score: int
    greens_score: int
    vegetable_score: int
    fruit_score: int
    berry_score: int
    healthy_fat_score: int
    sweets_score: int
    overall_health_score: int


@dataclass
class Recommendation:
    priority: int
    category: str
    issue: str
    action: str


# (score attribute, threshold, priority, category, issue, action)
RECOMMENDATION_RULES: list[tuple[str, int, int, str, str, str]] = [
    (
        "nuts_seeds_score", 50, 1, "nuts_seeds",
        "Low nuts/seeds intake (omega-3 source)",
        "Increase: linhaca, chia, nozes, sementes de canhamo, amendoas. "
        "Consider algae EPA/DHA supplement.",
    ),
    (
        "greens_score", 50, 2, "greens",
        "Low green leafy vegetable intake",
        "Add couve kale, espinafres, rucula, broculos to weekly shopping.",
    ),
    (
        "vegetable_score", 50, 3, "vegetables",
        "Low vegetable variety",
        "Add more: pimento, cenoura, curgete, tomate, cogumelos.",
    ),
    (
        "berry_score", 50, 4, "berries",
        "Low berry/antioxidant intake",
        "Add mirtilos, framboesas (frozen ok) 2-3x per week.",
    ),
    (
        "sweets_score", 70, 5, "sweets",
        "High processed sweets intake",
        "Replace with 85%+ dark chocolate, fruit, or protein bars.",
    ),
]


@dataclass
class HealthReport:
    generated_at: str
    period: dict
    summary: dict
    categories: dict[str, CategorySummary]
    top_products: list[dict]
    fresh_produce: dict
    health_scores: HealthScores | None
    recommendations: list[Recommendation]

    def to_dict(self) -> dict:
        return asdict(self)


class HealthScorer:
    """Builds a ``HealthReport`` from stored purchases.

    ``days`` limits the analysis to purchases from the last N days;
    None analyses everything.
    """

    def __init__(self, storage: Storage, days: int | None = None) -> None:
        self._storage = storage
        self._days = days

    def generate(self, today: date | None = None) -> HealthReport:
        since = None
        if self._days is not None:
            since = (today or date.today()) - timedelta(days=self._days)
        facts = self._storage.purchase_facts(since)
        logger.debug("Scoring %d purchase lines", len(facts))

        categories = {
            key: self.analyze_category(key, facts) for key in CATEGORY_KEYWORDS
        }
        scores = self.calculate_scores(categories)

        return HealthReport(
            generated_at=datetime.now().isoformat(timespec="seconds"),
            period=self._period(facts),
            summary=self._summary(facts),
            categories=categories,
            top_products=self._top_products(facts, TOP_PRODUCTS_LIMIT),
            fresh_produce=self._fresh_produce(facts),
            health_scores=scores,
            recommendations=self.recommend(scores),
        )

    def analyze_category(self, category: str, facts: list[PurchaseFact]) -> CategorySummary:
        """Aggregate the purchases whose product falls into ``category``."""
        summary = CategorySummary(name=CATEGORY_NAMES[category])
        counts: dict[int, int] = defaultdict(int)
        quantities: dict[int, float] = defaultdict(float)
        names: dict[int, str] = {}
        spent = 0.0

        for fact in facts:
            if not matches_category(category, fact.name):
                continue
            counts[fact.product_id] += 1
            quantities[fact.product_id] += fact.quantity or 0.0
            names[fact.product_id] = fact.name
            spent += fact.total or 0.0

        summary.total_purchases = sum(counts.values())
        summary.total_spent = round(spent, 2)
        ranked = sorted(counts, key=lambda pid: (-counts[pid], names[pid]))
        summary.products = [
            ProductCount(
                name=names[pid],
                count=counts[pid],
                quantity=round(quantities[pid], 1),
            )
            for pid in ranked[:CATEGORY_PRODUCT_LIMIT]
        ]
        return summary

    def calculate_scores(
        self, categories: dict[str, CategorySummary]
    ) -> HealthScores | None:
        """Score each category share; None if nothing was categorized."""
        counts = {key: c.total_purchases for key, c in categories.items()}
        total = float(sum(counts.values()))
        if total == 0:
            return None

        def score(key: str) -> int:
            return score_share(counts[key], total, TARGET_SHARES[key])

        overall = 50
        for key, weight in OVERALL_WEIGHTS.items():
            overall += int(round_half_up(counts.get(key, 0) / total * 100 * weight))

        return HealthScores(
            protein_score=score("protein"),
            fermented_score=score("fermented"),
            legume_score=score("legumes"),
            nuts_seeds_score=score("nuts_seeds"),
            greens_score=score("greens"),
            vegetable_score=score("vegetables"),
            fruit_score=score("fruits"),
            berry_score=score("berries"),
            healthy_fat_score=score("healthy_fats"),
            sweets_score=100 - score_share(counts["sweets"], total, SWEETS_TARGET_SHARE),
            overall_health_score=max(0, min(100, overall)),
        )

    @staticmethod
    def recommend(scores: HealthScores | None) -> list[Recommendation]:
        if scores is None:
            return []
        recs = []
        for attr, threshold, priority, category, issue, action in RECOMMENDATION_RULES:
            if getattr(scores, attr) < threshold:
                recs.append(Recommendation(priority, category, issue, action))
        return recs

    def _period(self, facts: list[PurchaseFact]) -> dict:
        dates = [f.purchase_date for f in facts if f.purchase_date]
        return {
            "days_analyzed": self._days if self._days is not None else "all",
            "start_date": min(dates) if dates else None,
            "end_date": max(dates) if dates else None,
            "transactions": len({f.transaction_id for f in facts}),
            "unique_products": len({f.product_id for f in facts}),
        }

    def _summary(self, facts: list[PurchaseFact]) -> dict:
        receipt_totals = {f.transaction_id: f.transaction_total or 0.0 for f in facts}
        return {
            "transactions": len(receipt_totals),
            "total_spent_eur": round(sum(receipt_totals.values()), 2),
            "unique_products": len({f.product_id for f in facts}),
            "total_items": round(sum(f.quantity or 0.0 for f in facts)),
        }

    def _top_products(self, facts: list[PurchaseFact], limit: int) -> list[dict]:
        counts: dict[int, int] = defaultdict(int)
        quantities: dict[int, float] = defaultdict(float)
        names: dict[int, str] = {}
        for fact in facts:
            counts[fact.product_id] += 1
            quantities[fact.product_id] += fact.quantity or 0.0
            names[fact.product_id] = fact.name
        ranked = sorted(counts, key=lambda pid: (-counts[pid], names[pid]))
        return [
            {
                "name": names[pid],
                "purchase_count": counts[pid],
                "total_quantity": round(quantities[pid], 3),
            }
            for pid in ranked[:limit]
        ]

    def _fresh_produce(self, facts: list[PurchaseFact]) -> dict:
        vegetables = self._sold_by_weight(facts, FRESH_VEGETABLE_STEMS)
        fruits = self._sold_by_weight(facts, FRESH_FRUIT_STEMS)
        return {
            "vegetables": vegetables,
            "fruits": fruits,
            "vegetable_variety": len(vegetables),
            "fruit_variety": len(fruits),
        }

    def _sold_by_weight(
        self, facts: list[PurchaseFact], stems: tuple[str, ...]
    ) -> list[dict]:
        folded_stems = [fold_text(s) for s in stems]
        counts: dict[int, int] = defaultdict(int)
        names: dict[int, str] = {}
        for fact in facts:
            folded = fold_text(fact.name)
            if "kg" not in folded:
                continue
            if not any(s in folded for s in folded_stems):
                continue
            counts[fact.product_id] += 1
            names[fact.product_id] = fact.name
        ranked = sorted(counts, key=lambda pid: (-counts[pid], names[pid]))
        return [
            {"name": names[pid], "count": counts[pid]}
            for pid in ranked[:FRESH_PRODUCE_LIMIT]
        ]
