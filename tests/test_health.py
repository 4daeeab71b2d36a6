"""Tests for the diet health scorer."""

from datetime import date, timedelta

import pytest

from pingodoce.db import Storage
from pingodoce.health import (
    CATEGORY_KEYWORDS,
    CategorySummary,
    HealthScorer,
    matches_category,
    score_share,
)


@pytest.fixture
def storage(tmp_path):
    s = Storage(tmp_path / "test.db")
    yield s
    s.close()


def _ingest(storage, txn_id, names, day=None, total=10.0):
    day = day or date.today()
    storage.ingest(
        {
            "transactionId": txn_id,
            "transactionDate": f"{day.isoformat()}T12:00:00",
            "storeId": "1",
            "storeName": "Loja",
            "total": total,
        },
        {
            "products": [
                {
                    "name": name,
                    "purchaseQuantity": 1,
                    "purchasePrice": 1.0,
                    "totalAmount": 1.0,
                }
                for name in names
            ]
        },
    )


class TestMatching:
    def test_accent_and_case_insensitive(self):
        """Upper-case accented names match unaccented keywords."""
        assert matches_category("legumes", "GRÃO DE BICO COZIDO")
        assert matches_category("fruits", "Maçã Gala")
        assert matches_category("fruits", "MACA FUJI")

    def test_sweets_exclusions(self):
        """Dark chocolate and protein bars are not sweets."""
        assert matches_category("sweets", "Chocolate de Leite Milka")
        assert not matches_category("sweets", "Chocolate Negro 85%")
        assert not matches_category("sweets", "Bolacha Proteica")
        assert not matches_category("sweets", "Cookie Protein Bar")

    def test_every_category_has_keywords(self):
        """Ten categories are defined."""
        assert len(CATEGORY_KEYWORDS) == 10


def test_score_share_capped():
    """Scores are capped at 100 and scale with the target."""
    assert score_share(50, 100, target=12) == 100
    assert score_share(3, 100, target=12) == 25
    assert score_share(0, 100, target=5) == 0


class TestCategories:
    def test_empty_database(self, storage):
        """An empty store gives zeroed categories and no scores."""
        report = HealthScorer(storage).generate()

        for summary in report.categories.values():
            assert summary.total_purchases == 0
            assert summary.total_spent == 0
            assert summary.products == []
        assert report.health_scores is None
        assert report.recommendations == []
        assert report.summary["transactions"] == 0
        assert report.period["days_analyzed"] == "all"

    def test_category_aggregation(self, storage):
        """Purchases are counted per product and ranked by count then name."""
        _ingest(storage, "T1", ["Iogurte Natural", "Kefir Natural"])
        _ingest(storage, "T2", ["Iogurte Natural"])

        fermented = HealthScorer(storage).generate().categories["fermented"]
        assert fermented.name == "Fermented/Probiotic"
        assert fermented.total_purchases == 3
        assert fermented.total_spent == 3.0
        assert [(p.name, p.count) for p in fermented.products] == [
            ("Iogurte Natural", 2),
            ("Kefir Natural", 1),
        ]
        assert fermented.products[0].quantity == 2.0


class TestScores:
    def test_zero_category_contributes_nothing(self, storage):
        """Missing categories score 0 without errors."""
        _ingest(storage, "T1", ["Tofu Fumado", "Espinafres"])
        scores = HealthScorer(storage).generate().health_scores

        assert scores.berry_score == 0
        assert scores.protein_score == 100
        assert scores.greens_score == 100
        assert scores.sweets_score == 100

    def test_overall_score(self, storage):
        """Overall score starts at 50 and adds weighted shares."""
        # protein 50% and greens 50% of categorized purchases
        _ingest(storage, "T1", ["Tofu Fumado", "Espinafres"])
        scores = HealthScorer(storage).generate().health_scores

        # 50 + round(50 * 0.15) + round(50 * 0.10) = 50 + 8 + 5
        assert scores.overall_health_score == 63

    def test_sweets_lower_overall_score(self, storage):
        """A sweets-only basket pulls the overall score below the baseline."""
        _ingest(storage, "T1", ["Gomas Haribo"])
        scores = HealthScorer(storage).generate().health_scores

        assert scores.sweets_score == 0
        assert scores.overall_health_score == 40

    def test_recommendations_order(self, storage):
        """Rules fire in fixed priority order."""
        _ingest(storage, "T1", ["Gomas Haribo", "Tofu"])
        recs = HealthScorer(storage).generate().recommendations

        assert [r.category for r in recs] == [
            "nuts_seeds", "greens", "vegetables", "berries", "sweets",
        ]
        assert [r.priority for r in recs] == [1, 2, 3, 4, 5]
        assert recs[0].issue == "Low nuts/seeds intake (omega-3 source)"

    def test_no_recommendation_when_healthy(self, storage):
        """A balanced basket triggers no rule."""
        _ingest(
            storage,
            "T1",
            ["Sementes de Chia", "Couve Kale", "Cenoura", "Mirtilos"],
        )
        assert HealthScorer(storage).generate().recommendations == []


class TestReportExtras:
    def test_summary_counts_each_receipt_once(self, storage):
        """Total spent sums receipt totals, not line totals."""
        _ingest(storage, "T1", ["Tofu", "Cenoura", "Pão"], total=20.0)
        _ingest(storage, "T2", ["Tofu"], total=5.0)

        report = HealthScorer(storage).generate()
        assert report.summary["transactions"] == 2
        assert report.summary["total_spent_eur"] == 25.0
        assert report.summary["unique_products"] == 3
        assert report.summary["total_items"] == 4
        assert report.period["transactions"] == 2
        assert report.top_products[0] == {
            "name": "Tofu",
            "purchase_count": 2,
            "total_quantity": 2.0,
        }

    def test_fresh_produce_sold_by_kg(self, storage):
        """Loose produce is identified by the kg marker."""
        _ingest(storage, "T1", ["Tomate Chucha kg", "Banana kg", "Tomate Pelado Lata"])

        produce = HealthScorer(storage).generate().fresh_produce
        assert [v["name"] for v in produce["vegetables"]] == ["Tomate Chucha kg"]
        assert [f["name"] for f in produce["fruits"]] == ["Banana kg"]
        assert produce["vegetable_variety"] == 1
        assert produce["fruit_variety"] == 1

    def test_days_window(self, storage):
        """Purchases older than the window are ignored."""
        _ingest(storage, "OLD", ["Tofu"], day=date.today() - timedelta(days=60))
        _ingest(storage, "NEW", ["Cenoura"])

        report = HealthScorer(storage, days=30).generate()
        assert report.period["days_analyzed"] == 30
        assert report.categories["protein"].total_purchases == 0
        assert report.categories["vegetables"].total_purchases == 1

    def test_to_dict(self, storage):
        """The report converts to plain nested dicts."""
        _ingest(storage, "T1", ["Tofu"])
        data = HealthScorer(storage).generate().to_dict()

        assert data["categories"]["protein"]["total_purchases"] == 1
        assert data["health_scores"]["protein_score"] == 100
        assert isinstance(data["recommendations"], list)


def test_category_summary_defaults():
    """A fresh summary is all zeros."""
    summary = CategorySummary(name="Fruits")
    assert summary.total_purchases == 0
    assert summary.products == []


def test_overall_score_rounds_ties_up(storage):
    """A half-point weighted share rounds up, not to even."""
    # nuts 5% * 0.10 = 0.5 -> 1, vegetables 95% * 0.15 = 14.25 -> 14
    _ingest(storage, "T1", ["Nozes"] + [f"Tomate {i}" for i in range(1, 20)])
    scores = HealthScorer(storage).generate().health_scores

    assert scores.overall_health_score == 65


def test_score_share_rounds_ties_up():
    """Share and score both round .5 up."""
    # 1 of 8 is 12.5% of a 100% target
    assert score_share(1, 8, target=100) == 13
    # 1 of 16 is 6.25% -> 6.3%, which is 63 against a 10% target
    assert score_share(1, 16, target=10) == 63
