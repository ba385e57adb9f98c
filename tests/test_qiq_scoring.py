"""Tests for the inverse-price scoring tool."""

import pytest

from tools.qiq_scoring import qiq_scoring, score_products


class TestScoreProducts:
    def test_cheaper_first(self):
        scored = score_products([{"objectID": "b", "price": 20}, {"objectID": "a", "price": 10}])
        assert [p["objectID"] for p in scored] == ["a", "b"]
        assert scored[0]["score"] == 0.1
        assert scored[1]["score"] == 0.05

    def test_zero_price_scores_zero(self):
        scored = score_products([{"price": 0}, {"price": -5}])
        assert [p["score"] for p in scored] == [0, 0]

    def test_non_numeric_price(self):
        scored = score_products([{"price": "abc"}, {"price": None}, {"price": "25"}, {}])
        assert scored[0]["price"] == 25.0
        assert scored[0]["score"] == pytest.approx(0.04)
        assert [p["price"] for p in scored[1:]] == [0, 0, 0]

    def test_oversized_price(self):
        scored = score_products([{"objectID": "big", "price": 10 ** 400}, {"objectID": "a", "price": 10}])
        assert [p["objectID"] for p in scored] == ["a", "big"]
        assert scored[1]["price"] == 0
        assert scored[1]["score"] == 0

    def test_stable_for_ties(self):
        products = [{"objectID": str(i), "price": 0} for i in range(5)]
        assert [p["objectID"] for p in score_products(products)] == ["0", "1", "2", "3", "4"]

    def test_only_score_added(self):
        original = {"objectID": "a", "name": "Thing", "price": "10", "brand": "B"}
        scored = score_products([original])[0]
        assert set(scored) == set(original) | {"score"}
        assert scored["price"] == 10.0
        assert original["price"] == "10"


class TestScoringTool:
    @pytest.mark.asyncio
    async def test_tool_call(self):
        result = await qiq_scoring({"products": [{"price": 20}, {"price": 10}], "context": {"intent": "cheap"}})
        assert [p["price"] for p in result["products"]] == [10, 20]

    @pytest.mark.asyncio
    async def test_search_output_round_trip(self, adapter):
        products = await adapter.search_by_identifiers(["KL4069IA1YRS", "HP-840-G9", "MISSING-1"])
        result = await qiq_scoring({"products": products})

        scored = result["products"]
        assert len(scored) == len(products)
        assert {p["objectID"] for p in scored} == {p["objectID"] for p in products}
        assert [p["objectID"] for p in scored] == ["HP-840-G9", "KL4069IA1YRS", "MISSING-1"]
        for product in scored:
            original = next(p for p in products if p["objectID"] == product["objectID"])
            assert {k: v for k, v in product.items() if k != "score"} == original
