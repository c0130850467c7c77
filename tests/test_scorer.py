"""Tests for supplier match scoring."""

from models import Opportunity, Supplier
from services.scorer import SupplierScorer, score_supplier_match


class TestEndToEndScore:
    def test_exact_naics_gsa_supplier_scores_89(self, opportunity, supplier):
        # 100*.30 + 100*.20 + 80*.25 + 90*.15 + 50*.10 = 88.5
        match = score_supplier_match(opportunity, supplier)
        assert match.match_score == 89

    def test_reasoning_in_check_order(self, opportunity, supplier):
        match = score_supplier_match(opportunity, supplier)
        assert match.reasoning == [
            "Exact NAICS code match",
            "GSA Schedule holder",
            "High performance rating",
            "Strong overall match"
        ]

    def test_identifiers_carried(self, opportunity, supplier):
        match = score_supplier_match(opportunity, supplier)
        assert match.opportunity_id == "opp-1"
        assert match.supplier_id == "sup-1"
        assert match.supplier_name == "Acme Federal IT"
        assert match.estimated_price is None


class TestDeterminism:
    def test_same_inputs_same_output(self, opportunity, supplier):
        first = score_supplier_match(opportunity, supplier)
        second = score_supplier_match(opportunity, supplier)
        assert first.match_score == second.match_score
        assert first.reasoning == second.reasoning


class TestScoreBounds:
    def test_worst_case_is_integer_in_range(self):
        opp = Opportunity(id="o", title="t", description="modular furniture", naics_code="337211",
                          set_aside_code="WOSB")
        sup = Supplier(id="s", name="n", naics_codes=["541511"], capabilities=["software"], rating="junk")
        match = score_supplier_match(opp, sup)
        assert isinstance(match.match_score, int)
        # only the 70-point non-holder GSA score contributes
        assert match.match_score == 14
        assert match.reasoning == []

    def test_best_case_caps_at_100(self):
        opp = Opportunity(id="o", title="t", description="cloud hosting", naics_code="541511",
                          set_aside_code="HUBZone")
        sup = Supplier(id="s", name="n", naics_codes=["541511"], certifications=["HUBZone certified"],
                       capabilities=["cloud"], rating=5, gsa_schedule=True)
        match = score_supplier_match(opp, sup)
        assert match.match_score == 100
        assert "Qualified for HUBZone set-aside" in match.reasoning


class TestReasoning:
    def test_related_naics_and_good_match(self):
        opp = Opportunity(id="o", title="t", naics_code="541511")
        sup = Supplier(id="s", name="n", naics_codes=["541519"], rating=3.0)
        match = score_supplier_match(opp, sup)
        # 70*.30 + 70*.20 + 80*.25 + 60*.15 + 50*.10 = 69
        assert match.match_score == 69
        assert match.reasoning == ["Related NAICS code experience", "Good potential match"]

    def test_custom_thresholds(self, opportunity, supplier):
        scorer = SupplierScorer(strong_threshold=95, good_threshold=85)
        assert scorer.score(opportunity, supplier).reasoning[-1] == "Good potential match"

    def test_breakdown_keys_match_weights(self, opportunity, supplier):
        scorer = SupplierScorer()
        breakdown = scorer.breakdown(opportunity, supplier)
        assert set(breakdown) == set(scorer.weights)
        assert breakdown["set_aside"] == 80
        assert breakdown["capability"] == 50
