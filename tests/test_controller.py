"""Tests for the workflow controller."""

import json
from datetime import datetime, timedelta

import pytest

from controller import Controller
from models import Opportunity, OpportunityStatus, ReadinessLevel
from services.assessment import MissingAssessmentError
from services.llm import LLMClient, LLMError
from services.pricing import PricingEstimator

from conftest import FakeLLM, FakeGroq, STRUCTURAL, FAIRNESS, COMPLIANCE, QUALITY


class TestMatchSuppliers:
    def test_filters_inactive_and_ranks(self, opportunity, suppliers, fixed_estimator):
        controller = Controller(estimator=fixed_estimator)
        matches = controller.match_suppliers(opportunity, suppliers)

        ids = [m.supplier_id for m in matches]
        assert "s4" not in ids
        assert ids[0] == "s1"
        assert [m.match_score for m in matches] == sorted((m.match_score for m in matches), reverse=True)

    def test_accepts_raw_records(self, fixed_estimator):
        controller = Controller(estimator=fixed_estimator)
        matches = controller.match_suppliers(
            {"id": "opp-1", "title": "t", "naicsCode": "541511", "estimatedValue": "100000"},
            [{"id": "sup-1", "name": "Acme", "naicsCodes": ["541511"], "rating": "4.5", "gsaSchedule": True}]
        )
        assert matches[0].match_score == 89
        assert matches[0].estimated_price == 108000

    def test_limit(self, opportunity, suppliers, fixed_estimator):
        controller = Controller(estimator=fixed_estimator)
        assert len(controller.match_suppliers(opportunity, suppliers, limit=2)) == 2

    def test_expires_past_deadline(self, suppliers, fixed_estimator):
        opp = Opportunity(id="o", title="t", naics_code="541511",
                          response_deadline=datetime.now() - timedelta(days=1))
        controller = Controller(estimator=fixed_estimator)
        controller.match_suppliers(opp, suppliers)

        assert opp.status is OpportunityStatus.EXPIRED
        [event] = [e for e in controller.get_events() if e["type"] == "opportunity"]
        assert event["data"]["status"] == "expired"

    def test_traced(self, opportunity, suppliers, fixed_estimator):
        controller = Controller(estimator=fixed_estimator)
        controller.match_suppliers(opportunity, suppliers)
        summary = controller.get_summary()
        assert summary["tool_calls"] == 1
        assert summary["successful_runs"] == 1

    def test_persist(self, opportunity, suppliers, fixed_estimator, memory):
        controller = Controller(memory=memory, estimator=fixed_estimator)
        controller.match_suppliers(opportunity, suppliers, persist=True)

        assert controller.get_last_match_id() is not None
        [snapshot] = controller.get_match_history("opp-1")
        assert snapshot["top_supplier_id"] == "s1"
        assert snapshot["supplier_count"] == 4

    def test_cached_result_reuses_stored_ranking(self, opportunity, suppliers, fixed_estimator, memory):
        first = Controller(memory=memory, estimator=fixed_estimator)
        stored = first.match_suppliers(opportunity, suppliers, persist=True)

        low = PricingEstimator(random_source=lambda: 0.85)
        second = Controller(memory=memory, estimator=low)
        cached = second.match_suppliers(opportunity, suppliers, use_cached_result=True)

        assert [m.to_dict() for m in cached] == [m.to_dict() for m in stored]
        assert cached[0].estimated_price == 108000
        assert second.get_last_match_id() == first.get_last_match_id()
        assert second.get_summary()["total_runs"] == 0

    def test_cache_miss_ranks_fresh(self, opportunity, suppliers, memory):
        low = PricingEstimator(random_source=lambda: 0.85)
        controller = Controller(memory=memory, estimator=low)
        matches = controller.match_suppliers(opportunity, suppliers, use_cached_result=True)

        # 100000 * (0.9 + 4.5/5*0.2) * 0.85
        assert matches[0].estimated_price == 91800
        assert controller.get_summary()["successful_runs"] == 1


class TestPricingEstimates:
    def test_categories(self, opportunity):
        estimates = Controller().pricing_estimates(opportunity)
        assert [e.category for e in estimates] == [
            "Total Contract Value", "Labor Costs", "Technology/Equipment"
        ]


class TestValidate:
    def test_requires_llm(self, quote_request, monkeypatch):
        monkeypatch.setattr("config.GROQ_API_KEY", None)
        with pytest.raises(ValueError, match="LLM client is required"):
            Controller().validate(quote_request)

    def test_builds_groq_client_from_configured_key(self, quote_request, monkeypatch):
        payload = {**STRUCTURAL, **FAIRNESS, **COMPLIANCE, **QUALITY}
        groq = FakeGroq(json.dumps(payload))
        keys = []

        def make_groq(api_key):
            keys.append(api_key)
            return groq

        monkeypatch.setattr("config.GROQ_API_KEY", "gsk_test")
        monkeypatch.setattr("services.llm.Groq", make_groq)

        controller = Controller()
        result = controller.validate(quote_request)

        assert keys == ["gsk_test"]
        assert isinstance(controller.llm, LLMClient)
        assert len(groq.requests) == 4
        assert result.overall.overall_score == 87
        assert controller.get_summary()["llm_calls"] == 4

    @pytest.mark.parametrize("use_graph", [False, True])
    def test_comprehensive_validation(self, quote_request, opportunity, use_graph):
        controller = Controller(llm=FakeLLM(), use_graph=use_graph)
        result = controller.validate(quote_request, opportunity)
        assert result.overall.overall_score == 87
        assert result.overall.readiness_level is ReadinessLevel.GOOD
        assert controller.get_summary()["failed_runs"] == 0

    def test_accepts_raw_quote_request(self):
        controller = Controller(llm=FakeLLM())
        result = controller.validate({
            "title": "t",
            "description": "d",
            "requirements": [{"category": "Hardware", "items": ["Switches"]}]
        })
        assert result.to_dict()["overall"]["readiness_level"] == "good"

    def test_persist_success(self, quote_request, memory):
        controller = Controller(llm=FakeLLM(), memory=memory)
        controller.validate(quote_request, persist=True)

        [stored] = controller.get_assessment_history()
        assert stored["id"] == controller.get_last_assessment_id()
        assert stored["overall_score"] == 87

    @pytest.mark.parametrize("use_graph", [False, True])
    def test_failure_is_persisted_and_raised(self, quote_request, memory, use_graph):
        llm = FakeLLM(failures={"validate_quote_request": LLMError("empty")})
        controller = Controller(llm=llm, memory=memory, use_graph=use_graph)
        with pytest.raises(MissingAssessmentError):
            controller.validate(quote_request, persist=True)

        [error] = memory.get_recent_errors()
        assert error["error_type"] == "MissingAssessmentError"
        assert controller.get_assessment_history() == []
