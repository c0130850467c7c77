"""Tests for the LangGraph validation workflow."""

import pytest

from models import ReadinessLevel
from services.assessment import MissingAssessmentError, compute_overall_assessment
from services.graph import create_validation_graph, run_validation_graph
from services.llm import LLMError
from services.observer import Observer
from services.validator import AssessmentRunner

from conftest import FakeLLM


class TestValidationGraph:
    def test_graph_shape(self, fake_llm, observer):
        graph = create_validation_graph(fake_llm, observer).compile().get_graph()
        nodes = set(graph.nodes)
        assert {"structural_analysis", "fairness_analysis", "compliance_analysis",
                "quality_analysis", "aggregate"} <= nodes

    def test_produces_comprehensive_validation(self, fake_llm, quote_request, observer):
        result = run_validation_graph(fake_llm, quote_request, observer=observer)
        assert result.overall.overall_score == 87
        assert result.overall.readiness_level is ReadinessLevel.GOOD
        assert result.structural.overall_score == 90
        assert len(fake_llm.calls) == 4

    def test_matches_direct_aggregation_and_runner(self, quote_request, observer):
        graph_result = run_validation_graph(FakeLLM(), quote_request, observer=observer)
        runner_result = AssessmentRunner(FakeLLM()).run(quote_request)
        direct = compute_overall_assessment(
            graph_result.structural, graph_result.fairness,
            graph_result.compliance, graph_result.quality
        )
        assert graph_result.overall == direct == runner_result.overall

    def test_failed_branch_raises_missing(self, quote_request, observer):
        llm = FakeLLM(failures={"validate_quote_request": LLMError("empty")})
        with pytest.raises(MissingAssessmentError) as exc:
            run_validation_graph(llm, quote_request, observer=observer)
        assert exc.value.missing == ["structural"]
        # every branch still ran before aggregation
        assert len(llm.calls) == 4

    def test_nodes_are_traced(self, fake_llm, quote_request):
        observer = Observer()
        run_validation_graph(fake_llm, quote_request, observer=observer)
        names = {r["name"] for r in observer.get_runs()}
        assert {"structural_analysis", "fairness_analysis", "compliance_analysis",
                "quality_analysis", "aggregate"} <= names
        assert observer.get_summary()["failed_runs"] == 0

    def test_failure_recorded_in_observer(self, quote_request):
        observer = Observer()
        llm = FakeLLM(failures={"perform_quality_checks": LLMError("empty")})
        with pytest.raises(MissingAssessmentError):
            run_validation_graph(llm, quote_request, observer=observer)
        errors = {e["name"] for e in observer.errors}
        assert {"quality_analysis", "aggregate"} <= errors
