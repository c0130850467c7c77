# services/graph.py
"""LangGraph workflow for comprehensive RFQ validation with LangSmith-style tracing."""

import time
from typing import TypedDict, Dict, Optional, Any, Annotated
from langgraph.graph import StateGraph, START, END

from models import (
    QuoteRequest, Opportunity, ComprehensiveValidation,
    StructuralAssessment, FairnessAssessment, ComplianceAssessment, QualityAssessment
)
from services.assessment import compute_overall_assessment, MissingAssessmentError
from services.validator import ANALYSES, analysis_calls
from services.observer import Observer, RunType


# Global observer for tracing
_observer = Observer()


def get_observer() -> Observer:
    """Get the global observer instance."""
    return _observer


def _merge_errors(left: Dict[str, str], right: Dict[str, str]) -> Dict[str, str]:
    return {**(left or {}), **(right or {})}


# ==================== STATE DEFINITION ====================

class ValidationState(TypedDict, total=False):
    """State that flows through the validation graph."""
    # Input
    quote_request: QuoteRequest
    opportunity: Optional[Opportunity]

    # Parallel branch outputs
    structural: Optional[StructuralAssessment]
    fairness: Optional[FairnessAssessment]
    compliance: Optional[ComplianceAssessment]
    quality: Optional[QualityAssessment]

    # Written concurrently by the analysis branches
    errors: Annotated[Dict[str, str], _merge_errors]

    # Output
    result: Optional[ComprehensiveValidation]


# ==================== NODE FUNCTIONS WITH TRACING ====================

def _analysis_node(name: str, llm, observer: Observer):
    def node(state: ValidationState) -> Dict[str, Any]:
        call = analysis_calls(llm, state["quote_request"], state.get("opportunity"))[name]
        try:
            with observer.trace_run(
                name=f"{name}_analysis",
                run_type=RunType.LLM,
                inputs={"title": state["quote_request"].title},
                tags=["analysis", name]
            ) as run:
                start = time.perf_counter()
                assessment = call()
                run.outputs = assessment.to_dict()
                run.latency_ms = round((time.perf_counter() - start) * 1000, 2)
        except Exception as e:
            # Leave the slot empty; aggregate reports it as missing
            return {name: None, "errors": {name: str(e)}}
        return {name: assessment}

    node.__name__ = f"{name}_node"
    return node


def _aggregate_node(observer: Observer):
    def aggregate_node(state: ValidationState) -> Dict[str, Any]:
        with observer.trace_run(
            name="aggregate",
            run_type=RunType.TOOL,
            inputs={"available": [n for n in ANALYSES if state.get(n) is not None]},
            tags=["aggregation", "output"]
        ) as run:
            try:
                overall = compute_overall_assessment(
                    state.get("structural"), state.get("fairness"),
                    state.get("compliance"), state.get("quality")
                )
            except MissingAssessmentError:
                run.outputs = {"errors": state.get("errors", {})}
                raise

            run.outputs = overall.to_dict()
            return {
                "result": ComprehensiveValidation(
                    structural=state["structural"],
                    fairness=state["fairness"],
                    compliance=state["compliance"],
                    quality=state["quality"],
                    overall=overall
                )
            }

    return aggregate_node


# ==================== GRAPH CONSTRUCTION ====================

def create_validation_graph(llm, observer: Optional[Observer] = None) -> StateGraph:
    """
    Create the LangGraph workflow for comprehensive validation.

    The four analyses fan out from START in parallel and all join at
    ``aggregate`` before END.
    """
    observer = observer or get_observer()
    workflow = StateGraph(ValidationState)

    for name in ANALYSES:
        workflow.add_node(f"{name}_analysis", _analysis_node(name, llm, observer))
        workflow.add_edge(START, f"{name}_analysis")

    workflow.add_node("aggregate", _aggregate_node(observer))
    workflow.add_edge([f"{name}_analysis" for name in ANALYSES], "aggregate")
    workflow.add_edge("aggregate", END)

    return workflow


def run_validation_graph(
    llm,
    quote_request: QuoteRequest,
    opportunity: Optional[Opportunity] = None,
    observer: Optional[Observer] = None
) -> ComprehensiveValidation:
    """Compile and invoke the validation graph for one RFQ."""
    app = create_validation_graph(llm, observer).compile()
    state = app.invoke({
        "quote_request": quote_request,
        "opportunity": opportunity,
        "errors": {}
    })
    return state["result"]
