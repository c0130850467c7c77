# controller.py
"""Main workflow controller for supplier matching and RFQ validation with tracing and persistence."""

import time
import traceback
from datetime import datetime, timezone
from typing import List, Dict, Optional, Union

from models import (
    Opportunity, Supplier, SupplierMatch, PricingEstimate,
    QuoteRequest, ComprehensiveValidation, OpportunityStatus
)
import config
from config import DEFAULT_MATCH_LIMIT
from services.scorer import SupplierScorer
from services.pricing import PricingEstimator, generate_pricing_estimates
from services.ranker import rank_suppliers
from services.llm import LLMClient
from services.validator import AssessmentRunner
from services.graph import run_validation_graph
from services.observer import Observer, RunType
from services.memory import get_memory_store, MemoryStore


def _now_for(deadline: Optional[datetime]) -> datetime:
    if deadline is not None and deadline.tzinfo is not None:
        return datetime.now(timezone.utc)
    return datetime.now()


class Controller:
    """
    Orchestrate supplier matching and comprehensive RFQ validation.

    The LLM client, memory store and observer are all injectable. Without an
    LLM client, a Groq-backed one is built on first validation when
    GROQ_API_KEY is configured. Without a memory store, the shared SQLite
    store is opened on first persist.
    """

    def __init__(
        self,
        llm=None,
        memory: Optional[MemoryStore] = None,
        observer: Optional[Observer] = None,
        estimator: Optional[PricingEstimator] = None,
        use_graph: bool = False
    ):
        self.llm = llm
        self._memory = memory
        self.observer = observer or Observer()
        self.scorer = SupplierScorer()
        self.estimator = estimator or PricingEstimator()
        self.use_graph = use_graph
        self._last_match_id: Optional[str] = None
        self._last_assessment_id: Optional[str] = None

    @property
    def memory(self) -> MemoryStore:
        if self._memory is None:
            self._memory = get_memory_store()
        return self._memory

    # ==================== MATCHING ====================

    def match_suppliers(
        self,
        opportunity: Union[Opportunity, Dict],
        suppliers: List[Union[Supplier, Dict]],
        limit: int = DEFAULT_MATCH_LIMIT,
        persist: bool = False,
        use_cached_result: bool = False
    ) -> List[SupplierMatch]:
        """
        Rank active suppliers for one opportunity.

        Pipeline:
        1. Check for a stored snapshot of the same input (optional)
        2. Refresh opportunity status from its deadline
        3. Drop inactive suppliers
        4. Score, estimate and rank
        5. Persist a snapshot (optional)

        Args:
            use_cached_result: If True, return the stored ranking when the
                same opportunity, suppliers and limit were matched before
        """
        if isinstance(opportunity, dict):
            opportunity = Opportunity.from_dict(opportunity)
        suppliers = [Supplier.from_dict(s) if isinstance(s, dict) else s for s in suppliers]
        input_data = {
            "opportunity": opportunity.to_dict(),
            "suppliers": [s.to_dict() for s in suppliers],
            "limit": limit
        }

        if use_cached_result:
            existing = self.memory.find_previous_match(input_data)
            if existing:
                self._last_match_id = existing["id"]
                return [SupplierMatch.from_dict(m) for m in existing["result"]]

        self.observer.clear()

        with self.observer.trace_run(
            name="match_suppliers",
            run_type=RunType.CHAIN,
            inputs={
                "opportunity_id": opportunity.id,
                "supplier_count": len(suppliers),
                "limit": limit
            },
            tags=["matching"]
        ) as run:
            status = opportunity.refresh_status(_now_for(opportunity.response_deadline))
            if status is not OpportunityStatus.ACTIVE:
                self.observer.log("opportunity", "status", {
                    "opportunity_id": opportunity.id,
                    "status": status.value
                }, status="warning")

            active = [s for s in suppliers if s.is_active]
            self.observer.log("filter", "active_suppliers", {
                "total": len(suppliers),
                "active": len(active)
            })

            start = time.perf_counter()
            matches = rank_suppliers(
                opportunity, active, limit,
                scorer=self.scorer,
                estimator=self.estimator
            )
            self.observer.log_tool_call(
                name="rank_suppliers",
                tool_name="weighted_supplier_ranker",
                tool_input={"opportunity_id": opportunity.id, "candidates": len(active), "limit": limit},
                tool_output=[(m.supplier_name, m.match_score) for m in matches],
                latency_ms=round((time.perf_counter() - start) * 1000, 2)
            )

            run.outputs = {
                "status": status.value,
                "ranking": [
                    {"rank": i + 1, "supplier": m.supplier_name, "score": m.match_score}
                    for i, m in enumerate(matches)
                ]
            }

        if persist:
            self._last_match_id = self.memory.save_match(
                input_data=input_data,
                matches=[m.to_dict() for m in matches]
            )
        return matches

    def pricing_estimates(self, opportunity: Union[Opportunity, Dict]) -> List[PricingEstimate]:
        """Total contract value estimate plus category breakdowns."""
        if isinstance(opportunity, dict):
            opportunity = Opportunity.from_dict(opportunity)
        estimates = generate_pricing_estimates(opportunity)
        self.observer.log("pricing", "estimates", {
            "opportunity_id": opportunity.id,
            "categories": [e.category for e in estimates]
        })
        return estimates

    # ==================== VALIDATION ====================

    def validate(
        self,
        quote_request: Union[QuoteRequest, Dict],
        opportunity: Optional[Union[Opportunity, Dict]] = None,
        persist: bool = False
    ) -> ComprehensiveValidation:
        """
        Run the four RFQ analyses and aggregate them.

        Raises:
            ValueError: If no LLM client is configured
            MissingAssessmentError: If any analysis failed
        """
        if self.llm is None:
            if not config.GROQ_API_KEY:
                raise ValueError("An LLM client is required for validation. Configure GROQ_API_KEY in .env file.")
            self.llm = LLMClient(api_key=config.GROQ_API_KEY, observer=self.observer)
        if isinstance(quote_request, dict):
            quote_request = QuoteRequest.from_dict(quote_request)
        if isinstance(opportunity, dict):
            opportunity = Opportunity.from_dict(opportunity)

        self.observer.clear()

        try:
            with self.observer.trace_run(
                name="comprehensive_validation",
                run_type=RunType.CHAIN,
                inputs={"title": quote_request.title, "requirements": len(quote_request.requirements)},
                tags=["validation", "graph" if self.use_graph else "threads"]
            ) as run:
                if self.use_graph:
                    result = run_validation_graph(self.llm, quote_request, opportunity, self.observer)
                else:
                    runner = AssessmentRunner(self.llm, observer=self.observer)
                    result = runner.run(quote_request, opportunity)
                run.outputs = result.overall.to_dict()
        except Exception as e:
            if persist:
                self.memory.save_error(
                    error_type=type(e).__name__,
                    message=str(e),
                    stack_trace=traceback.format_exc(),
                    context={"title": quote_request.title}
                )
            raise

        if persist:
            self._last_assessment_id = self.memory.save_assessment(
                quote_request=quote_request.to_dict(),
                result=result.to_dict(),
                traces=self.observer.get_events()
            )
        return result

    # ==================== PUBLIC API ====================

    def get_events(self) -> List[Dict]:
        """Get all logged events."""
        return self.observer.get_events()

    def get_summary(self) -> Dict:
        """Get observability summary."""
        return self.observer.get_summary()

    def get_last_match_id(self) -> Optional[str]:
        return self._last_match_id

    def get_last_assessment_id(self) -> Optional[str]:
        return self._last_assessment_id

    def get_match_history(self, opportunity_id: str = None, limit: int = 10) -> List[Dict]:
        """Get recent match snapshots, optionally for one opportunity."""
        return self.memory.get_recent_matches(opportunity_id, limit)

    def get_assessment_history(self, limit: int = 10) -> List[Dict]:
        """Get recent validation snapshots."""
        return self.memory.get_recent_assessments(limit)
