# services/__init__.py
"""Services package for Supplier Match Agent."""

from .scorer import SupplierScorer, score_supplier_match
from .pricing import PricingEstimator, estimate_pricing, estimate_delivery_days, generate_pricing_estimates
from .ranker import rank_suppliers
from .assessment import compute_overall_assessment, MissingAssessmentError
from .observer import Observer
from .llm import LLMClient, LLMError
from .memory import MemoryStore, get_memory_store

__all__ = [
    "SupplierScorer", "score_supplier_match",
    "PricingEstimator", "estimate_pricing", "estimate_delivery_days", "generate_pricing_estimates",
    "rank_suppliers",
    "compute_overall_assessment", "MissingAssessmentError",
    "Observer",
    "LLMClient", "LLMError",
    "MemoryStore", "get_memory_store"
]
