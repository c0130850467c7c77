# config.py
"""Configuration settings for the Supplier Match Agent."""

import os
from dotenv import load_dotenv

load_dotenv()

def get_secret(key: str, default: str = None) -> str:
    """Get secret from the environment (or a local .env file)."""
    value = os.getenv(key)
    if value:
        return value
    return default

# API Keys
GROQ_API_KEY = get_secret("GROQ_API_KEY")

# Model Settings
GROQ_MODEL = get_secret("GROQ_MODEL", "llama-3.3-70b-versatile")

# Alternative models (uncomment to use):
# GROQ_MODEL = "openai/gpt-oss-120b"     # larger, slower
# GROQ_MODEL = "openai/gpt-oss-20b"      # 1000 T/s, faster but smaller

# Persistence
MEMORY_DB_PATH = get_secret("MEMORY_DB_PATH", "supplier_match_memory.db")

# ============ SUPPLIER MATCHING ============

# Match score weights (business policy, must sum to 1.0)
MATCH_WEIGHTS = {
    "naics": 0.30,
    "gsa": 0.20,
    "set_aside": 0.25,
    "rating": 0.15,
    "capability": 0.10
}

# Neutral / fallback sub-scores
NAICS_EXACT_SCORE = 100
NAICS_RELATED_SCORE = 70
NAICS_NEUTRAL_SCORE = 50
NAICS_PREFIX_LENGTH = 4
OPEN_COMPETITION_SCORE = 80
CAPABILITY_NEUTRAL_SCORE = 50
GSA_HOLDER_SCORE = 100
GSA_NON_HOLDER_SCORE = 70

MAX_RATING = 5.0
HIGH_RATING_THRESHOLD = 4.0

# Reasoning bands
STRONG_MATCH_THRESHOLD = 80
GOOD_MATCH_THRESHOLD = 60

# Acceptable certification substrings per set-aside code (case-insensitive)
SET_ASIDE_CERTIFICATIONS = {
    "SBA": ["Small Business", "SBA Certified", "8(a)", "HUBZone"],
    "SDVOSB": ["Service-Disabled Veteran-Owned", "SDVOSB", "Veteran-Owned"],
    "WOSB": ["Women-Owned Small Business", "WOSB", "EDWOSB"],
    "HUBZone": ["HUBZone", "Historically Underutilized Business Zone"],
    "8A": ["8(a)", "SBA 8(a) Program"]
}

DEFAULT_MATCH_LIMIT = 10

# ============ PRICING / DELIVERY ============

PRICE_RANDOM_MIN = 0.85
PRICE_RANDOM_MAX = 1.15
RATING_MULTIPLIER_BASE = 0.9
RATING_MULTIPLIER_SPAN = 0.2

BASE_DELIVERY_DAYS = 30
TIME_AND_MATERIALS_DELIVERY_DAYS = 14
URGENT_DELIVERY_FACTOR = 0.7
GSA_DELIVERY_FACTOR = 0.8

# ============ RFQ ASSESSMENT ============

ASSESSMENT_WEIGHTS = {
    "structural": 0.40,
    "fairness": 0.20,
    "compliance": 0.25,
    "quality": 0.15
}

EXCELLENT_THRESHOLD = 90
GOOD_THRESHOLD = 75
NEEDS_IMPROVEMENT_THRESHOLD = 60
GOOD_MAX_CRITICAL_ISSUES = 1

# LLM call settings per analysis
LLM_SETTINGS = {
    "structural": {"temperature": 0.2, "max_tokens": 3000},
    "fairness": {"temperature": 0.2, "max_tokens": 2000},
    "compliance": {"temperature": 0.1, "max_tokens": 2500},
    "quality": {"temperature": 0.2, "max_tokens": 1500},
    "supplier_response": {"temperature": 0.2, "max_tokens": 2000}
}

ASSESSMENT_MAX_WORKERS = 4
ASSESSMENT_TIMEOUT_SECONDS = 60
