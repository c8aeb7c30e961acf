"""
YNAB Auto-Categorize

Learns from the categories you already assigned in YNAB to categorize
new transactions, with Claude as a fallback for unfamiliar payees.
"""

__version__ = "1.0.0"

# Expose main classes for easy imports
from .merchant_normalizer import generate_keys, normalize_merchant
from .history_learner import build_history
from .rule_matcher import select_best_historical_category
from .llm_categorizer import LLMCategorizer
from .categorization_orchestrator import CategorizationOrchestrator

__all__ = [
    'normalize_merchant',
    'generate_keys',
    'build_history',
    'select_best_historical_category',
    'LLMCategorizer',
    'CategorizationOrchestrator',
]
