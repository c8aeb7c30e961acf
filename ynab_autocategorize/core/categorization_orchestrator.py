"""
Categorization Orchestrator

The main engine that categorizes transactions using:
1. Historical matching (highest priority)
2. LLM suggestions (fallback when history abstains)

Transactions are evaluated one at a time, in order. Nothing learned
during the run is fed back into the history.
"""
from typing import Iterable, List, Mapping, Optional

from ..utils.logging_setup import get_logger
from .history_learner import History
from .llm_categorizer import LLMCategorizer
from .merchant_normalizer import generate_keys
from .models import CategorizationDecision, Category, CategoryMatch, Transaction
from .rule_matcher import select_best_historical_category

logger = get_logger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.6


def should_skip_candidate(txn: Transaction) -> bool:
    """Deleted, transfer and split transactions are never categorized"""
    if txn is None or txn.deleted:
        return True

    if txn.is_transfer or txn.is_split:
        return True

    return False


class CategorizationOrchestrator:
    """
    Orchestrates transaction categorization using multiple strategies
    """

    def __init__(self,
                 history: History,
                 category_map: Mapping[str, Category],
                 min_confidence: float = DEFAULT_MIN_CONFIDENCE,
                 llm_categorizer: Optional[LLMCategorizer] = None,
                 limit: Optional[int] = None):
        """
        Args:
            history: Index built by build_history()
            category_map: Current category snapshot
            min_confidence: Threshold for historical matches
            llm_categorizer: Fallback for transactions history can't place
            limit: Stop once this many decisions have been accepted
        """
        self.history = history
        self.category_map = category_map
        self.min_confidence = min_confidence
        self.llm_categorizer = llm_categorizer
        self.limit = limit

        self.stats = {
            'evaluated': 0,
            'skipped': 0,
            'history_match': 0,
            'llm_match': 0,
            'no_match': 0,
        }

    @property
    def llm_enabled(self) -> bool:
        return self.llm_categorizer is not None and self.llm_categorizer.enabled

    def categorize_transaction(self, txn: Transaction) -> Optional[CategoryMatch]:
        """
        Categorize a single transaction

        Args:
            txn: Uncategorized transaction

        Returns:
            The accepted match, or None to leave the transaction alone
        """
        self.stats['evaluated'] += 1

        # Step 1: Try history
        keys = generate_keys(txn)
        match = select_best_historical_category(
            self.history, keys, self.category_map, self.min_confidence
        )
        if match is not None:
            self.stats['history_match'] += 1
            return match

        # Step 2: Try LLM suggestion (if enabled)
        if self.llm_enabled:
            match = self.llm_categorizer.categorize(
                txn, keys, self.history, self.category_map
            )
            if match is not None:
                self.stats['llm_match'] += 1
                return match

        # Step 3: Nothing qualified
        logger.debug("No category for %s (keys: %s)", txn.id, keys)
        self.stats['no_match'] += 1
        return None

    def categorize_batch(self, transactions: Iterable[Transaction]) -> List[CategorizationDecision]:
        """
        Categorize transactions in order

        Args:
            transactions: Uncategorized transactions

        Returns:
            Accepted decisions, at most `limit` of them
        """
        decisions: List[CategorizationDecision] = []

        for txn in transactions:
            if self.limit_reached(decisions):
                break

            if should_skip_candidate(txn):
                self.stats['skipped'] += 1
                continue

            match = self.categorize_transaction(txn)
            if match is not None:
                decisions.append(CategorizationDecision(transaction=txn, match=match))

        return decisions

    def limit_reached(self, decisions: List[CategorizationDecision]) -> bool:
        return bool(self.limit) and len(decisions) >= self.limit

    def print_stats(self):
        """Print categorization statistics"""
        total = self.stats['evaluated']
        if total == 0:
            print("No transactions categorized yet")
            return

        print("\n" + "=" * 80)
        print("📊 CATEGORIZATION STATISTICS")
        print("=" * 80)
        print(f"Transactions evaluated: {total}")
        print(f"  • History match: {self.stats['history_match']} ({self.stats['history_match']/total*100:.1f}%)")

        if self.llm_enabled:
            print(f"  • LLM suggestion: {self.stats['llm_match']} ({self.stats['llm_match']/total*100:.1f}%)")

        print(f"  • No match: {self.stats['no_match']} ({self.stats['no_match']/total*100:.1f}%)")
        if self.stats['skipped']:
            print(f"  • Skipped (transfer/split/deleted): {self.stats['skipped']}")
        print("=" * 80)
