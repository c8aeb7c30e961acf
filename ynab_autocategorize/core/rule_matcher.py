"""
Rule Matcher Engine

Picks a category for a transaction from historical evidence:
- One winner per lookup key (most occurrences, then most recent)
- Winners below the confidence threshold are dropped
- Best overall by confidence, then key specificity, then occurrences,
  then recency
"""
from typing import Mapping, Optional, Sequence

from .history_learner import History
from .models import Category, CategoryMatch


def _best_for_key(history: History,
                  key: str,
                  specificity: int,
                  category_map: Mapping[str, Category]) -> Optional[CategoryMatch]:
    """Select the winning category for a single key, or None"""
    entry = history.get(key)
    if entry is None or entry.total == 0:
        return None

    best: Optional[CategoryMatch] = None

    for category_id, stats in entry.categories.items():
        if stats.occurrences <= 0:
            continue

        # Eligibility is checked against the current categories, which may
        # differ from the ones the history was built with.
        category = category_map.get(category_id)
        if category is None or not category.eligible:
            continue

        candidate = CategoryMatch(
            category_id=category_id,
            category=category,
            source='history',
            confidence=stats.occurrences / entry.total,
            key=key,
            specificity=specificity,
            occurrences=stats.occurrences,
            total=entry.total,
            last_date=stats.last_date,
            reference=stats.last_transaction,
        )

        if best is None:
            best = candidate
        elif candidate.occurrences > best.occurrences:
            best = candidate
        elif (candidate.occurrences == best.occurrences
              and _is_later(candidate.last_date, best.last_date)):
            best = candidate

    return best


def _is_later(date: Optional[str], other: Optional[str]) -> bool:
    if not date:
        return False
    if not other:
        return True
    return date > other


def _beats(candidate: CategoryMatch, best: CategoryMatch) -> bool:
    """Tie-break ladder between per-key winners"""
    if candidate.confidence != best.confidence:
        return candidate.confidence > best.confidence

    if candidate.specificity != best.specificity:
        return candidate.specificity < best.specificity

    if candidate.occurrences != best.occurrences:
        return candidate.occurrences > best.occurrences

    return _is_later(candidate.last_date, best.last_date)


def select_best_historical_category(history: History,
                                    keys: Sequence[str],
                                    category_map: Mapping[str, Category],
                                    min_confidence: float) -> Optional[CategoryMatch]:
    """
    Categorize a transaction using its history

    Args:
        history: Index built by build_history()
        keys: The transaction's keys from generate_keys(), most specific first
        category_map: Current category snapshot
        min_confidence: Per-key winners below this are discarded

    Returns:
        CategoryMatch with source 'history', or None if nothing qualifies

    All keys are inspected: a less specific key with a higher confidence
    still wins, specificity only breaks confidence ties.
    """
    best: Optional[CategoryMatch] = None

    for index, key in enumerate(keys):
        candidate = _best_for_key(history, key, index, category_map)
        if candidate is None:
            continue

        if candidate.confidence < min_confidence:
            continue

        if best is None or _beats(candidate, best):
            best = candidate

    return best
