"""
Learning Engine - Extract categorization patterns from historical data

Aggregates past, categorized YNAB transactions into per-key category
frequencies. The history is rebuilt from scratch on every run and is
treated as read-only once built.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional

from .merchant_normalizer import generate_keys
from .models import Category, Transaction


@dataclass
class CategoryStats:
    """How often one category was used for a key"""
    occurrences: int = 0
    last_date: Optional[str] = None
    last_transaction: Optional[Transaction] = None


@dataclass
class HistoryEntry:
    """All categories seen for a single lookup key"""
    total: int = 0
    categories: Dict[str, CategoryStats] = field(default_factory=dict)


History = Dict[str, HistoryEntry]


def should_skip_history_transaction(txn: Transaction,
                                    category_map: Mapping[str, Category]) -> bool:
    """
    Decide whether a historical transaction is unusable as evidence

    Deleted, uncategorized, transfer and split transactions are skipped,
    as are transactions whose category is missing, hidden or deleted.
    """
    if txn is None or txn.deleted:
        return True

    if not txn.category_id:
        return True

    if txn.is_transfer or txn.is_split:
        return True

    category = category_map.get(txn.category_id)
    if category is None or not category.eligible:
        return True

    return False


def build_history(transactions: Iterable[Transaction],
                  category_map: Mapping[str, Category]) -> History:
    """
    Build the key -> category frequency index

    Args:
        transactions: Historical transactions
        category_map: Category snapshot used to check eligibility

    Returns:
        Dict mapping each lookup key to its HistoryEntry

    Every key generated for a transaction accrues evidence independently,
    so one transaction may count towards several keys. For each category
    the latest transaction date is tracked; on equal dates the earliest
    seen transaction is kept.
    """
    history: History = {}

    for txn in transactions:
        if should_skip_history_transaction(txn, category_map):
            continue

        for key in generate_keys(txn):
            entry = history.get(key)
            if entry is None:
                entry = history[key] = HistoryEntry()

            entry.total += 1

            stats = entry.categories.get(txn.category_id)
            if stats is None:
                stats = entry.categories[txn.category_id] = CategoryStats(
                    last_date=txn.date,
                    last_transaction=txn,
                )

            stats.occurrences += 1
            if not stats.last_date or (txn.date and txn.date > stats.last_date):
                stats.last_date = txn.date
                stats.last_transaction = txn

    return history
