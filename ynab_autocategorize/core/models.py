"""
Core data structures

Read-only views of YNAB transactions and categories, plus the
decision types produced by the categorization engine.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class Transaction:
    """Transaction data structure (as returned by the YNAB API)"""
    id: str
    date: str
    amount: int  # milliunits
    account_id: Optional[str] = None
    payee_id: Optional[str] = None
    payee_name: Optional[str] = None
    import_payee_name: Optional[str] = None
    import_payee_name_original: Optional[str] = None
    category_id: Optional[str] = None
    transfer_account_id: Optional[str] = None
    memo: Optional[str] = None
    subtransactions: tuple = ()
    deleted: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Transaction':
        """Build a transaction from a YNAB API transaction object"""
        return cls(
            id=data['id'],
            date=data.get('date') or '',
            amount=int(data.get('amount') or 0),
            account_id=data.get('account_id'),
            payee_id=data.get('payee_id'),
            payee_name=data.get('payee_name'),
            import_payee_name=data.get('import_payee_name'),
            import_payee_name_original=data.get('import_payee_name_original'),
            category_id=data.get('category_id'),
            transfer_account_id=data.get('transfer_account_id'),
            memo=data.get('memo'),
            subtransactions=tuple(data.get('subtransactions') or ()),
            deleted=bool(data.get('deleted', False)),
        )

    @property
    def is_transfer(self) -> bool:
        return bool(self.transfer_account_id)

    @property
    def is_split(self) -> bool:
        return len(self.subtransactions) > 0


@dataclass(frozen=True)
class Category:
    """A budget category flattened out of its group"""
    id: str
    name: str
    group_name: str
    hidden: bool = False
    deleted: bool = False

    @property
    def eligible(self) -> bool:
        """Only visible, non-deleted categories may be assigned"""
        return not self.hidden and not self.deleted


@dataclass
class CategoryMatch:
    """
    Result of a categorization attempt

    source is 'history' for matches backed by past transactions and
    'fallback' for matches chosen by the LLM.
    """
    category_id: str
    category: Category
    source: str
    confidence: Optional[float] = None

    # History matches
    key: Optional[str] = None
    specificity: Optional[int] = None
    occurrences: Optional[int] = None
    total: Optional[int] = None
    last_date: Optional[str] = None
    reference: Optional[Transaction] = None

    # Fallback matches
    reason: Optional[str] = None
    considered_keys: List[str] = field(default_factory=list)


@dataclass
class CategorizationDecision:
    """An accepted category assignment for one transaction"""
    transaction: Transaction
    match: CategoryMatch


def build_category_map(category_groups: Iterable[Dict[str, Any]]) -> Dict[str, Category]:
    """
    Flatten YNAB category groups into a map keyed by category id

    A category counts as hidden when either it or its group is hidden.
    """
    category_map: Dict[str, Category] = {}

    for group in category_groups:
        for category in group.get('categories') or []:
            category_map[category['id']] = Category(
                id=category['id'],
                name=category.get('name', ''),
                group_name=group.get('name', ''),
                hidden=bool(category.get('hidden') or group.get('hidden')),
                deleted=bool(category.get('deleted')),
            )

    return category_map


def format_amount(milliunits: int) -> str:
    """Format YNAB milliunits as a dollar string, e.g. -$12.34"""
    value = milliunits / 1000
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):.2f}"
