"""
Merchant Normalization Module

Converts payee and import descriptions into normalized lookup keys
for consistent matching against historical transactions.

Keys are returned most specific first:
    payee id, imported payee name, original import name, display name,
each qualified by account before the bare form.
"""
import re
from typing import List, Optional

from .models import Transaction

WHITESPACE_PATTERN = re.compile(r'\s+')
NON_ALNUM_PATTERN = re.compile(r'[^a-z0-9\s]')


def normalize_merchant(value: Optional[str]) -> Optional[str]:
    """
    Normalize a payee/import description for key matching

    Args:
        value: Raw text (e.g. "AMZN Mktp US*2K1AB")

    Returns:
        Lowercase alphanumeric text ("amzn mktp us2k1ab"), or None when
        nothing is left after normalization

    Examples:
        >>> normalize_merchant("Trader Joe's #552")
        'trader joes 552'
        >>> normalize_merchant("***") is None
        True
    """
    if not value:
        return None

    normalized = value.lower()
    normalized = WHITESPACE_PATTERN.sub(' ', normalized)
    normalized = NON_ALNUM_PATTERN.sub('', normalized)
    normalized = normalized.strip()

    return normalized or None


def generate_keys(transaction: Transaction) -> List[str]:
    """
    Derive the ordered lookup keys for a transaction

    Index 0 is the most specific key. The order is used as the
    specificity rank when breaking ties between historical matches.

    Args:
        transaction: Transaction to derive keys from

    Returns:
        De-duplicated list of keys (first occurrence keeps its position)
    """
    keys: List[str] = []
    seen = set()

    def push(key: str):
        if key in seen:
            return
        seen.add(key)
        keys.append(key)

    account_id = transaction.account_id

    groups = [
        ('payee', transaction.payee_id or None),
        ('import', normalize_merchant(transaction.import_payee_name)),
        ('import-orig', normalize_merchant(transaction.import_payee_name_original)),
        ('name', normalize_merchant(transaction.payee_name)),
    ]

    for prefix, value in groups:
        if not value:
            continue
        if account_id:
            push(f"{prefix}:{value}|account:{account_id}")
        push(f"{prefix}:{value}")

    return keys
