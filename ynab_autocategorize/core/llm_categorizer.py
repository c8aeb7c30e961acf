"""
LLM Categorizer

Uses Claude API to suggest categories for transactions that history
could not categorize.
Features:
- Closed vocabulary: only visible, non-deleted budget categories
- Per-key history digest so the model sees past decisions
- Tolerant JSON parsing (prose around the object is ignored)
- Failures never abort a run; the transaction is just left alone
"""
import json
import math
import os
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

import anthropic

from ..utils.logging_setup import get_logger
from .history_learner import History
from .models import Category, CategoryMatch, Transaction, format_amount

logger = get_logger(__name__)

DEFAULT_LLM_MODEL = "claude-sonnet-4-20250514"
DEFAULT_LLM_TEMPERATURE = 0.1
DEFAULT_LLM_MAX_TOKENS = 200

NO_CATEGORY = "NONE"
MAX_HISTORY_CATEGORIES = 5

# Messages API rejects temperatures above 1.0
MAX_ANTHROPIC_TEMPERATURE = 1.0

SYSTEM_PROMPT = (
    "You categorize YNAB budget transactions. Reply with a JSON object "
    '{"categoryId": string, "confidence": number, "reason": string}. '
    f'Use "{NO_CATEGORY}" when no category fits.'
)

INSTRUCTIONS = (
    "Select the most appropriate categoryId for the transaction. Only use "
    "categoryId values that appear in candidateCategories."
)

EXPECTED_RESPONSE = (
    'Respond with a JSON object {"categoryId": string, "confidence": number '
    'between 0 and 1, "reason": string}.'
)


def round_share(value: float) -> float:
    """Round to 3 decimals with halves going up (1/16 -> 0.063)"""
    return float(Decimal(repr(value)).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP))


def build_history_digest(keys: Sequence[str],
                         history: History,
                         category_map: Mapping[str, Category]) -> List[Dict[str, Any]]:
    """
    Summarize the history of each key for the prompt

    Keeps the top categories by occurrences. Python's sort is stable, so
    categories with equal counts stay in the order they were first seen.
    """
    digest = []

    for key in keys:
        entry = history.get(key)
        if entry is None:
            continue

        candidates = []
        for category_id, stats in entry.categories.items():
            category = category_map.get(category_id)
            candidates.append({
                'categoryId': category_id,
                'categoryName': category.name if category else None,
                'groupName': category.group_name if category else None,
                'occurrences': stats.occurrences,
                'share': round_share(stats.occurrences / entry.total) if entry.total else 0.0,
                'lastDate': stats.last_date,
                'lastAmount': (format_amount(stats.last_transaction.amount)
                               if stats.last_transaction else None),
            })

        candidates.sort(key=lambda c: c['occurrences'], reverse=True)

        digest.append({
            'key': key,
            'totalTransactions': entry.total,
            'topCategories': candidates[:MAX_HISTORY_CATEGORIES],
        })

    return digest


def build_llm_payload(transaction: Transaction,
                      keys: Sequence[str],
                      history: History,
                      category_map: Mapping[str, Category],
                      categories: Sequence[Category]) -> Dict[str, Any]:
    """Build the request body sent to the model as the user message"""
    return {
        'instructions': INSTRUCTIONS,
        'transaction': {
            'id': transaction.id,
            'date': transaction.date,
            'amount': transaction.amount,
            'formattedAmount': format_amount(transaction.amount),
            'payeeName': transaction.payee_name,
            'importPayeeName': transaction.import_payee_name,
            'originalImportName': transaction.import_payee_name_original,
            'memo': transaction.memo,
            'accountId': transaction.account_id,
        },
        'candidateCategories': [
            {'id': c.id, 'name': c.name, 'group': c.group_name}
            for c in categories
        ],
        'payeeHistory': build_history_digest(keys, history, category_map),
        'expectedResponse': EXPECTED_RESPONSE,
    }


def _first_balanced_object(text: str, start: int) -> Optional[str]:
    """Return the brace-balanced substring starting at text[start], if any"""
    depth = 0
    in_string = False
    escaped = False

    for pos in range(start, len(text)):
        char = text[pos]

        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return text[start:pos + 1]

    return None


def parse_llm_json(content: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse the model reply into a dict

    Tries the whole reply first, then the first balanced {...} block
    (models like to wrap JSON in prose or markdown fences).

    Returns:
        Parsed object, or None if no JSON object could be recovered
    """
    if not content:
        return None

    text = content.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        pass
    else:
        # Valid JSON of the wrong shape is not searched for nested objects
        return parsed if isinstance(parsed, dict) else None

    start = text.find('{')
    while start != -1:
        candidate = _first_balanced_object(text, start)
        if candidate is not None:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        start = text.find('{', start + 1)

    return None


def _valid_confidence(value: Any) -> Optional[float]:
    """Keep a confidence only if it is a finite number in [0, 1]"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0 or value > 1:
        return None
    return float(value)


class LLMCategorizer:
    """
    Categorizes transactions using Claude API
    """

    def __init__(self,
                 model: str = DEFAULT_LLM_MODEL,
                 temperature: float = DEFAULT_LLM_TEMPERATURE,
                 max_tokens: int = DEFAULT_LLM_MAX_TOKENS,
                 api_key: Optional[str] = None,
                 base_url: Optional[str] = None,
                 client: Optional[Any] = None):
        """
        Args:
            model: Claude model name
            temperature: Sampling temperature
            max_tokens: Output length cap for the reply
            api_key: Anthropic API key (or read from ANTHROPIC_API_KEY env var)
            base_url: Optional alternate API endpoint
            client: Pre-built client exposing messages.create() (for tests)
        """
        self.model = model
        self.max_tokens = max_tokens

        self.temperature = temperature
        if temperature > MAX_ANTHROPIC_TEMPERATURE:
            logger.warning("Temperature %s is above Claude's limit; using %s.",
                           temperature, MAX_ANTHROPIC_TEMPERATURE)
            self.temperature = MAX_ANTHROPIC_TEMPERATURE

        if client is not None:
            self.client = client
            self.enabled = True
            return

        self.api_key = api_key or os.environ.get('ANTHROPIC_API_KEY')
        if not self.api_key:
            logger.warning("No ANTHROPIC_API_KEY found. LLM categorization disabled.")
            self.client = None
            self.enabled = False
            return

        client_kwargs = {'api_key': self.api_key}
        if base_url:
            client_kwargs['base_url'] = base_url
        self.client = anthropic.Anthropic(**client_kwargs)
        self.enabled = True

    def categorize(self,
                   transaction: Transaction,
                   keys: Sequence[str],
                   history: History,
                   category_map: Mapping[str, Category]) -> Optional[CategoryMatch]:
        """
        Suggest a category using the LLM

        Args:
            transaction: Transaction history could not categorize
            keys: The transaction's lookup keys
            history: Index built by build_history()
            category_map: Current category snapshot

        Returns:
            CategoryMatch with source 'fallback', or None if the LLM is
            disabled, fails, declines, or picks an unusable category
        """
        if not self.enabled:
            return None

        categories = [c for c in category_map.values() if c.eligible]
        if not categories:
            return None

        payload = build_llm_payload(transaction, keys, history, category_map, categories)

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                messages=[{
                    "role": "user",
                    "content": json.dumps(payload),
                }]
            )
            response_text = ''.join(
                getattr(block, 'text', '') for block in (message.content or [])
            )
        except Exception as e:
            logger.warning("LLM request failed for %s: %s", transaction.id, e)
            return None

        parsed = parse_llm_json(response_text)
        if parsed is None:
            logger.warning("Failed to parse LLM response for %s: %r", transaction.id, response_text)
            return None

        category_id = parsed.get('categoryId')
        category_id = category_id.strip() if isinstance(category_id, str) else None
        if not category_id or category_id == NO_CATEGORY:
            logger.info("LLM found no suitable category for %s", transaction.id)
            return None

        category = category_map.get(category_id)
        if category is None or not category.eligible:
            logger.warning("LLM chose an invalid category (%s) for %s; ignoring.",
                           category_id, transaction.id)
            return None

        reason = parsed.get('reason')

        return CategoryMatch(
            category_id=category_id,
            category=category,
            source='fallback',
            confidence=_valid_confidence(parsed.get('confidence')),
            reason=reason if isinstance(reason, str) else None,
            considered_keys=list(keys),
        )
