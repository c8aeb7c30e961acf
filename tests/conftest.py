"""
Shared fixtures

Tests never touch the network: the Anthropic client is replaced by
AnthropicStub and YNAB calls go through fake sessions/clients.
"""
import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from ynab_autocategorize.core.models import Category, Transaction

ENV_VARS = [
    'YNAB_ACCESS_TOKEN', 'YNAB_BUDGET_ID', 'YNAB_SINCE_DATE', 'YNAB_HISTORY_SINCE_DATE',
    'YNAB_DRY_RUN', 'YNAB_MAX_UPDATES', 'YNAB_MIN_CONFIDENCE', 'ANTHROPIC_API_KEY',
    'ANTHROPIC_BASE_URL', 'YNAB_LLM_MODEL', 'YNAB_LLM_TEMPERATURE', 'YNAB_LLM_MAX_TOKENS',
    'YNAB_LLM_BASE_URL', 'YNAB_AUTOCAT_LOG_LEVEL',
]


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's real credentials out of the tests"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class AnthropicStub:
    """
    Minimal stand-in for anthropic.Anthropic

    Returns `reply` as the text of every message (or raises it, if it is
    an exception) and records the kwargs of each messages.create() call.
    """

    def __init__(self, reply: Any = ''):
        self.reply = reply
        self.calls: List[Dict[str, Any]] = []

        outer = self

        class _Messages:
            def create(self, **kwargs):
                outer.calls.append(kwargs)
                if isinstance(outer.reply, Exception):
                    raise outer.reply
                return SimpleNamespace(content=[SimpleNamespace(type='text', text=outer.reply)])

        self.messages = _Messages()

    def payload(self, call: int = -1) -> Dict[str, Any]:
        """The JSON body sent as the user message"""
        return json.loads(self.calls[call]['messages'][0]['content'])


@pytest.fixture
def anthropic_stub():
    return AnthropicStub


@pytest.fixture
def category_map() -> Dict[str, Category]:
    return {
        'C1': Category(id='C1', name='Groceries', group_name='Everyday'),
        'C2': Category(id='C2', name='Dining Out', group_name='Everyday'),
        'C3': Category(id='C3', name='Fuel', group_name='Transport'),
        'HIDDEN': Category(id='HIDDEN', name='Old Stuff', group_name='Archive', hidden=True),
        'DELETED': Category(id='DELETED', name='Gone', group_name='Archive', deleted=True),
    }


_counter = {'n': 0}


@pytest.fixture
def make_txn():
    """Factory for transactions with sensible defaults"""

    def _make(category_id: Optional[str] = None, **overrides) -> Transaction:
        _counter['n'] += 1
        fields = {
            'id': f"t{_counter['n']}",
            'date': '2025-01-15',
            'amount': -12340,
            'account_id': 'A1',
            'payee_id': 'P1',
            'category_id': category_id,
        }
        fields.update(overrides)
        return Transaction(**fields)

    return _make
