import pytest

from ynab_autocategorize.core.models import Transaction, build_category_map, format_amount


@pytest.mark.unit
class TestModels:

    def test_build_category_map_flattens_groups(self):
        groups = [
            {'name': 'Everyday', 'hidden': False, 'categories': [
                {'id': 'C1', 'name': 'Groceries', 'hidden': False, 'deleted': False},
                {'id': 'C2', 'name': 'Old', 'hidden': True, 'deleted': False},
            ]},
            {'name': 'Archive', 'hidden': True, 'categories': [
                {'id': 'C3', 'name': 'Visible In Hidden Group', 'hidden': False, 'deleted': False},
            ]},
            {'name': 'Empty', 'categories': None},
        ]

        category_map = build_category_map(groups)

        assert list(category_map) == ['C1', 'C2', 'C3']
        assert category_map['C1'].group_name == 'Everyday'
        assert category_map['C1'].eligible
        assert not category_map['C2'].eligible
        assert category_map['C3'].hidden is True

    @pytest.mark.parametrize("milliunits, expected", [
        (-12340, '-$12.34'),
        (5000, '$5.00'),
        (0, '$0.00'),
    ])
    def test_format_amount(self, milliunits, expected):
        assert format_amount(milliunits) == expected

    def test_transaction_from_api(self):
        txn = Transaction.from_api({
            'id': 't1',
            'date': '2025-02-03',
            'amount': -4500,
            'account_id': 'A1',
            'payee_id': 'P1',
            'payee_name': 'Shell',
            'category_id': None,
            'transfer_account_id': None,
            'subtransactions': [],
            'deleted': False,
            'memo': 'fuel',
        })

        assert txn.id == 't1'
        assert txn.amount == -4500
        assert txn.import_payee_name is None
        assert not txn.is_split
        assert not txn.is_transfer

    def test_split_and_transfer_flags(self):
        txn = Transaction.from_api({
            'id': 't2', 'date': '2025-02-03', 'amount': 100,
            'transfer_account_id': 'A2', 'subtransactions': [{'id': 's1'}],
        })

        assert txn.is_split
        assert txn.is_transfer
