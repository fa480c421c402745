"""Tests for the pure list-filtering helpers."""

from types import SimpleNamespace

from core.filters import filter_items, matches, resolve


ROWS = [
    {'grn_number': 'PN-001', 'supplier': 'Hoa Phat Steel', 'total_value': 1500000},
    {'grn_number': 'PN-002', 'supplier': 'Viettel Store', 'total_value': 250000},
    {'grn_number': 'PN-003', 'supplier': None, 'total_value': 0},
]


class TestResolve:
    def test_dict_key(self):
        assert resolve({'a': 1}, 'a') == 1

    def test_dotted_attribute_path(self):
        item = SimpleNamespace(asset=SimpleNamespace(asset_name='Excavator'))
        assert resolve(item, 'asset.asset_name') == 'Excavator'

    def test_missing_step_returns_none(self):
        item = SimpleNamespace(asset=None)
        assert resolve(item, 'asset.asset_name') is None


class TestMatches:
    def test_case_insensitive(self):
        assert matches('Warehouse A', 'warehouse')

    def test_numbers_are_matched_as_text(self):
        assert matches(1500000, '1500')

    def test_none_never_matches(self):
        assert not matches(None, 'x')


class TestFilterItems:
    def test_blank_query_returns_everything(self):
        assert filter_items(ROWS, '', ['supplier']) == ROWS
        assert filter_items(ROWS, None, ['supplier']) == ROWS
        assert filter_items(ROWS, '   ', ['supplier']) == ROWS

    def test_matches_any_field(self):
        result = filter_items(ROWS, 'viettel', ['grn_number', 'supplier'])
        assert [r['grn_number'] for r in result] == ['PN-002']

    def test_preserves_order(self):
        result = filter_items(ROWS, 'pn-00', ['grn_number'])
        assert [r['grn_number'] for r in result] == ['PN-001', 'PN-002', 'PN-003']

    def test_query_is_trimmed(self):
        result = filter_items(ROWS, '  steel ', ['supplier'])
        assert len(result) == 1

    def test_no_match(self):
        assert filter_items(ROWS, 'nothing', ['grn_number', 'supplier']) == []

    def test_accepts_generators(self):
        result = filter_items((r for r in ROWS), '250000', ['total_value'])
        assert [r['grn_number'] for r in result] == ['PN-002']
