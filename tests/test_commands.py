"""Tests for the management commands."""

import csv
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest
from dateutil.relativedelta import relativedelta
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from assets.models import DepreciationSchedule

pytestmark = pytest.mark.django_db


def run(*args):
    out = StringIO()
    call_command(*args, stdout=out)
    return out.getvalue()


class TestGenerateDepreciationCommand:
    def test_explicit_period(self, make_asset):
        asset = make_asset(cost_basis=Decimal('1200000'), useful_life_months=12)

        output = run('generate_depreciation', '--period', '2025-03')

        assert '✓ Generated depreciation for 1 asset(s)' in output
        assert '100,000.00' in output
        schedule = DepreciationSchedule.objects.get(asset=asset)
        assert schedule.period_date == date(2025, 3, 1)

    def test_rerun_reports_skipped(self, make_asset):
        make_asset()
        run('generate_depreciation', '--period', '2025-03')

        output = run('generate_depreciation', '--period', '2025-03')

        assert 'for 0 asset(s)' in output
        assert 'Already generated this period: 1 asset(s)' in output
        assert DepreciationSchedule.objects.count() == 1

    def test_unsupported_method_warning(self, make_asset):
        make_asset(asset_id='DB-1', depreciation_method='declining_balance')

        output = run('generate_depreciation', '--period', '2025-03')

        assert 'DB-1' in output
        assert not DepreciationSchedule.objects.exists()

    def test_earlier_period_after_later_one_is_reported(self, make_asset):
        asset = make_asset(asset_id='TS-A', cost_basis=Decimal('1200000'), useful_life_months=12)
        run('generate_depreciation', '--period', '2025-04')

        output = run('generate_depreciation', '--period', '2025-03')

        assert 'for 0 asset(s)' in output
        assert 'Already charged for a later month, not charged: TS-A' in output
        assert list(
            DepreciationSchedule.objects.filter(asset=asset).values_list('period_date', flat=True)
        ) == [date(2025, 4, 1)]

    def test_previous_month(self, make_asset):
        make_asset()

        run('generate_depreciation', '--previous')

        period = DepreciationSchedule.objects.get().period_date
        assert period == timezone.localdate().replace(day=1) - relativedelta(months=1)

    def test_invalid_period(self):
        with pytest.raises(CommandError, match='Invalid period'):
            run('generate_depreciation', '--period', '2025-13')

    def test_period_and_previous_are_exclusive(self):
        with pytest.raises(CommandError):
            run('generate_depreciation', '--period', '2025-03', '--previous')


class TestAssetReportCommand:
    def test_summary(self, make_asset):
        make_asset(cost_basis=Decimal('1200000'), current_status='active')
        make_asset(cost_basis=Decimal('800000'), current_status='in_stock')

        output = run('asset_report')

        assert '=== ASSET LEDGER ===' in output
        assert 'Total Assets: 2' in output
        assert 'Cost Basis: 2,000,000.00' in output
        assert 'Net Book Value: 2,000,000.00' in output
        assert 'Maintenance: 0 record(s) (cost 0.00)' in output
        assert '  active: 1' in output
        assert '  in_stock: 1' in output

    def test_export_csv(self, make_asset, tmp_path):
        make_asset(asset_id='TS-A', asset_name='Excavator', current_status='active')
        make_asset(asset_id='TS-B', asset_name='Laptop', current_status='in_stock')
        export = tmp_path / 'report.csv'

        output = run('asset_report', '--status', 'active', '--export', str(export))

        assert f'✓ Report exported to {export}' in output
        with open(export, newline='', encoding='utf-8') as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == 'Asset ID'
        assert rows[0][-1] == 'NBV'
        assert [row[0] for row in rows[1:]] == ['TS-A']
        assert rows[1][1] == 'Excavator'

    def test_unknown_status(self):
        with pytest.raises(CommandError, match='Unknown status'):
            run('asset_report', '--status', 'scrapped')
