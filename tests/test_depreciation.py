"""Tests for the monthly depreciation run."""

from datetime import date, datetime
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError, IntegrityError

from assets import services
from assets.exceptions import DepreciationRunError, UnsupportedDepreciationMethod
from assets.models import Asset, DepreciationSchedule
from assets.services import (
    calculate_monthly_depreciation, depreciable_assets, generate_depreciation,
    month_start,
)

pytestmark = pytest.mark.django_db

MARCH = date(2025, 3, 15)


def refreshed(asset):
    asset.refresh_from_db()
    return asset


class TestMonthStart:
    def test_date_is_normalised_to_first_of_month(self):
        assert month_start(date(2025, 3, 31)) == date(2025, 3, 1)

    def test_naive_datetime(self):
        assert month_start(datetime(2025, 12, 9, 23, 0)) == date(2025, 12, 1)

    def test_defaults_to_current_month(self):
        assert month_start().day == 1


class TestMonthlyCharge:
    def test_straight_line(self, make_asset):
        asset = make_asset(cost_basis=Decimal('120000000'), useful_life_months=60)
        assert calculate_monthly_depreciation(asset) == Decimal('2000000.00')

    def test_rounded_to_cent(self, make_asset):
        asset = make_asset(cost_basis=Decimal('1000'), useful_life_months=3)
        assert calculate_monthly_depreciation(asset) == Decimal('333.33')

    @pytest.mark.parametrize('method', ['declining_balance', 'units_of_production'])
    def test_other_methods_are_rejected(self, make_asset, method):
        asset = make_asset(depreciation_method=method)
        with pytest.raises(UnsupportedDepreciationMethod):
            calculate_monthly_depreciation(asset)


class TestEligibility:
    def test_only_active_and_allocated_with_policy(self, make_asset):
        active = make_asset(current_status='active')
        allocated = make_asset(current_status='allocated')
        make_asset(current_status='in_stock')
        make_asset(current_status='under_maintenance')
        make_asset(current_status='disposed')
        make_asset(depreciation_method=None)
        make_asset(useful_life_months=None)

        assert set(depreciable_assets()) == {active, allocated}


class TestGenerateDepreciation:
    def test_example_asset(self, make_asset):
        asset = make_asset(
            asset_id='A', cost_basis=Decimal('120000000'), useful_life_months=60
        )

        run = generate_depreciation(as_of=MARCH)

        assert run.generated == 1
        assert run.period_date == date(2025, 3, 1)
        schedule = DepreciationSchedule.objects.get(asset=asset)
        assert schedule.period_date == date(2025, 3, 1)
        assert schedule.depreciation_amount == Decimal('2000000')
        assert schedule.accumulated_depreciation == Decimal('2000000')
        assert schedule.nbv == Decimal('118000000')
        assert schedule.is_processed is False

        asset = refreshed(asset)
        assert asset.accumulated_depreciation == Decimal('2000000')
        assert asset.nbv == Decimal('118000000')

    def test_second_run_in_same_month_changes_nothing(self, make_asset):
        asset = make_asset(cost_basis=Decimal('120000000'), useful_life_months=60)
        generate_depreciation(as_of=date(2025, 3, 1))

        run = generate_depreciation(as_of=date(2025, 3, 28))

        assert run.generated == 0
        assert run.skipped == 1
        assert DepreciationSchedule.objects.filter(asset=asset).count() == 1
        asset = refreshed(asset)
        assert asset.accumulated_depreciation == Decimal('2000000')
        assert asset.nbv == Decimal('118000000')

    def test_next_month_accumulates(self, make_asset):
        asset = make_asset(cost_basis=Decimal('1200000'), useful_life_months=12)
        generate_depreciation(as_of=date(2025, 3, 1))
        generate_depreciation(as_of=date(2025, 4, 1))

        asset = refreshed(asset)
        assert asset.accumulated_depreciation == Decimal('200000')
        assert asset.nbv == Decimal('1000000')
        april = DepreciationSchedule.objects.get(asset=asset, period_date=date(2025, 4, 1))
        assert april.accumulated_depreciation == Decimal('200000')

    def test_nbv_never_negative(self, make_asset):
        asset = make_asset(
            cost_basis=Decimal('1000'),
            useful_life_months=10,
            accumulated_depreciation=Decimal('950'),
        )

        generate_depreciation(as_of=MARCH)

        asset = refreshed(asset)
        assert asset.accumulated_depreciation == Decimal('1050')
        assert asset.nbv == Decimal('0')
        assert DepreciationSchedule.objects.get(asset=asset).nbv == Decimal('0')

    def test_nbv_invariant_holds_for_every_asset(self, make_asset):
        for cost, life in [('5000000', 36), ('777777', 7), ('90000', 120)]:
            make_asset(cost_basis=Decimal(cost), useful_life_months=life)

        generate_depreciation(as_of=MARCH)

        for asset in Asset.objects.all():
            assert asset.nbv == max(Decimal('0'), asset.cost_basis - asset.accumulated_depreciation)
            schedule = asset.depreciation_schedules.get()
            expected = asset.cost_basis / asset.useful_life_months
            assert abs(schedule.depreciation_amount - expected) < Decimal('0.01')

    def test_disposed_assets_are_excluded(self, make_asset):
        asset = make_asset(current_status='disposed')

        run = generate_depreciation(as_of=MARCH)

        assert run.generated == 0
        assert not DepreciationSchedule.objects.filter(asset=asset).exists()
        assert refreshed(asset).accumulated_depreciation == Decimal('0')

    def test_unsupported_method_is_reported_not_charged(self, make_asset):
        supported = make_asset(asset_id='SL-1')
        declining = make_asset(asset_id='DB-1', depreciation_method='declining_balance')

        run = generate_depreciation(as_of=MARCH)

        assert run.generated == 1
        assert run.rejected == ['DB-1']
        assert DepreciationSchedule.objects.filter(asset=supported).exists()
        assert not DepreciationSchedule.objects.filter(asset=declining).exists()
        assert refreshed(declining).accumulated_depreciation == Decimal('0')

    def test_existing_row_for_one_asset_does_not_block_others(self, make_asset):
        first = make_asset()
        second = make_asset()
        DepreciationSchedule.objects.create(
            asset=first,
            period_date=date(2025, 3, 1),
            depreciation_amount=Decimal('100000'),
            accumulated_depreciation=Decimal('100000'),
            nbv=Decimal('1100000'),
        )

        run = generate_depreciation(as_of=MARCH)

        assert run.generated == 1
        assert run.skipped == 1
        assert DepreciationSchedule.objects.filter(asset=second).count() == 1

    def test_total_amount(self, make_asset):
        make_asset(cost_basis=Decimal('1200000'), useful_life_months=12)
        make_asset(cost_basis=Decimal('600000'), useful_life_months=6)

        run = generate_depreciation(as_of=MARCH)

        assert run.total_amount == Decimal('200000')

    def test_no_assets(self):
        run = generate_depreciation(as_of=MARCH)
        assert run.generated == 0
        assert run.skipped == 0
        assert run.rejected == []

    def test_database_failure_saves_nothing(self, make_asset):
        asset = make_asset()

        with mock.patch.object(
            DepreciationSchedule.objects, 'bulk_create',
            side_effect=DatabaseError('connection lost'),
        ):
            with pytest.raises(DepreciationRunError, match='connection lost'):
                generate_depreciation(as_of=MARCH)

        assert DepreciationSchedule.objects.count() == 0
        assert refreshed(asset).accumulated_depreciation == Decimal('0')

    def test_concurrent_insert_for_same_period_fails_whole_run(self, make_asset):
        first = make_asset()
        second = make_asset()
        calculate = services.calculate_monthly_depreciation

        def charged_elsewhere_first(asset):
            if asset.pk == second.pk:
                DepreciationSchedule.objects.create(
                    asset=asset,
                    period_date=date(2025, 3, 1),
                    depreciation_amount=Decimal('100000'),
                    accumulated_depreciation=Decimal('100000'),
                    nbv=Decimal('1100000'),
                )
            return calculate(asset)

        with mock.patch.object(
            services, 'calculate_monthly_depreciation', side_effect=charged_elsewhere_first
        ):
            with pytest.raises(DepreciationRunError) as exc:
                generate_depreciation(as_of=MARCH)

        assert isinstance(exc.value.__cause__, IntegrityError)
        assert DepreciationSchedule.objects.count() == 0
        assert refreshed(first).accumulated_depreciation == Decimal('0')
        assert refreshed(second).accumulated_depreciation == Decimal('0')


class TestPeriodSequence:
    def test_earlier_month_after_later_is_not_charged(self, make_asset):
        asset = make_asset(asset_id='TS-A', cost_basis=Decimal('1200000'), useful_life_months=12)
        generate_depreciation(as_of=date(2025, 4, 1))

        run = generate_depreciation(as_of=date(2025, 3, 1))

        assert run.generated == 0
        assert run.out_of_sequence == ['TS-A']
        assert run.total_amount == Decimal('0')
        assert not DepreciationSchedule.objects.filter(
            asset=asset, period_date=date(2025, 3, 1)
        ).exists()
        assert refreshed(asset).accumulated_depreciation == Decimal('100000')

    def test_only_assets_charged_later_are_held_back(self, make_asset):
        ahead = make_asset(asset_id='TS-A')
        generate_depreciation(as_of=date(2025, 4, 1))
        fresh = make_asset(asset_id='TS-B')

        run = generate_depreciation(as_of=date(2025, 3, 1))

        assert run.generated == 1
        assert run.out_of_sequence == ['TS-A']
        assert DepreciationSchedule.objects.filter(asset=fresh).count() == 1
        assert DepreciationSchedule.objects.filter(asset=ahead).count() == 1

    def test_snapshots_grow_with_period(self, make_asset):
        asset = make_asset(cost_basis=Decimal('1200000'), useful_life_months=12)
        for as_of in [date(2025, 3, 1), date(2025, 5, 1), date(2025, 4, 1), date(2025, 2, 1)]:
            generate_depreciation(as_of=as_of)

        rows = list(asset.depreciation_schedules.order_by('period_date'))

        assert [r.period_date for r in rows] == [date(2025, 3, 1), date(2025, 5, 1)]
        assert rows[0].accumulated_depreciation < rows[1].accumulated_depreciation
        assert rows[-1].accumulated_depreciation == refreshed(asset).accumulated_depreciation
