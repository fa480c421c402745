"""
Asset Ledger Services
=====================
Operations behind the asset screens and management commands:

1. Depreciation run - generate_depreciation()
2. Depreciation ledger - list_schedules(), summarize()
3. Location history - record_location_change(), list_history(), group_by_asset()
4. Allocation - allocate_asset(), return_asset(), list_allocations()
5. Maintenance - record_maintenance(), complete_maintenance(), list_maintenance()
6. Disposal - dispose_asset(), list_disposals(), disposal_totals()

Validation problems raise django's ValidationError before anything is
written. Database failures propagate (the depreciation run wraps them in
DepreciationRunError).
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Count, F, Sum
from django.utils import timezone

from core.filters import filter_items
from .exceptions import DepreciationRunError, UnsupportedDepreciationMethod
from .models import (
    Asset, AssetAllocation, AssetDisposal, AssetLocationHistory,
    AssetMaintenanceRecord, DepreciationSchedule,
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0')

# Statuses an asset can be allocated / disposed from
ALLOCATABLE_STATUSES = ['in_stock', 'active', 'ready_for_reallocation']
DISPOSABLE_STATUSES = ['in_stock', 'under_maintenance', 'ready_for_reallocation']


def _to_decimal(value, field):
    if value in (None, ''):
        return ZERO
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError({field: f"'{value}' is not a valid amount."})


# ============================================================================
# DEPRECIATION RUN
# ============================================================================

class DepreciationRun:
    """Outcome of one generate_depreciation() call."""

    def __init__(self, period_date):
        self.period_date = period_date
        self.generated = 0
        self.skipped = 0
        self.rejected = []
        self.out_of_sequence = []
        self.total_amount = ZERO

    def __repr__(self):
        return (
            f"<DepreciationRun {self.period_date:%Y-%m} generated={self.generated} "
            f"skipped={self.skipped} rejected={len(self.rejected)} "
            f"out_of_sequence={len(self.out_of_sequence)}>"
        )


def month_start(value=None):
    """First day of the month containing ``value`` (default: today)."""
    if value is None:
        value = timezone.localdate()
    elif isinstance(value, datetime):
        value = timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    return value.replace(day=1)


def depreciable_assets():
    """Assets with a depreciation policy in a depreciable status."""
    statuses = getattr(settings, 'ASSET_DEPRECIABLE_STATUSES', Asset.DEPRECIABLE_STATUSES)
    return Asset.objects.filter(
        depreciation_method__isnull=False,
        useful_life_months__isnull=False,
        current_status__in=statuses,
    ).exclude(depreciation_method='')


def calculate_monthly_depreciation(asset):
    """
    Monthly charge for an asset.

    Straight line: cost_basis / useful_life_months, rounded to the cent.

    Raises:
        UnsupportedDepreciationMethod: any other method
    """
    if asset.depreciation_method == Asset.STRAIGHT_LINE:
        cost = Decimal(str(asset.cost_basis))
        return (cost / Decimal(asset.useful_life_months)).quantize(CENT)
    raise UnsupportedDepreciationMethod(asset, asset.depreciation_method)


def generate_depreciation(as_of=None):
    """
    Charge one month of depreciation to every depreciable asset.

    The period is the month containing ``as_of`` (default: today). Assets
    that already have a schedule row for the period are skipped, so running
    twice in a month changes nothing. Assets already charged for a later
    month are left alone and listed in ``out_of_sequence``. All rows are
    computed first and written in one transaction.

    Args:
        as_of: date/datetime inside the period to generate (optional)

    Returns:
        DepreciationRun

    Raises:
        DepreciationRunError: the run failed and nothing was saved
    """
    period_date = month_start(as_of)
    run = DepreciationRun(period_date)
    logger.info("Starting depreciation run for %s", f"{period_date:%m/%Y}")

    try:
        with transaction.atomic():
            assets = list(depreciable_assets().select_for_update().order_by('asset_id'))
            already_done = set(
                DepreciationSchedule.objects.filter(
                    period_date=period_date,
                    asset__in=[asset.pk for asset in assets],
                ).values_list('asset', flat=True)
            )
            # Assets already charged for a later month cannot be back-filled
            charged_later = set(
                DepreciationSchedule.objects.filter(
                    period_date__gt=period_date,
                    asset__in=[asset.pk for asset in assets],
                ).values_list('asset', flat=True)
            )

            now = timezone.now()
            schedules = []
            changed = []
            for asset in assets:
                if asset.pk in already_done:
                    run.skipped += 1
                    continue
                if asset.pk in charged_later:
                    run.out_of_sequence.append(asset.asset_id)
                    continue

                try:
                    amount = calculate_monthly_depreciation(asset)
                except UnsupportedDepreciationMethod as exc:
                    logger.warning("%s", exc)
                    run.rejected.append(asset.asset_id)
                    continue

                accumulated = asset.accumulated_depreciation + amount
                nbv = Asset.compute_nbv(asset.cost_basis, accumulated)
                schedules.append(DepreciationSchedule(
                    asset=asset,
                    period_date=period_date,
                    depreciation_amount=amount,
                    accumulated_depreciation=accumulated,
                    nbv=nbv,
                ))

                asset.accumulated_depreciation = accumulated
                asset.nbv = nbv
                asset.updated_at = now
                changed.append(asset)
                run.total_amount += amount

            DepreciationSchedule.objects.bulk_create(schedules)
            Asset.objects.bulk_update(
                changed, ['accumulated_depreciation', 'nbv', 'updated_at']
            )
    except DatabaseError as exc:
        logger.exception("Depreciation run for %s failed", f"{period_date:%m/%Y}")
        raise DepreciationRunError(
            f"Depreciation run for {period_date:%m/%Y} failed: {exc}"
        ) from exc

    run.generated = len(schedules)
    logger.info(
        "Depreciation run for %s: %d generated, %d skipped, %d rejected, "
        "%d out of sequence, total %s",
        f"{period_date:%m/%Y}", run.generated, run.skipped, len(run.rejected),
        len(run.out_of_sequence), run.total_amount
    )
    return run


# ============================================================================
# DEPRECIATION LEDGER
# ============================================================================

def list_schedules(query=None):
    """Schedule rows with their asset, newest period first."""
    schedules = DepreciationSchedule.objects.select_related('asset').order_by(
        '-period_date', 'asset__asset_id'
    )
    return filter_items(schedules, query, ['asset.asset_name', 'asset.asset_id'])


def summarize():
    """
    Portfolio totals across all assets.

    Returns:
        dict: total_assets, total_cost_basis, total_accumulated_depreciation, total_nbv
    """
    totals = Asset.objects.aggregate(
        total_assets=Count('id'),
        total_cost_basis=Sum('cost_basis'),
        total_accumulated_depreciation=Sum('accumulated_depreciation'),
        total_nbv=Sum('nbv'),
    )
    return {
        'total_assets': totals['total_assets'] or 0,
        'total_cost_basis': totals['total_cost_basis'] or ZERO,
        'total_accumulated_depreciation': totals['total_accumulated_depreciation'] or ZERO,
        'total_nbv': totals['total_nbv'] or ZERO,
    }


# ============================================================================
# LOCATION HISTORY
# ============================================================================

def record_location_change(asset, location, notes='', moved_by=None, moved_at=None):
    """
    Append a location entry for an asset.

    Args:
        asset: Asset instance
        location: New location (required)
        notes: Move notes
        moved_by: Acting user
        moved_at: Move time (defaults to now)

    Returns:
        AssetLocationHistory
    """
    location = (location or '').strip()
    if not asset:
        raise ValidationError({'asset': 'Asset is required.'})
    if not location:
        raise ValidationError({'location': 'Location is required.'})

    with transaction.atomic():
        entry = AssetLocationHistory.objects.create(
            asset=asset,
            location=location,
            notes=notes or '',
            moved_by=moved_by,
            timestamp=moved_at or timezone.now(),
        )
        # A back-dated entry must not overwrite a newer location.
        latest = asset.location_history.order_by('-timestamp').values_list(
            'location', flat=True
        ).first()
        Asset.objects.filter(pk=asset.pk).update(current_location=latest)
        asset.current_location = latest

    logger.info("Asset %s moved to %s", asset.asset_id, location)
    return entry


def list_history(query=None):
    """Location entries with their asset, newest first."""
    entries = AssetLocationHistory.objects.select_related('asset', 'moved_by').order_by(
        '-timestamp'
    )
    return filter_items(entries, query, ['asset.asset_name', 'location'])


def _asset_key(entry):
    return entry.asset.asset_id if entry.asset_id else 'unknown'


def group_by_asset(entries):
    """
    Bucket entries by asset code, keeping each asset's relative order.

    Returns:
        dict: asset code -> list of entries (in first-seen asset order)
    """
    groups = {}
    for entry in entries:
        groups.setdefault(_asset_key(entry), []).append(entry)
    return groups


def current_locations(entries):
    """Asset code -> latest location, from a newest-first entry sequence."""
    locations = {}
    for entry in entries:
        locations.setdefault(_asset_key(entry), entry.location)
    return locations


# ============================================================================
# ALLOCATION
# ============================================================================

def allocate_asset(asset, allocated_to, purpose, allocated_by=None,
                   project_name='', expected_return_date=None, notes=''):
    """
    Hand an asset over to an employee.

    Returns:
        AssetAllocation
    """
    purpose = (purpose or '').strip()
    errors = {}
    if not asset:
        errors['asset'] = 'Asset is required.'
    if not allocated_to:
        errors['allocated_to'] = 'Recipient is required.'
    if not purpose:
        errors['purpose'] = 'Purpose is required.'
    if errors:
        raise ValidationError(errors)

    if asset.current_status not in ALLOCATABLE_STATUSES:
        raise ValidationError(
            f"Asset {asset.asset_id} cannot be allocated while "
            f"{asset.get_current_status_display().lower()}."
        )

    with transaction.atomic():
        allocation = AssetAllocation.objects.create(
            asset=asset,
            allocated_to=allocated_to,
            allocated_by=allocated_by,
            purpose=purpose,
            project_name=project_name or '',
            expected_return_date=expected_return_date,
            notes=notes or '',
        )
        asset.current_status = 'allocated'
        asset.save(update_fields=['current_status', 'updated_at'])

    logger.info("Asset %s allocated to %s", asset.asset_id, allocated_to.username)
    return allocation


def return_asset(allocation, return_condition='', reusability_percentage=None, notes=''):
    """
    Close an allocation and put the asset back.

    The asset goes back in stock when reusability is at least
    ASSET_REUSABLE_THRESHOLD percent (or not given), otherwise to maintenance.
    """
    if allocation.status == 'returned':
        raise ValidationError('This allocation has already been returned.')

    reusability = None
    if reusability_percentage not in (None, ''):
        reusability = _to_decimal(reusability_percentage, 'reusability_percentage')
        if not ZERO <= reusability <= Decimal('100'):
            raise ValidationError({'reusability_percentage': 'Must be between 0 and 100.'})

    threshold = Decimal(str(getattr(settings, 'ASSET_REUSABLE_THRESHOLD', 80)))
    new_status = 'in_stock' if reusability is None or reusability >= threshold else 'under_maintenance'

    with transaction.atomic():
        allocation.status = 'returned'
        allocation.actual_return_date = timezone.now()
        allocation.return_condition = return_condition or ''
        allocation.reusability_percentage = reusability
        if notes:
            allocation.notes = f"{allocation.notes}\n{notes}".strip()
        allocation.save()

        asset = allocation.asset
        asset.current_status = new_status
        asset.save(update_fields=['current_status', 'updated_at'])

    logger.info("Asset %s returned (%s)", asset.asset_id, new_status)
    return allocation


def refresh_overdue_allocations(today=None):
    """Flag active allocations past their expected return date. Returns the count."""
    today = today or timezone.localdate()
    return AssetAllocation.objects.filter(
        status='active',
        expected_return_date__lt=today,
    ).update(status='overdue')


def list_allocations(query=None, status=None):
    allocations = AssetAllocation.objects.select_related(
        'asset', 'allocated_to', 'allocated_by'
    ).order_by('-allocated_at')
    if status:
        allocations = allocations.filter(status=status)
    return filter_items(
        allocations, query,
        ['asset.asset_name', 'asset.asset_id', 'allocated_to.full_name', 'purpose', 'project_name']
    )


# ============================================================================
# MAINTENANCE
# ============================================================================

def record_maintenance(asset, maintenance_type, maintenance_date=None, cost=None,
                       description='', performed_by='', vendor='',
                       next_maintenance_date=None, reported_by=None):
    """
    Log maintenance work on an asset and add its cost to the asset's total.

    Returns:
        AssetMaintenanceRecord
    """
    errors = {}
    if not asset:
        errors['asset'] = 'Asset is required.'
    if not maintenance_type:
        errors['maintenance_type'] = 'Maintenance type is required.'
    elif maintenance_type not in dict(AssetMaintenanceRecord.MAINTENANCE_TYPES):
        errors['maintenance_type'] = f"Unknown maintenance type '{maintenance_type}'."
    if errors:
        raise ValidationError(errors)

    amount = _to_decimal(cost, 'cost')
    if amount < 0:
        raise ValidationError({'cost': 'Maintenance cost cannot be negative.'})
    if asset.current_status == 'disposed':
        raise ValidationError(f"Asset {asset.asset_id} has been disposed.")

    with transaction.atomic():
        record = AssetMaintenanceRecord.objects.create(
            asset=asset,
            maintenance_type=maintenance_type,
            maintenance_date=maintenance_date or timezone.localdate(),
            cost=amount,
            description=description or '',
            performed_by=performed_by or '',
            vendor=vendor or '',
            next_maintenance_date=next_maintenance_date,
            reported_by=reported_by,
        )
        Asset.objects.filter(pk=asset.pk).update(
            total_maintenance_cost=F('total_maintenance_cost') + amount,
            updated_at=timezone.now(),
        )
        asset.total_maintenance_cost = Asset.objects.values_list(
            'total_maintenance_cost', flat=True
        ).get(pk=asset.pk)

    logger.info(
        "Maintenance (%s) recorded for asset %s, cost %s",
        maintenance_type, asset.asset_id, amount
    )
    return record


def complete_maintenance(asset):
    """Move an asset out of maintenance, ready to be allocated again."""
    if asset.current_status != 'under_maintenance':
        raise ValidationError(
            f"Asset {asset.asset_id} is not under maintenance "
            f"({asset.get_current_status_display().lower()})."
        )
    asset.current_status = 'ready_for_reallocation'
    asset.save(update_fields=['current_status', 'updated_at'])
    logger.info("Asset %s ready for reallocation", asset.asset_id)
    return asset


def list_maintenance(query=None):
    records = AssetMaintenanceRecord.objects.select_related('asset', 'reported_by').order_by(
        '-maintenance_date', '-created_at'
    )
    return filter_items(
        records, query, ['asset.asset_name', 'asset.asset_id', 'maintenance_type']
    )


def maintenance_totals():
    totals = AssetMaintenanceRecord.objects.aggregate(
        total_records=Count('id'),
        total_cost=Sum('cost'),
    )
    return {
        'total_records': totals['total_records'] or 0,
        'total_cost': totals['total_cost'] or ZERO,
    }


# ============================================================================
# DISPOSAL
# ============================================================================

def dispose_asset(asset, disposal_reason, disposal_date=None, sale_price=None,
                  notes='', approved_by=None):
    """
    Dispose of an asset at its current net book value.

    gain_loss = sale_price - NBV at disposal. The asset becomes 'disposed'
    and drops out of future depreciation runs.

    Returns:
        AssetDisposal
    """
    errors = {}
    if not asset:
        errors['asset'] = 'Asset is required.'
    if not disposal_reason:
        errors['disposal_reason'] = 'Disposal reason is required.'
    elif disposal_reason not in dict(AssetDisposal.DISPOSAL_REASONS):
        errors['disposal_reason'] = f"Unknown disposal reason '{disposal_reason}'."
    if errors:
        raise ValidationError(errors)

    price = _to_decimal(sale_price, 'sale_price')
    if price < 0:
        raise ValidationError({'sale_price': 'Sale price cannot be negative.'})

    with transaction.atomic():
        asset = Asset.objects.select_for_update().get(pk=asset.pk)
        if asset.current_status not in DISPOSABLE_STATUSES:
            raise ValidationError(
                f"Asset {asset.asset_id} cannot be disposed while "
                f"{asset.get_current_status_display().lower()}."
            )

        disposal = AssetDisposal.objects.create(
            asset=asset,
            disposal_date=disposal_date or timezone.localdate(),
            disposal_reason=disposal_reason,
            nbv_at_disposal=asset.nbv,
            sale_price=price,
            gain_loss=price - asset.nbv,
            notes=notes or '',
            approved_by=approved_by,
        )
        asset.current_status = 'disposed'
        asset.save(update_fields=['current_status', 'updated_at'])

    logger.info(
        "Asset %s disposed (%s), gain/loss %s",
        asset.asset_id, disposal_reason, disposal.gain_loss
    )
    return disposal


def list_disposals(query=None):
    disposals = AssetDisposal.objects.select_related('asset', 'approved_by').order_by(
        '-disposal_date', '-created_at'
    )
    return filter_items(disposals, query, ['asset.asset_name', 'disposal_reason'])


def disposal_totals():
    totals = AssetDisposal.objects.aggregate(
        total_disposed=Count('id'),
        total_gain_loss=Sum('gain_loss'),
    )
    return {
        'total_disposed': totals['total_disposed'] or 0,
        'total_gain_loss': totals['total_gain_loss'] or ZERO,
    }
