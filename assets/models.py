"""
Asset Management Models
=======================
This module contains:
1. Asset - Fixed assets tracked in the asset ledger (equipment, tools, materials)
2. DepreciationSchedule - One depreciation charge per asset per month
3. AssetLocationHistory - Append-only log of where an asset has been moved
4. AssetAllocation - Hand-over of an asset to an employee/project
5. AssetMaintenanceRecord - Maintenance, repair and inspection log
6. AssetDisposal - Terminal disposal record (sale, scrap, loss)

Supports:
- Running-balance bookkeeping (cost basis, accumulated depreciation, NBV)
- Monthly straight-line depreciation with one schedule row per period
- Location tracking with full history
- Allocation / return, maintenance and disposal lifecycle
"""

import uuid
from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone
from dateutil.relativedelta import relativedelta

from core.models import BaseModel
from procurement.models import GoodsReceiptNote


# ============================================================================
# ASSET MODEL
# ============================================================================

class Asset(BaseModel):
    """
    Fixed asset in the asset ledger.

    save() keeps nbv = max(0, cost_basis - accumulated_depreciation).

    clean() (admin forms, full_clean()) rejects edits that would break the
    ledger:
    - accumulated_depreciation never decreases
    - cost_basis is fixed once the asset exists
    """

    STATUS_CHOICES = [
        ('in_stock', 'In Stock'),
        ('active', 'Active'),
        ('allocated', 'Allocated'),
        ('under_maintenance', 'Under Maintenance'),
        ('ready_for_reallocation', 'Ready for Reallocation'),
        ('disposed', 'Disposed'),
    ]

    ASSET_TYPES = [
        ('equipment', 'Equipment'),
        ('tools', 'Tools'),
        ('materials', 'Materials'),
    ]

    STRAIGHT_LINE = 'straight_line'
    DEPRECIATION_METHODS = [
        (STRAIGHT_LINE, 'Straight Line'),
        ('declining_balance', 'Declining Balance'),
        ('units_of_production', 'Units of Production'),
    ]

    # Statuses eligible for monthly depreciation
    DEPRECIABLE_STATUSES = ['active', 'allocated']

    # Basic Information
    asset_id = models.CharField(
        max_length=50,
        unique=True,
        help_text="Human-readable asset code (e.g., 'TS-0001')"
    )
    asset_name = models.CharField(
        max_length=200,
        help_text="Asset name"
    )
    sku = models.CharField(
        max_length=50,
        blank=True,
        default='',
        help_text="Stock keeping unit"
    )
    asset_type = models.CharField(
        max_length=20,
        choices=ASSET_TYPES,
        default='equipment',
        help_text="Asset type"
    )
    brand = models.CharField(
        max_length=100,
        blank=True,
        default='',
        help_text="Brand / manufacturer"
    )
    unit = models.CharField(
        max_length=20,
        blank=True,
        default='',
        help_text="Unit of measure"
    )
    cost_center = models.CharField(
        max_length=50,
        blank=True,
        default='',
        help_text="Cost center code for accounting"
    )

    # Intake
    grn = models.ForeignKey(
        GoodsReceiptNote,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assets',
        help_text="Goods receipt note the asset arrived on"
    )
    activation_date = models.DateField(
        null=True,
        blank=True,
        help_text="Date the asset was put into service"
    )

    # Financial
    cost_basis = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Original value (set once at intake)"
    )
    accumulated_depreciation = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Total accumulated depreciation"
    )
    nbv = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Net book value (cost basis - accumulated depreciation, floored at 0)"
    )
    total_maintenance_cost = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Running total of maintenance costs"
    )

    # Depreciation policy
    depreciation_method = models.CharField(
        max_length=30,
        choices=DEPRECIATION_METHODS,
        null=True,
        blank=True,
        help_text="Depreciation calculation method"
    )
    useful_life_months = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(600)],
        help_text="Expected useful life in months"
    )

    # Status & Location
    current_status = models.CharField(
        max_length=30,
        choices=STATUS_CHOICES,
        default='in_stock',
        help_text="Current asset status"
    )
    current_location = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="Latest recorded location"
    )

    notes = models.TextField(
        blank=True,
        default='',
        help_text="Additional notes"
    )

    class Meta:
        db_table = 'asset_master_data'
        verbose_name = 'Asset'
        verbose_name_plural = 'Assets'
        ordering = ['asset_id']
        indexes = [
            models.Index(fields=['asset_id']),
            models.Index(fields=['current_status']),
            models.Index(fields=['depreciation_method', 'current_status']),
        ]

    def __str__(self):
        return f"{self.asset_id} - {self.asset_name}"

    def save(self, *args, **kwargs):
        """Keep NBV in step with cost basis and accumulated depreciation."""
        self.nbv = self.compute_nbv(self.cost_basis, self.accumulated_depreciation)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'accumulated_depreciation' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'nbv'}
        super().save(*args, **kwargs)

    def clean(self):
        """
        Validate ledger invariants against the stored row.
        - Cost basis cannot change after intake
        - Accumulated depreciation cannot go down
        """
        super().clean()
        if self._state.adding:
            return

        stored = Asset.objects.filter(pk=self.pk).values(
            'cost_basis', 'accumulated_depreciation'
        ).first()
        if not stored:
            return

        errors = {}
        if self.cost_basis != stored['cost_basis']:
            errors['cost_basis'] = 'Cost basis is fixed at intake and cannot be changed.'
        if self.accumulated_depreciation < stored['accumulated_depreciation']:
            errors['accumulated_depreciation'] = 'Accumulated depreciation cannot decrease.'
        if errors:
            raise ValidationError(errors)

    @staticmethod
    def compute_nbv(cost_basis, accumulated_depreciation):
        """Net book value, floored at zero."""
        return max(Decimal('0'), Decimal(str(cost_basis or 0)) - Decimal(str(accumulated_depreciation or 0)))

    @property
    def is_depreciable(self):
        """Check if the asset takes part in the monthly depreciation run."""
        return bool(
            self.depreciation_method
            and self.useful_life_months
            and self.current_status in self.DEPRECIABLE_STATUSES
        )

    @property
    def is_fully_depreciated(self):
        return self.nbv <= 0

    @property
    def fully_depreciated_on(self):
        """Date the useful life ends (activation date + useful life)."""
        if not self.activation_date or not self.useful_life_months:
            return None
        return self.activation_date + relativedelta(months=self.useful_life_months)

    @property
    def remaining_life_months(self):
        """Whole months of useful life left as of today."""
        end = self.fully_depreciated_on
        if end is None:
            return None
        delta = relativedelta(end, timezone.localdate())
        return max(delta.years * 12 + delta.months, 0)


# ============================================================================
# DEPRECIATION SCHEDULE
# ============================================================================

class DepreciationSchedule(models.Model):
    """
    Monthly depreciation charge for one asset.

    Written once per asset per period by the depreciation run; the values are
    snapshots of the asset's running totals after the charge.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(
        Asset,
        on_delete=models.PROTECT,
        related_name='depreciation_schedules',
        help_text="Asset"
    )
    period_date = models.DateField(
        help_text="First day of the depreciation month"
    )
    depreciation_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Depreciation for this period"
    )
    accumulated_depreciation = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Accumulated depreciation after this period"
    )
    nbv = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Net book value after this period"
    )
    is_processed = models.BooleanField(
        default=False,
        help_text="Has this charge been processed downstream (e.g. posted to accounting)?"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'depreciation_schedules'
        verbose_name = 'Depreciation Schedule'
        verbose_name_plural = 'Depreciation Schedules'
        ordering = ['-period_date', 'asset__asset_id']
        constraints = [
            models.UniqueConstraint(
                fields=['asset', 'period_date'],
                name='unique_depreciation_per_asset_period',
            ),
        ]
        indexes = [
            models.Index(fields=['-period_date']),
            models.Index(fields=['is_processed']),
        ]

    def __str__(self):
        return f"{self.asset.asset_id} - {self.period_date:%m/%Y}"

    def clean(self):
        super().clean()
        if self.period_date and self.period_date.day != 1:
            raise ValidationError({'period_date': 'Period date must be the first day of a month.'})


# ============================================================================
# ASSET LOCATION HISTORY
# ============================================================================

class AssetLocationHistory(models.Model):
    """
    Track where an asset has been.

    Entries are never edited; the newest entry is the current location.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(
        Asset,
        on_delete=models.CASCADE,
        related_name='location_history',
        help_text="Asset"
    )
    location = models.CharField(
        max_length=200,
        help_text="Location (site, warehouse, room...)"
    )
    timestamp = models.DateTimeField(
        default=timezone.now,
        help_text="When the asset was moved"
    )
    notes = models.TextField(
        blank=True,
        default='',
        help_text="Move notes"
    )
    moved_by = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='asset_moves',
        help_text="User who recorded the move"
    )

    class Meta:
        db_table = 'asset_location_history'
        verbose_name = 'Asset Location History'
        verbose_name_plural = 'Asset Location Histories'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['asset', '-timestamp']),
        ]

    def __str__(self):
        return f"{self.asset.asset_id} @ {self.location} ({self.timestamp:%Y-%m-%d %H:%M})"


# ============================================================================
# ASSET ALLOCATION
# ============================================================================

class AssetAllocation(models.Model):
    """
    Track asset hand-over to employees and projects.
    """

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('returned', 'Returned'),
        ('overdue', 'Overdue'),
    ]

    RETURN_CONDITIONS = [
        ('good', 'Good Condition'),
        ('fair', 'Fair Condition'),
        ('damaged', 'Damaged'),
        ('lost', 'Lost'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(
        Asset,
        on_delete=models.CASCADE,
        related_name='allocations',
        help_text="Asset"
    )
    allocated_to = models.ForeignKey(
        'users.User',
        on_delete=models.PROTECT,
        related_name='asset_allocations',
        help_text="Employee holding the asset"
    )
    allocated_by = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='asset_allocations_made',
        help_text="User who made the allocation"
    )
    purpose = models.CharField(
        max_length=255,
        help_text="Purpose of the allocation"
    )
    project_name = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="Project the asset is used on"
    )
    allocated_at = models.DateTimeField(
        default=timezone.now,
        help_text="Allocation timestamp"
    )
    expected_return_date = models.DateField(
        null=True,
        blank=True,
        help_text="Expected return date"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='active',
        help_text="Allocation status"
    )

    # Return details
    actual_return_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Return timestamp"
    )
    return_condition = models.CharField(
        max_length=20,
        choices=RETURN_CONDITIONS,
        blank=True,
        default='',
        help_text="Condition of asset on return"
    )
    reusability_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Estimated reusability on return (%)"
    )
    notes = models.TextField(
        blank=True,
        default='',
        help_text="Allocation remarks"
    )

    class Meta:
        db_table = 'asset_allocations'
        verbose_name = 'Asset Allocation'
        verbose_name_plural = 'Asset Allocations'
        ordering = ['-allocated_at']
        indexes = [
            models.Index(fields=['asset', '-allocated_at']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.asset.asset_id} → {self.allocated_to.full_name} ({self.status})"

    @property
    def is_overdue(self):
        """Active allocation past its expected return date."""
        if self.status == 'returned' or not self.expected_return_date:
            return False
        return timezone.localdate() > self.expected_return_date


# ============================================================================
# ASSET MAINTENANCE
# ============================================================================

class AssetMaintenanceRecord(models.Model):
    """
    Track asset maintenance, repairs, and inspections.
    Each record's cost is added to Asset.total_maintenance_cost.
    """

    MAINTENANCE_TYPES = [
        ('preventive', 'Preventive Maintenance'),
        ('corrective', 'Corrective/Repair'),
        ('inspection', 'Inspection'),
        ('upgrade', 'Upgrade'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(
        Asset,
        on_delete=models.PROTECT,
        related_name='maintenance_records',
        help_text="Asset"
    )
    maintenance_type = models.CharField(
        max_length=20,
        choices=MAINTENANCE_TYPES,
        help_text="Type of maintenance"
    )
    maintenance_date = models.DateField(
        default=timezone.localdate,
        help_text="Date of maintenance"
    )
    cost = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Maintenance cost"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="Description of work performed"
    )
    performed_by = models.CharField(
        max_length=100,
        blank=True,
        default='',
        help_text="Person/team who performed maintenance"
    )
    vendor = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="External vendor (if applicable)"
    )
    next_maintenance_date = models.DateField(
        null=True,
        blank=True,
        help_text="Next scheduled maintenance date"
    )
    reported_by = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='maintenance_reports',
        help_text="User who recorded the maintenance"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'maintenance_records'
        verbose_name = 'Maintenance Record'
        verbose_name_plural = 'Maintenance Records'
        ordering = ['-maintenance_date', '-created_at']
        indexes = [
            models.Index(fields=['asset', '-maintenance_date']),
            models.Index(fields=['maintenance_type']),
        ]

    def __str__(self):
        return f"{self.asset.asset_id} - {self.get_maintenance_type_display()} ({self.maintenance_date})"


# ============================================================================
# ASSET DISPOSAL
# ============================================================================

class AssetDisposal(models.Model):
    """
    Disposal of an asset. Once disposed the asset leaves the depreciation run.
    """

    DISPOSAL_REASONS = [
        ('obsolete', 'Obsolete'),
        ('damaged', 'Damaged'),
        ('sold', 'Sold'),
        ('lost', 'Lost'),
        ('other', 'Other'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    asset = models.ForeignKey(
        Asset,
        on_delete=models.PROTECT,
        related_name='disposals',
        help_text="Asset"
    )
    disposal_date = models.DateField(
        default=timezone.localdate,
        help_text="Date of disposal"
    )
    disposal_reason = models.CharField(
        max_length=20,
        choices=DISPOSAL_REASONS,
        help_text="Reason for disposal"
    )
    nbv_at_disposal = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        help_text="Net book value at disposal"
    )
    sale_price = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Sale/scrap value"
    )
    gain_loss = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        help_text="Sale price - NBV at disposal"
    )
    notes = models.TextField(
        blank=True,
        default='',
        help_text="Disposal notes"
    )
    approved_by = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='asset_disposals_approved',
        help_text="User who approved the disposal"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'asset_disposals'
        verbose_name = 'Asset Disposal'
        verbose_name_plural = 'Asset Disposals'
        ordering = ['-disposal_date', '-created_at']

    def __str__(self):
        return f"{self.asset.asset_id} - {self.get_disposal_reason_display()} ({self.disposal_date})"
