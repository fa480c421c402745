"""
Asset Management Admin Configuration
====================================
Register asset models with Django admin interface.
"""

from django import forms
from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.http import HttpResponseRedirect
from django.utils.html import format_html

from .exceptions import AssetError
from .models import (
    Asset, AssetAllocation, AssetDisposal, AssetLocationHistory,
    AssetMaintenanceRecord, DepreciationSchedule,
)
from . import services


STATUS_COLORS = {
    'in_stock': 'gray',
    'active': 'green',
    'allocated': '#1d4ed8',
    'under_maintenance': 'orange',
    'ready_for_reallocation': '#0891b2',
    'disposed': 'red',
}


class ServiceCreateMixin:
    """
    Admin whose new rows are written by a service call.
    A rejected call is shown as an error message and nothing is saved.
    """

    def create_with_service(self, request, obj, create):
        try:
            created = create()
        except ValidationError as exc:
            obj.pk = None
            self.message_user(request, ' '.join(exc.messages), level=messages.ERROR)
            return
        obj.pk = created.pk

    def log_addition(self, request, obj, message):
        if obj.pk is None:
            return None
        return super().log_addition(request, obj, message)

    def response_add(self, request, obj, post_url_continue=None):
        if obj.pk is None:
            return HttpResponseRedirect(request.path)
        return super().response_add(request, obj, post_url_continue)


# Inline admin for viewing location history on Asset page
class AssetLocationHistoryInline(admin.TabularInline):
    model = AssetLocationHistory
    extra = 0
    fields = ['timestamp', 'location', 'notes', 'moved_by']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


# Inline admin for viewing depreciation charges on Asset page
class DepreciationScheduleInline(admin.TabularInline):
    model = DepreciationSchedule
    extra = 0
    fields = [
        'period_date', 'depreciation_amount', 'accumulated_depreciation',
        'nbv', 'is_processed'
    ]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class AssetMaintenanceRecordInline(admin.TabularInline):
    model = AssetMaintenanceRecord
    extra = 0
    fields = ['maintenance_date', 'maintenance_type', 'cost', 'performed_by', 'vendor']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = [
        'asset_id', 'asset_name', 'asset_type', 'status_badge',
        'current_location', 'depreciation_method', 'useful_life_months',
        'cost_basis', 'accumulated_depreciation', 'nbv'
    ]
    list_filter = [
        'current_status', 'asset_type', 'depreciation_method', 'created_at'
    ]
    search_fields = [
        'asset_id', 'asset_name', 'sku', 'brand', 'cost_center',
        'current_location', 'grn__grn_number'
    ]
    readonly_fields = [
        'id', 'accumulated_depreciation', 'nbv', 'total_maintenance_cost', 'current_location',
        'fully_depreciated_on', 'remaining_life_months',
        'created_at', 'updated_at'
    ]
    inlines = [
        DepreciationScheduleInline, AssetLocationHistoryInline, AssetMaintenanceRecordInline
    ]

    fieldsets = (
        ('Asset Information', {
            'fields': (
                'asset_id', 'asset_name', 'sku', 'asset_type', 'brand', 'unit',
                'cost_center'
            )
        }),
        ('Intake', {
            'fields': ('grn', 'activation_date', 'cost_basis')
        }),
        ('Depreciation', {
            'fields': (
                'depreciation_method', 'useful_life_months',
                'accumulated_depreciation', 'nbv', 'total_maintenance_cost',
                'fully_depreciated_on', 'remaining_life_months'
            )
        }),
        ('Status & Location', {
            'fields': ('current_status', 'current_location')
        }),
        ('Additional', {
            'fields': ('notes',)
        }),
        ('Audit', {
            'fields': ('id', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['generate_monthly_depreciation', 'complete_maintenance']

    def get_readonly_fields(self, request, obj=None):
        """Cost basis is editable only when the asset is first entered."""
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            fields.append('cost_basis')
        return fields

    def save_model(self, request, obj, form, change):
        obj.stamp_user(request.user)
        super().save_model(request, obj, form, change)

    def status_badge(self, obj):
        """Display asset status with color badge."""
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">'
            '{}</span>',
            STATUS_COLORS.get(obj.current_status, 'gray'),
            obj.get_current_status_display()
        )
    status_badge.short_description = 'Status'

    def generate_monthly_depreciation(self, request, queryset):
        """Run this month's depreciation for the whole ledger."""
        try:
            run = services.generate_depreciation()
        except AssetError as exc:
            self.message_user(request, str(exc), level=messages.ERROR)
            return

        self.message_user(
            request,
            f'Depreciation for {run.period_date:%m/%Y} generated for {run.generated} asset(s).'
        )
        if run.rejected:
            self.message_user(
                request,
                f'Unsupported depreciation method, not charged: {", ".join(run.rejected)}',
                level=messages.WARNING
            )
        if run.out_of_sequence:
            self.message_user(
                request,
                f'Already charged for a later month, not charged: {", ".join(run.out_of_sequence)}',
                level=messages.WARNING
            )
    generate_monthly_depreciation.short_description = "Generate this month's depreciation"

    def complete_maintenance(self, request, queryset):
        """Bulk action to release repaired assets for reallocation."""
        count = 0
        for asset in queryset.filter(current_status='under_maintenance'):
            services.complete_maintenance(asset)
            count += 1
        self.message_user(request, f'{count} asset(s) ready for reallocation.')
    complete_maintenance.short_description = 'Maintenance Complete'


@admin.register(DepreciationSchedule)
class DepreciationScheduleAdmin(admin.ModelAdmin):
    list_display = [
        'asset', 'period_date', 'depreciation_amount',
        'accumulated_depreciation', 'nbv', 'is_processed'
    ]
    list_filter = ['is_processed', 'period_date']
    search_fields = ['asset__asset_id', 'asset__asset_name']
    readonly_fields = [
        'id', 'asset', 'period_date', 'depreciation_amount',
        'accumulated_depreciation', 'nbv', 'created_at'
    ]
    date_hierarchy = 'period_date'

    fieldsets = (
        ('Asset & Period', {
            'fields': ('asset', 'period_date')
        }),
        ('Depreciation', {
            'fields': ('depreciation_amount', 'accumulated_depreciation', 'nbv')
        }),
        ('Processing', {
            'fields': ('is_processed',)
        }),
        ('Audit', {
            'fields': ('id', 'created_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['mark_as_processed']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def mark_as_processed(self, request, queryset):
        """Bulk action to flag charges as processed downstream."""
        count = queryset.filter(is_processed=False).update(is_processed=True)
        self.message_user(request, f'{count} depreciation record(s) marked as processed.')
    mark_as_processed.short_description = 'Mark as Processed'


@admin.register(AssetLocationHistory)
class AssetLocationHistoryAdmin(ServiceCreateMixin, admin.ModelAdmin):
    list_display = ['asset', 'location', 'timestamp', 'moved_by', 'notes']
    list_filter = ['timestamp']
    search_fields = ['asset__asset_id', 'asset__asset_name', 'location']
    date_hierarchy = 'timestamp'
    fields = ['asset', 'location', 'notes']

    def get_readonly_fields(self, request, obj=None):
        """Entries are immutable once written."""
        if obj is not None:
            return ['asset', 'location', 'timestamp', 'notes', 'moved_by']
        return []

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        """New entries go through the service so the asset location follows."""
        if change:
            return
        self.create_with_service(request, obj, lambda: services.record_location_change(
            asset=obj.asset,
            location=obj.location,
            notes=obj.notes,
            moved_by=request.user,
        ))


class AssetAllocationForm(forms.ModelForm):
    class Meta:
        model = AssetAllocation
        fields = [
            'asset', 'allocated_to', 'purpose', 'project_name',
            'expected_return_date', 'notes'
        ]

    def clean_asset(self):
        asset = self.cleaned_data['asset']
        if self.instance._state.adding and asset.current_status not in services.ALLOCATABLE_STATUSES:
            raise forms.ValidationError(
                f'Asset cannot be allocated while {asset.get_current_status_display().lower()}.'
            )
        return asset


@admin.register(AssetAllocation)
class AssetAllocationAdmin(ServiceCreateMixin, admin.ModelAdmin):
    form = AssetAllocationForm
    list_display = [
        'asset', 'allocated_to', 'purpose', 'project_name', 'status',
        'allocated_at', 'expected_return_date', 'actual_return_date'
    ]
    list_filter = ['status', 'return_condition', 'allocated_at']
    search_fields = [
        'asset__asset_id', 'asset__asset_name',
        'allocated_to__full_name', 'purpose', 'project_name'
    ]
    readonly_fields = [
        'id', 'status', 'allocated_at', 'actual_return_date',
        'return_condition', 'reusability_percentage'
    ]
    date_hierarchy = 'allocated_at'

    actions = ['return_to_stock', 'flag_overdue']

    def get_readonly_fields(self, request, obj=None):
        """Asset and recipient are fixed once the allocation exists."""
        fields = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            fields += ['asset', 'allocated_to']
        return fields

    def save_model(self, request, obj, form, change):
        """New allocations go through the service so the asset status follows."""
        if change:
            super().save_model(request, obj, form, change)
            return
        self.create_with_service(request, obj, lambda: services.allocate_asset(
            asset=obj.asset,
            allocated_to=obj.allocated_to,
            purpose=obj.purpose,
            allocated_by=request.user,
            project_name=obj.project_name,
            expected_return_date=obj.expected_return_date,
            notes=obj.notes,
        ))

    def return_to_stock(self, request, queryset):
        """Bulk action to return allocated assets in good condition."""
        count = 0
        for allocation in queryset.exclude(status='returned'):
            services.return_asset(allocation, return_condition='good')
            count += 1
        self.message_user(request, f'{count} asset(s) returned to stock.')
    return_to_stock.short_description = 'Return to Stock'

    def flag_overdue(self, request, queryset):
        count = services.refresh_overdue_allocations()
        self.message_user(request, f'{count} allocation(s) flagged as overdue.')
    flag_overdue.short_description = 'Flag Overdue Allocations'


@admin.register(AssetMaintenanceRecord)
class AssetMaintenanceRecordAdmin(ServiceCreateMixin, admin.ModelAdmin):
    list_display = [
        'asset', 'maintenance_type', 'maintenance_date', 'cost',
        'performed_by', 'vendor', 'next_maintenance_date'
    ]
    list_filter = ['maintenance_type', 'maintenance_date']
    search_fields = ['asset__asset_id', 'asset__asset_name', 'performed_by', 'vendor']
    date_hierarchy = 'maintenance_date'
    fields = [
        'asset', 'maintenance_type', 'maintenance_date', 'cost', 'description',
        'performed_by', 'vendor', 'next_maintenance_date'
    ]

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        """Records go through the service so the asset's cost total follows."""
        self.create_with_service(request, obj, lambda: services.record_maintenance(
            asset=obj.asset,
            maintenance_type=obj.maintenance_type,
            maintenance_date=obj.maintenance_date,
            cost=obj.cost,
            description=obj.description,
            performed_by=obj.performed_by,
            vendor=obj.vendor,
            next_maintenance_date=obj.next_maintenance_date,
            reported_by=request.user,
        ))


class AssetDisposalForm(forms.ModelForm):
    class Meta:
        model = AssetDisposal
        fields = ['asset', 'disposal_date', 'disposal_reason', 'sale_price', 'notes']

    def clean_asset(self):
        asset = self.cleaned_data['asset']
        if asset.current_status not in services.DISPOSABLE_STATUSES:
            raise forms.ValidationError(
                f'Asset cannot be disposed while {asset.get_current_status_display().lower()}.'
            )
        return asset


@admin.register(AssetDisposal)
class AssetDisposalAdmin(ServiceCreateMixin, admin.ModelAdmin):
    form = AssetDisposalForm
    list_display = [
        'asset', 'disposal_date', 'disposal_reason', 'nbv_at_disposal',
        'sale_price', 'gain_loss', 'approved_by'
    ]
    list_filter = ['disposal_reason', 'disposal_date']
    search_fields = ['asset__asset_id', 'asset__asset_name', 'notes']
    date_hierarchy = 'disposal_date'

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        """Disposals go through the service (NBV snapshot, status change)."""
        self.create_with_service(request, obj, lambda: services.dispose_asset(
            asset=obj.asset,
            disposal_reason=obj.disposal_reason,
            disposal_date=obj.disposal_date,
            sale_price=obj.sale_price,
            notes=obj.notes,
            approved_by=request.user,
        ))
