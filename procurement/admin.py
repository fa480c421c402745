"""
Procurement Admin Configuration
===============================
Register procurement models with Django admin interface.
"""

from django.contrib import admin
from .models import GoodsReceiptNote


@admin.register(GoodsReceiptNote)
class GoodsReceiptNoteAdmin(admin.ModelAdmin):
    list_display = ['grn_number', 'receipt_date', 'supplier', 'total_value', 'asset_count', 'created_at']
    list_filter = ['receipt_date']
    search_fields = ['grn_number', 'supplier', 'notes']
    readonly_fields = ['id', 'asset_count', 'created_at', 'updated_at', 'created_by', 'updated_by']
    date_hierarchy = 'receipt_date'

    fieldsets = (
        ('GRN Information', {
            'fields': ('grn_number', 'receipt_date', 'supplier', 'total_value')
        }),
        ('Notes', {
            'fields': ('notes', 'asset_count')
        }),
        ('Audit', {
            'fields': ('id', 'created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',)
        }),
    )

    def save_model(self, request, obj, form, change):
        """Set created_by/updated_by to current user."""
        obj.stamp_user(request.user)
        super().save_model(request, obj, form, change)
