"""
Procurement Models
==================
This module contains:
1. GoodsReceiptNote - Intake record for goods/assets received from a supplier

A GRN seeds the cost basis of the assets received on it. Assets point back to
their GRN manually (Asset.grn); nothing here creates Asset rows.
"""

from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone

from core.models import BaseModel


# ============================================================================
# GOODS RECEIPT NOTE
# ============================================================================

class GoodsReceiptNote(BaseModel):
    """
    Goods Receipt Note - Records receipt of goods from a supplier.
    """

    grn_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="GRN number as written on the receipt (e.g., 'PN-2025-0012')"
    )
    receipt_date = models.DateField(
        default=timezone.localdate,
        help_text="Date the goods were received"
    )
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="Supplier name"
    )
    total_value = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(0)],
        help_text="Total value of the receipt"
    )
    notes = models.TextField(
        blank=True,
        default='',
        help_text="Notes"
    )

    class Meta:
        db_table = 'goods_receipt_notes'
        verbose_name = 'Goods Receipt Note'
        verbose_name_plural = 'Goods Receipt Notes'
        ordering = ['-receipt_date', '-created_at']
        indexes = [
            models.Index(fields=['grn_number']),
            models.Index(fields=['-receipt_date']),
        ]

    def __str__(self):
        if self.supplier:
            return f"{self.grn_number} - {self.supplier}"
        return self.grn_number

    @property
    def asset_count(self):
        """Number of assets linked to this GRN."""
        return self.assets.count()
