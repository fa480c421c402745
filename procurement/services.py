"""
GRN Recorder
============
Create/replace Goods Receipt Notes and list them for the receipt screen.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from core.filters import filter_items
from .models import GoodsReceiptNote

logger = logging.getLogger(__name__)

# Fields shown in the GRN list; the search box matches any of them.
GRN_SEARCH_FIELDS = ['grn_number', 'receipt_date', 'supplier', 'total_value', 'notes']


def _parse_amount(value):
    if value in (None, ''):
        return Decimal('0')
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError({'total_value': f"'{value}' is not a valid amount."})


def _parse_receipt_date(value):
    if not value:
        return timezone.localdate()
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise ValidationError({'receipt_date': f"'{value}' is not a valid date (YYYY-MM-DD)."})
        return parsed
    return value


def save_grn(data, existing_id=None, user=None):
    """
    Create a GRN, or fully replace an existing one.

    Args:
        data: dict with grn_number, receipt_date, supplier, total_value, notes
        existing_id: pk of the GRN to overwrite (optional)
        user: Acting user, recorded as created_by on insert

    Returns:
        GoodsReceiptNote

    Raises:
        ValidationError: grn_number missing or already used, bad amount/date
        GoodsReceiptNote.DoesNotExist: existing_id not found
    """
    grn_number = (data.get('grn_number') or '').strip()
    if not grn_number:
        raise ValidationError({'grn_number': 'GRN number is required.'})

    fields = {
        'grn_number': grn_number,
        'receipt_date': _parse_receipt_date(data.get('receipt_date')),
        'supplier': (data.get('supplier') or '').strip(),
        'total_value': _parse_amount(data.get('total_value')),
        'notes': data.get('notes') or '',
    }

    if existing_id:
        grn = GoodsReceiptNote.objects.get(pk=existing_id)
        # Full overwrite: every editable field comes from ``data``.
        for name, value in fields.items():
            setattr(grn, name, value)
    else:
        grn = GoodsReceiptNote(**fields)
    grn.stamp_user(user)
    grn.full_clean()

    try:
        with transaction.atomic():
            grn.save()
    except IntegrityError:
        raise ValidationError({'grn_number': f'GRN number {grn_number} already exists.'})

    logger.info(
        "%s GRN %s (%s)",
        'Updated' if existing_id else 'Created', grn.grn_number, grn.total_value
    )
    return grn


def list_grns(query=None):
    """All GRNs, newest receipt first, filtered by the search text."""
    grns = GoodsReceiptNote.objects.order_by('-receipt_date', '-created_at')
    return filter_items(grns, query, GRN_SEARCH_FIELDS)
