"""
Core Models - Base Classes
==========================
This module contains:
1. BaseModel - Abstract base class for ledger and procurement records
"""

import uuid
from django.db import models


# ============================================================================
# ABSTRACT BASE MODEL
# ============================================================================

class BaseModel(models.Model):
    """
    Abstract base model that provides common fields for all models.

    Fields:
    - UUID as primary key (system-assigned, never edited)
    - created_at, updated_at (automatic timestamps)
    - created_by, updated_by (acting user tracking)

    Usage:
        class MyModel(BaseModel):
            # Your fields here
            pass
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID)"
    )

    # Timestamps
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when record was created"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when record was last updated"
    )

    # User tracking (nullable for system-created records)
    created_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who created this record"
    )
    updated_by = models.UUIDField(
        null=True,
        blank=True,
        help_text="User who last updated this record"
    )

    class Meta:
        abstract = True  # This model won't create a database table
        ordering = ['-created_at']  # Default ordering by newest first

    def stamp_user(self, user):
        """
        Record the acting user on this instance.

        Sets created_by on first save and updated_by always.

        Args:
            user: User instance or None (system write)
        """
        user_id = getattr(user, 'id', None)
        if self._state.adding and not self.created_by:
            self.created_by = user_id
        self.updated_by = user_id
