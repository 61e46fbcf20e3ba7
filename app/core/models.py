"""
Core base model providing common functionality for all domain models.

Base Classes:
    BaseModel: Abstract model with timestamps (created_at, updated_at)

Usage:
    from core.models import BaseModel

    class Refund(BaseModel):
        refund_id = models.CharField(max_length=64, unique=True)

Note:
    created_at defaults to "now" but can be supplied explicitly. Records
    mirrored from an external system keep the timestamp that system
    reported instead of the local insert time.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    """
    Abstract base model providing common fields for all models.

    Fields:
        created_at: Creation time, defaults to now, overridable on insert
        updated_at: Automatically updated whenever the object is saved
    """

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,  # Index for efficient time-based queries
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        # Default ordering by creation time (newest first)
        ordering = ["-created_at"]

    def __str__(self) -> str:
        """Default string representation using primary key."""
        return f"{self.__class__.__name__}(id={self.pk})"
