# forum/models/base.py
"""
Base model classes providing common functionality for all models.
"""

from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model providing timestamp fields.
    """

    created_at = models.DateTimeField(
        db_column="CreatedAt",
        auto_now_add=True,
        help_text="Timestamp when the record was created",
    )
    updated_at = models.DateTimeField(
        db_column="UpdatedAt",
        auto_now=True,
        help_text="Timestamp when the record was last updated",
    )

    class Meta:
        abstract = True
        get_latest_by = "created_at"
