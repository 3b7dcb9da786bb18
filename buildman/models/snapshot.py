"""
OrderSnapshot model.

One row per order holding the whole compiled document (configuration, BOM,
downstream module sections and workflow state). The row is also the
order's lock: writers take SELECT FOR UPDATE on it before any
load-modify-save cycle.
"""

import logging

from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

logger = logging.getLogger(__name__)


class WorkflowStage(models.TextChoices):
    """Order workflow stages, in the only order they may be reached."""

    ORDER_CREATED = "ORDER_CREATED", _("Order created")
    BOM_REVIEW = "BOM_REVIEW", _("BOM review")
    PROCUREMENT_PLANNING = "PROCUREMENT_PLANNING", _("Procurement planning")
    PROCUREMENT_STARTED = "PROCUREMENT_STARTED", _("Procurement started")
    MANUFACTURING_SCHEDULING = "MANUFACTURING_SCHEDULING", _("Manufacturing scheduling")
    MANUFACTURING_STARTED = "MANUFACTURING_STARTED", _("Manufacturing started")
    QUALITY_CONTROL = "QUALITY_CONTROL", _("Quality control")
    SHIPPING = "SHIPPING", _("Shipping")
    ORDER_COMPLETED = "ORDER_COMPLETED", _("Order completed")


class OrderSnapshot(models.Model):
    """
    Compiled document of an order.

    An empty document means the row exists only as a lock holder (created
    by a compile that has not saved yet); readers treat it as not found.
    """

    order_id = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_("order id"),
    )
    order_number = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("order number"),
    )
    current_stage = models.CharField(
        max_length=40,
        choices=WorkflowStage.choices,
        default=WorkflowStage.ORDER_CREATED,
        verbose_name=_("current stage"),
    )
    document = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_("document"),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    history = HistoricalRecords()

    class Meta:
        db_table = "buildman_order_snapshot"
        verbose_name = _("Order Snapshot")
        verbose_name_plural = _("Order Snapshots")
        ordering = ["-updated_at"]

    def __str__(self) -> str:
        return f"{self.order_number or self.order_id} ({self.current_stage})"

    @property
    def is_compiled(self) -> bool:
        return bool(self.document)

    def store(self, document: dict) -> None:
        """Replace the document, keeping the indexed columns in sync."""
        self.document = document
        self.order_number = document.get("metadata", {}).get("orderNumber", self.order_number)
        self.current_stage = document.get("workflowState", {}).get(
            "currentStage", self.current_stage
        )
        self.save(update_fields=["document", "order_number", "current_stage", "updated_at"])
