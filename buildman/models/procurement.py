"""
ProcurementTracking model.

Operational procurement data entered by the procurement team, per order.
Merged with BOM-derived candidates at read time; tracked records win.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords


class ProcurementTracking(models.Model):
    """
    Tracked outsourced parts of an order.

    outsourced_parts structure:
        [
            {
                "partNumber": "T2-DL27-KIT",
                "status": "SENT",
                "sentAt": "2026-10-01T09:00:00+00:00",
                "assignee": "maria",
            },
            ...
        ]
    """

    order_id = models.CharField(max_length=64, unique=True, verbose_name=_("order id"))
    analysis_completed = models.BooleanField(default=False, verbose_name=_("analysis completed"))
    outsourced_parts = models.JSONField(default=list, blank=True, verbose_name=_("outsourced parts"))
    missing_parts = models.JSONField(default=list, blank=True, verbose_name=_("missing parts"))
    updated_by = models.CharField(max_length=100, blank=True, verbose_name=_("updated by"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    history = HistoricalRecords()

    class Meta:
        db_table = "buildman_procurement_tracking"
        verbose_name = _("Procurement Tracking")
        verbose_name_plural = _("Procurement Tracking")

    def __str__(self) -> str:
        return f"Procurement {self.order_id}"

    def as_tracking(self) -> dict:
        """Shape consumed by the procurement reconciler."""
        return {
            "analysisCompleted": self.analysis_completed,
            "outsourcedParts": list(self.outsourced_parts or []),
            "missingParts": list(self.missing_parts or []),
            "lastUpdated": self.updated_at.isoformat() if self.updated_at else None,
            "lastUpdatedBy": self.updated_by or None,
        }
