"""
ProductionTask model.

Persisted production and testing tasks. The natural key is
(order_id, build_number, task_id); regenerating tasks for an unchanged
configuration updates rows in place instead of adding new ones.
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class TaskKind(models.TextChoices):
    PRODUCTION = "production", _("Production")
    TESTING = "testing", _("Testing")


class TaskTestType(models.TextChoices):
    SETUP = "setup", _("Setup")
    PASS_FAIL = "pass_fail", _("Pass/fail")
    MEASUREMENT = "measurement", _("Measurement")
    CALIBRATION = "calibration", _("Calibration")


class ProductionTask(models.Model):
    """A production or testing task of one build."""

    order_id = models.CharField(max_length=64, db_index=True, verbose_name=_("order id"))
    build_number = models.CharField(max_length=32, verbose_name=_("build number"))
    task_id = models.CharField(max_length=64, verbose_name=_("task id"))

    kind = models.CharField(
        max_length=20,
        choices=TaskKind.choices,
        default=TaskKind.PRODUCTION,
        verbose_name=_("kind"),
    )
    category = models.CharField(max_length=50, verbose_name=_("category"))
    title = models.CharField(max_length=200, verbose_name=_("title"))
    description = models.TextField(blank=True, verbose_name=_("description"))
    estimated_time = models.PositiveIntegerField(
        default=0,
        verbose_name=_("estimated time"),
        help_text=_("Minutes"),
    )
    position = models.PositiveIntegerField(default=0, verbose_name=_("position"))

    # Testing
    test_type = models.CharField(
        max_length=20,
        choices=TaskTestType.choices,
        blank=True,
        verbose_name=_("test type"),
    )
    expected_result = models.TextField(blank=True, verbose_name=_("expected result"))
    unit = models.CharField(max_length=20, blank=True, verbose_name=_("unit"))
    min_value = models.DecimalField(
        max_digits=10, decimal_places=3, null=True, blank=True, verbose_name=_("min value")
    )
    max_value = models.DecimalField(
        max_digits=10, decimal_places=3, null=True, blank=True, verbose_name=_("max value")
    )
    basin_number = models.PositiveSmallIntegerField(
        null=True, blank=True, verbose_name=_("basin number")
    )

    # Execution
    completed = models.BooleanField(default=False, verbose_name=_("completed"))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_("completed at"))
    completed_by = models.CharField(max_length=100, blank=True, verbose_name=_("completed by"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    class Meta:
        db_table = "buildman_production_task"
        verbose_name = _("Production Task")
        verbose_name_plural = _("Production Tasks")
        ordering = ["order_id", "build_number", "kind", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["order_id", "build_number", "task_id"],
                name="buildman_task_natural_key",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}/{self.build_number}/{self.task_id}"

    def clean(self):
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValidationError(_("min_value must not exceed max_value."))

    def complete(self, user=None):
        """Mark the task as done."""
        self.completed = True
        self.completed_at = timezone.now()
        self.completed_by = getattr(user, "username", "") if user else ""
        self.save(update_fields=["completed", "completed_at", "completed_by", "updated_at"])
