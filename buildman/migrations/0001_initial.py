"""
Initial Buildman schema.

- OrderSnapshot (+ history)
- ProductionTask
- ProcurementTracking (+ history)
"""

import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


STAGE_CHOICES = [
    ("ORDER_CREATED", "Order created"),
    ("BOM_REVIEW", "BOM review"),
    ("PROCUREMENT_PLANNING", "Procurement planning"),
    ("PROCUREMENT_STARTED", "Procurement started"),
    ("MANUFACTURING_SCHEDULING", "Manufacturing scheduling"),
    ("MANUFACTURING_STARTED", "Manufacturing started"),
    ("QUALITY_CONTROL", "Quality control"),
    ("SHIPPING", "Shipping"),
    ("ORDER_COMPLETED", "Order completed"),
]

HISTORY_TYPE_CHOICES = [("+", "Created"), ("~", "Changed"), ("-", "Deleted")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ══════════════════════════════════════════════════════════════
        # ORDER SNAPSHOT
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="OrderSnapshot",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("order_id", models.CharField(max_length=64, unique=True, verbose_name="order id")),
                ("order_number", models.CharField(blank=True, max_length=100, verbose_name="order number")),
                (
                    "current_stage",
                    models.CharField(
                        choices=STAGE_CHOICES,
                        default="ORDER_CREATED",
                        max_length=40,
                        verbose_name="current stage",
                    ),
                ),
                ("document", models.JSONField(blank=True, default=dict, verbose_name="document")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "Order Snapshot",
                "verbose_name_plural": "Order Snapshots",
                "db_table": "buildman_order_snapshot",
                "ordering": ["-updated_at"],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # PRODUCTION TASK
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="ProductionTask",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("order_id", models.CharField(db_index=True, max_length=64, verbose_name="order id")),
                ("build_number", models.CharField(max_length=32, verbose_name="build number")),
                ("task_id", models.CharField(max_length=64, verbose_name="task id")),
                (
                    "kind",
                    models.CharField(
                        choices=[("production", "Production"), ("testing", "Testing")],
                        default="production",
                        max_length=20,
                        verbose_name="kind",
                    ),
                ),
                ("category", models.CharField(max_length=50, verbose_name="category")),
                ("title", models.CharField(max_length=200, verbose_name="title")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "estimated_time",
                    models.PositiveIntegerField(
                        default=0, help_text="Minutes", verbose_name="estimated time"
                    ),
                ),
                ("position", models.PositiveIntegerField(default=0, verbose_name="position")),
                (
                    "test_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("setup", "Setup"),
                            ("pass_fail", "Pass/fail"),
                            ("measurement", "Measurement"),
                            ("calibration", "Calibration"),
                        ],
                        max_length=20,
                        verbose_name="test type",
                    ),
                ),
                ("expected_result", models.TextField(blank=True, verbose_name="expected result")),
                ("unit", models.CharField(blank=True, max_length=20, verbose_name="unit")),
                (
                    "min_value",
                    models.DecimalField(
                        blank=True, decimal_places=3, max_digits=10, null=True, verbose_name="min value"
                    ),
                ),
                (
                    "max_value",
                    models.DecimalField(
                        blank=True, decimal_places=3, max_digits=10, null=True, verbose_name="max value"
                    ),
                ),
                (
                    "basin_number",
                    models.PositiveSmallIntegerField(blank=True, null=True, verbose_name="basin number"),
                ),
                ("completed", models.BooleanField(default=False, verbose_name="completed")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="completed at")),
                ("completed_by", models.CharField(blank=True, max_length=100, verbose_name="completed by")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "Production Task",
                "verbose_name_plural": "Production Tasks",
                "db_table": "buildman_production_task",
                "ordering": ["order_id", "build_number", "kind", "position"],
            },
        ),
        migrations.AddConstraint(
            model_name="productiontask",
            constraint=models.UniqueConstraint(
                fields=("order_id", "build_number", "task_id"),
                name="buildman_task_natural_key",
            ),
        ),
        # ══════════════════════════════════════════════════════════════
        # PROCUREMENT TRACKING
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="ProcurementTracking",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("order_id", models.CharField(max_length=64, unique=True, verbose_name="order id")),
                ("analysis_completed", models.BooleanField(default=False, verbose_name="analysis completed")),
                ("outsourced_parts", models.JSONField(blank=True, default=list, verbose_name="outsourced parts")),
                ("missing_parts", models.JSONField(blank=True, default=list, verbose_name="missing parts")),
                ("updated_by", models.CharField(blank=True, max_length=100, verbose_name="updated by")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "Procurement Tracking",
                "verbose_name_plural": "Procurement Tracking",
                "db_table": "buildman_procurement_tracking",
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # HISTORICAL RECORDS
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="HistoricalOrderSnapshot",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        auto_created=True, blank=True, db_index=True, verbose_name="ID"
                    ),
                ),
                ("order_id", models.CharField(db_index=True, max_length=64, verbose_name="order id")),
                ("order_number", models.CharField(blank=True, max_length=100, verbose_name="order number")),
                (
                    "current_stage",
                    models.CharField(
                        choices=STAGE_CHOICES,
                        default="ORDER_CREATED",
                        max_length=40,
                        verbose_name="current stage",
                    ),
                ),
                ("document", models.JSONField(blank=True, default=dict, verbose_name="document")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=HISTORY_TYPE_CHOICES, max_length=1)),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Order Snapshot",
                "verbose_name_plural": "historical Order Snapshots",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalProcurementTracking",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        auto_created=True, blank=True, db_index=True, verbose_name="ID"
                    ),
                ),
                ("order_id", models.CharField(db_index=True, max_length=64, verbose_name="order id")),
                ("analysis_completed", models.BooleanField(default=False, verbose_name="analysis completed")),
                ("outsourced_parts", models.JSONField(blank=True, default=list, verbose_name="outsourced parts")),
                ("missing_parts", models.JSONField(blank=True, default=list, verbose_name="missing parts")),
                ("updated_by", models.CharField(blank=True, max_length=100, verbose_name="updated by")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=HISTORY_TYPE_CHOICES, max_length=1)),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Procurement Tracking",
                "verbose_name_plural": "historical Procurement Tracking",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
