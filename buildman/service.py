"""
Buildman Service - Facade over the compiler stages.

The stages themselves are pure functions in buildman.services; this class
wires them to the configured backends, the snapshot store and the models.

Usage:
    from buildman import build, BuildError

    # Compile an order: normalize → BOM → analysis → tasks → snapshot
    result = build.compile(raw_order)
    for warning in result.warnings:
        print(warning.code, warning.message)

    # Persist tasks (idempotent on order/build/task id)
    for plan in result.task_plans:
        build.create_tasks(result.order_id, plan)

    # Procurement
    view = build.procurement("ORD-1")
    build.update_procurement(
        "ORD-1",
        [{"partNumber": "T2-DL27-KIT", "status": "SENT"}],
        milestone="PARTS_SENT",
    )

    # Workflow
    build.advance("ORD-1", "QUALITY_CONTROL")
"""

import logging

from django.db import transaction
from django.utils import timezone

from buildman.conf import get_bom_service, get_catalog_backend, get_snapshot_store
from buildman.exceptions import BOMServiceError, BuildError
from buildman.models import ProcurementTracking, ProductionTask, TaskKind
from buildman.results import CompileResult, ProcurementView, TaskPlan
from buildman.services.analysis import BOMAnalysis, analyze_bom
from buildman.services.configuration import (
    BuildConfiguration,
    normalize_header,
    normalize_order,
)
from buildman.services.expansion import BOMExpander
from buildman.services.procurement import reconcile
from buildman.services.snapshot import build_document
from buildman.services.tasks import generate_tasks
from buildman.signals import procurement_updated, snapshot_compiled

logger = logging.getLogger(__name__)


class Build:
    """
    Main API for Buildman.

    Every method is a classmethod; the class holds no state.
    """

    # ══════════════════════════════════════════════════════════════
    # COMPILER STAGES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def validate(cls, raw: dict) -> dict:
        """
        Validate a raw order.

        Raises:
            BuildError: INVALID_ORDER with the serializer errors
        """
        from buildman.api.serializers import OrderInputSerializer

        serializer = OrderInputSerializer(data=raw)
        if not serializer.is_valid():
            raise BuildError("INVALID_ORDER", errors=serializer.errors)
        return serializer.validated_data

    @classmethod
    def normalize(cls, raw: dict) -> list[BuildConfiguration]:
        """
        One BuildConfiguration per declared build number.

        Raises:
            BuildError: INVALID_ORDER
            ConfigurationIncompleteError: a build has no sink configuration
        """
        return normalize_order(cls.validate(raw))

    @classmethod
    def expand(cls, configuration: BuildConfiguration, catalog=None):
        """Expand one build against the catalog. Returns (roots, warnings)."""
        expander = BOMExpander(catalog or get_catalog_backend())
        return expander.expand_build(configuration)

    @classmethod
    def analyze(cls, hierarchical) -> BOMAnalysis:
        return analyze_bom(list(hierarchical))

    @classmethod
    def generate_tasks(cls, configuration: BuildConfiguration) -> TaskPlan:
        """
        Production and testing tasks of one build.

        Independent of BOM generation: only the configuration is read.
        """
        plan = generate_tasks(configuration)
        logger.info(
            f"Generated {len(plan.production)} production and {len(plan.testing)} "
            f"testing tasks for build {configuration.build_number}",
            extra={
                "build_number": configuration.build_number,
                "production": len(plan.production),
                "testing": len(plan.testing),
            },
        )
        return plan

    # ══════════════════════════════════════════════════════════════
    # COMPILE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def compile(cls, raw: dict, store=None, bom_service=None) -> CompileResult:
        """
        Compile an order into its snapshot document.

        The BOM service runs first; if it fails nothing is saved. A recompile
        of an existing order keeps its stored workflow state.

        Raises:
            BuildError: INVALID_ORDER, INVALID_SINK_LENGTH
            ConfigurationIncompleteError: a build has no sink configuration
            BOMCycleError: the catalog has a cycle reachable from the order
            BOMServiceError: the BOM service failed
        """
        data = cls.validate(raw)
        header = normalize_header(data)
        configurations = normalize_order(data)
        order_id = header.order_id

        store = store or get_snapshot_store()
        bom_service = bom_service or get_bom_service()

        try:
            response = bom_service.generate(configurations)
        except BuildError:
            raise
        except Exception as e:
            logger.error(
                f"BOM service failed for order {order_id}: {e}",
                extra={"order_id": order_id},
            )
            raise BOMServiceError(error=str(e)) from e

        if not response.success:
            logger.error(
                f"BOM service rejected order {order_id}",
                extra={"order_id": order_id, "error": response.error},
            )
            raise BOMServiceError(error=response.error)

        analysis = analyze_bom(response.hierarchical)
        task_plans = [generate_tasks(configuration) for configuration in configurations]

        warnings = list(response.warnings)
        for plan in task_plans:
            warnings.extend(plan.warnings)

        document = build_document(
            header,
            configurations,
            response,
            analysis,
            task_plans,
            warnings,
            timezone.now(),
        )

        with store.locked(order_id):
            existing = store.load(order_id)
            if existing and existing.get("workflowState"):
                state = existing["workflowState"]
                document["workflowState"] = state
                document["metadata"]["status"] = state.get("currentStage")
                document["orderDetails"]["status"] = state.get("currentStage")
            store.save(order_id, document)

        logger.info(
            f"Compiled order {order_id}: {response.total_items} BOM items, "
            f"{len(warnings)} warnings",
            extra={
                "order_id": order_id,
                "builds": list(header.build_numbers),
                "bom_items": response.total_items,
                "warnings": len(warnings),
            },
        )

        snapshot_compiled.send(
            sender=cls, order_id=order_id, document=document, warnings=warnings
        )

        return CompileResult(
            order_id=order_id,
            document=document,
            task_plans=task_plans,
            warnings=warnings,
        )

    @classmethod
    def snapshot(cls, order_id: str, store=None) -> dict:
        """
        Return the compiled document of an order.

        Raises:
            BuildError: SNAPSHOT_NOT_FOUND
        """
        document = (store or get_snapshot_store()).load(order_id)
        if document is None:
            raise BuildError("SNAPSHOT_NOT_FOUND", order_id=order_id)
        return document

    # ══════════════════════════════════════════════════════════════
    # TASKS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @transaction.atomic
    def create_tasks(cls, order_id: str, plan: TaskPlan) -> list[ProductionTask]:
        """
        Persist a task plan.

        Keyed by (order_id, build_number, task_id): running it again for the
        same plan updates the rows in place. Completion fields are never
        touched.
        """
        tasks = []
        specs = [(TaskKind.PRODUCTION, spec) for spec in plan.production]
        specs += [(TaskKind.TESTING, spec) for spec in plan.testing]

        position = {TaskKind.PRODUCTION: 0, TaskKind.TESTING: 0}
        created_count = 0

        for kind, spec in specs:
            position[kind] += 1
            defaults = {
                "kind": kind,
                "category": spec.category,
                "title": spec.title,
                "description": spec.description,
                "estimated_time": spec.estimated_time,
                "position": position[kind],
                "basin_number": spec.basin_number,
            }
            if kind == TaskKind.TESTING:
                defaults.update(
                    test_type=spec.test_type,
                    expected_result=spec.expected_result or "",
                    unit=spec.unit or "",
                    min_value=spec.min_value,
                    max_value=spec.max_value,
                )

            task, created = ProductionTask.objects.update_or_create(
                order_id=order_id,
                build_number=plan.build_number,
                task_id=spec.task_id,
                defaults=defaults,
            )
            created_count += int(created)
            tasks.append(task)

        logger.info(
            f"Persisted {len(tasks)} tasks for {order_id}/{plan.build_number} "
            f"({created_count} new)",
            extra={
                "order_id": order_id,
                "build_number": plan.build_number,
                "tasks": len(tasks),
                "created": created_count,
            },
        )
        return tasks

    # ══════════════════════════════════════════════════════════════
    # PROCUREMENT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def procurement(cls, order_id: str, store=None) -> ProcurementView:
        """
        Merged procurement view: BOM candidates overlaid with tracked records.

        Raises:
            BuildError: SNAPSHOT_NOT_FOUND
        """
        document = cls.snapshot(order_id, store=store)
        bom_items = document.get("billOfMaterials", {}).get("flattenedWithRelationships") or []
        tracking = ProcurementTracking.objects.filter(order_id=order_id).first()
        return reconcile(order_id, bom_items, tracking.as_tracking() if tracking else None)

    @classmethod
    def update_procurement(
        cls,
        order_id: str,
        parts: list[dict] | None = None,
        analysis_completed: bool | None = None,
        missing_parts: list | None = None,
        milestone: str | None = None,
        user=None,
    ) -> ProcurementTracking:
        """
        Save tracked procurement data.

        Each part record is overlaid on the tracked record with the same
        partNumber (its keys win); records for new part numbers are added.

        Args:
            order_id: Order to update
            parts: tracked part records, {"partNumber": ..., "status": ...}
            analysis_completed: set the analysis flag (unchanged if None)
            missing_parts: replace the missing parts list (unchanged if None)
            milestone: ANALYSIS_COMPLETE, PARTS_SENT or PARTS_RECEIVED;
                moves the order workflow to the matching stage
            user: who made the change

        Raises:
            BuildError: INVALID_PROCUREMENT with the serializer errors
        """
        from buildman.api.serializers import ProcurementUpdateSerializer

        payload = {}
        if parts is not None:
            payload["outsourced_parts"] = parts
        if analysis_completed is not None:
            payload["analysis_completed"] = analysis_completed
        if missing_parts is not None:
            payload["missing_parts"] = missing_parts
        if milestone is not None:
            payload["milestone"] = milestone

        serializer = ProcurementUpdateSerializer(data=payload)
        if not serializer.is_valid():
            raise BuildError("INVALID_PROCUREMENT", order_id=order_id, errors=serializer.errors)
        data = serializer.validated_data

        with transaction.atomic():
            tracking, _ = ProcurementTracking.objects.select_for_update().get_or_create(
                order_id=order_id
            )

            if "outsourced_parts" in data:
                records = {p.get("partNumber"): p for p in tracking.outsourced_parts or []}
                for record in data["outsourced_parts"]:
                    key = record["partNumber"]
                    records[key] = {**records.get(key, {}), **dict(record)}
                tracking.outsourced_parts = list(records.values())
            if "analysis_completed" in data:
                tracking.analysis_completed = data["analysis_completed"]
            if "missing_parts" in data:
                tracking.missing_parts = list(data["missing_parts"])
            tracking.updated_by = getattr(user, "username", "") if user else ""
            tracking.save()

        store = get_snapshot_store()
        snapshot = tracking.as_tracking()
        if store.load(order_id) is not None:
            store.record_procurement(order_id, {"tracking": snapshot})

        logger.info(
            f"Procurement updated for {order_id}",
            extra={
                "order_id": order_id,
                "parts": len(tracking.outsourced_parts or []),
                "milestone": milestone,
            },
        )

        procurement_updated.send(
            sender=cls, order_id=order_id, tracking=snapshot, milestone=milestone
        )
        return tracking

    # ══════════════════════════════════════════════════════════════
    # WORKFLOW
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def advance(cls, order_id: str, stage: str, extra_data: dict | None = None, store=None) -> dict:
        """
        Record a workflow stage. Returns the new workflowState.

        Raises:
            BuildError: SNAPSHOT_NOT_FOUND, INVALID_STAGE
        """
        return (store or get_snapshot_store()).advance(order_id, stage, extra_data)


# Module-level alias
build = Build
