"""
Buildman Models.

- OrderSnapshot: compiled order document + workflow stage (per-order lock row)
- ProductionTask: persisted production/testing tasks, unique per
  (order_id, build_number, task_id)
- ProcurementTracking: operational procurement records per order
"""

from buildman.models.procurement import ProcurementTracking
from buildman.models.snapshot import OrderSnapshot, WorkflowStage
from buildman.models.task import ProductionTask, TaskKind, TaskTestType

__all__ = [
    "OrderSnapshot",
    "WorkflowStage",
    "ProductionTask",
    "TaskKind",
    "TaskTestType",
    "ProcurementTracking",
]
