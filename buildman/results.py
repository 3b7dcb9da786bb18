"""
Buildman Result Types.

Structured results for compile, task generation and procurement operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from buildman.services.tasks import ProductionTaskSpec, TestingTaskSpec


@dataclass(frozen=True)
class BuildWarning:
    """
    A recovered, best-effort event.

    Warnings never abort a compile. They are logged where they happen and
    collected on the result so callers can show them.
    """

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.context}


@dataclass
class TaskPlan:
    """Production and testing tasks generated for one build."""

    build_number: str
    production: list[ProductionTaskSpec] = field(default_factory=list)
    testing: list[TestingTaskSpec] = field(default_factory=list)
    warnings: list[BuildWarning] = field(default_factory=list)

    @property
    def task_ids(self) -> list[str]:
        return [t.task_id for t in self.production] + [t.task_id for t in self.testing]


@dataclass
class ProcurementView:
    """
    Merged procurement picture for an order.

    items: BOM-derived candidates overlaid with tracked records
    summary: counts by status
    procurement_needed: True if the BOM holds any outsourced leg/feet part
    """

    order_id: str
    items: list[dict] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)
    procurement_needed: bool = False
    analysis_completed: bool = False
    missing_parts: list = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "orderId": self.order_id,
            "procurementItems": self.items,
            "summary": self.summary,
            "procurementNeeded": self.procurement_needed,
            "analysisCompleted": self.analysis_completed,
            "missingParts": self.missing_parts,
        }


@dataclass
class CompileResult:
    """
    Result of compiling an order.

    document: the persisted snapshot document
    task_plans: one TaskPlan per build number, in declaration order
    warnings: BOM and task warnings, in the order they occurred
    """

    order_id: str
    document: dict
    task_plans: list[TaskPlan] = field(default_factory=list)
    warnings: list[BuildWarning] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0
