"""
Snapshot document builder.

Assembles the compiled order document. Every top-level key is read by a
different downstream module (manufacturing, QC, procurement, shipping), so
keys may be added but never removed or renamed.
"""

from __future__ import annotations

from datetime import datetime

from buildman.conf import get_setting
from buildman.protocols.bom import BOMResponse
from buildman.results import BuildWarning, TaskPlan
from buildman.services.analysis import BOMAnalysis
from buildman.services.configuration import BuildConfiguration, OrderHeader
from buildman.services.procurement import candidates_from_bom, procurement_needed
from buildman.services.workflow import initial_workflow_state

DOCUMENT_KEYS = (
    "metadata",
    "orderDetails",
    "configuration",
    "billOfMaterials",
    "manufacturingData",
    "qualityControlData",
    "procurementData",
    "shippingData",
    "workflowState",
)

# (category, description) in shop-floor order
ASSEMBLY_SEQUENCE = (
    ("SYSTEM", "Documentation and manuals"),
    ("SINK_BODY", "Main structural assembly"),
    ("LEGS", "Leg installation"),
    ("FEET", "Feet and casters installation"),
    ("PEGBOARD", "Pegboard and overhead light"),
    ("PEGBOARD_PANEL", "Custom pegboard panel"),
    ("DRAWER_COMPARTMENT", "Drawers and compartments"),
    ("BASIN_TYPE_KIT", "Basin installation"),
    ("BASIN_SIZE_ASSEMBLY", "Basin sizing"),
    ("BASIN_PANEL", "Custom basin panels"),
    ("BASIN_ADDON", "Basin add-ons"),
    ("CONTROL_BOX", "Control box installation"),
    ("FAUCET_AUTO", "Auto-selected faucets"),
    ("FAUCET_KIT", "Faucets"),
    ("SPRAYER_KIT", "Sprayers"),
    ("ACCESSORY", "Accessories"),
)

INSPECTION_POINTS = (
    {"stage": "Frame Assembly", "checkpoints": ["Weld quality", "Dimensional accuracy"]},
    {"stage": "Basin Installation", "checkpoints": ["Alignment", "Seal integrity"]},
    {"stage": "Electronic Systems", "checkpoints": ["Wiring continuity", "Control box function"]},
)

COMPLIANCE_STANDARDS = ("ISO 13485:2016", "NSF/ANSI 2")

LEAD_TIME_ANALYSIS = {
    "internalParts": "2-3 weeks",
    "purchasedParts": "4-6 weeks",
    "electronicComponents": "6-8 weeks",
}

CRATE_ALLOWANCE = 6  # inches added to length and width
CRATE_HEIGHT = 42


def order_number(header: OrderHeader, now: datetime) -> str:
    return f"ORD-{now.year}-{header.po_number}"


def _manufacturing_data(
    analysis: BOMAnalysis,
    configurations: list[BuildConfiguration],
    task_plans: list[TaskPlan],
) -> dict:
    present = {root.category for root in analysis.roots}
    sequence = [
        {"step": step, "category": category, "description": description}
        for step, (category, description) in enumerate(
            ((c, d) for c, d in ASSEMBLY_SEQUENCE if c in present), start=1
        )
    ]

    requirements = []
    if any(b.has_basin_light for c in configurations for b in c.basins):
        requirements.append("Basin lighting installation")
    if any(c.basin_type_counts() != (0, 0) for c in configurations):
        requirements.append("Electronic control system setup")
    if any(c.legs_type_id for c in configurations):
        requirements.append("Height adjustable leg calibration")

    return {
        "assemblySequence": sequence,
        "specialRequirements": requirements,
        "productionTasks": {
            plan.build_number: {
                "count": len(plan.production),
                "estimatedMinutes": sum(t.estimated_time for t in plan.production),
            }
            for plan in task_plans
        },
    }


def _quality_control_data(task_plans: list[TaskPlan]) -> dict:
    return {
        "inspectionPoints": [dict(point) for point in INSPECTION_POINTS],
        "complianceStandards": list(COMPLIANCE_STANDARDS),
        "testingTasks": {
            plan.build_number: {
                "count": len(plan.testing),
                "measurements": sum(1 for t in plan.testing if t.min_value is not None),
            }
            for plan in task_plans
        },
    }


def _procurement_data(analysis: BOMAnalysis, bom_items: list[dict]) -> dict:
    return {
        **analysis.procurement_breakdown(),
        "leadTimeAnalysis": dict(LEAD_TIME_ANALYSIS),
        "outsourcedCandidates": candidates_from_bom(bom_items),
        "procurementNeeded": procurement_needed(bom_items),
    }


def _shipping_data(configurations: list[BuildConfiguration]) -> dict:
    builds = {}
    for config in configurations:
        builds[config.build_number] = {
            "dimensions": {
                "length": config.length + CRATE_ALLOWANCE if config.length else None,
                "width": config.width + CRATE_ALLOWANCE if config.width else None,
                "height": CRATE_HEIGHT,
                "unit": "inches",
            }
        }
    handling = ["Heavy lifting required"]
    if any(c.basin_type_counts() != (0, 0) for c in configurations):
        handling.insert(0, "Electronic components")
    return {"builds": builds, "specialHandling": handling}


def build_document(
    header: OrderHeader,
    configurations: list[BuildConfiguration],
    response: BOMResponse,
    analysis: BOMAnalysis,
    task_plans: list[TaskPlan],
    warnings: list[BuildWarning],
    now: datetime,
    source: str = "BOM Service",
) -> dict:
    """Assemble the full snapshot document of an order."""
    stamp = now.isoformat()
    bom_items = [item.as_dict() for item in analysis.items]
    workflow_state = initial_workflow_state(now, header.want_date)

    return {
        "metadata": {
            "orderId": header.order_id,
            "orderNumber": order_number(header, now),
            "generatedAt": stamp,
            "version": get_setting("SNAPSHOT_VERSION"),
            "sourceOfTruth": True,
            "lastUpdated": stamp,
            "status": workflow_state["currentStage"],
        },
        "orderDetails": {
            "id": header.order_id,
            "status": workflow_state["currentStage"],
            "customer": {
                "name": header.customer_name,
                "projectName": header.project_name,
                "salesPerson": header.sales_person,
                "poNumber": header.po_number,
                "wantDate": header.want_date.isoformat() if header.want_date else None,
                "language": header.language,
            },
            "buildNumbers": list(header.build_numbers),
        },
        "configuration": {
            "buildNumbers": [c.build_number for c in configurations],
            "builds": {c.build_number: c.as_dict() for c in configurations},
        },
        "billOfMaterials": {
            "source": source,
            "generatedAt": stamp,
            "hierarchical": [node.as_dict() for node in response.hierarchical],
            "flattened": response.flattened,
            "totalItems": response.total_items,
            "topLevelItems": response.top_level_items,
            **analysis.as_dict(),
            "warnings": [w.as_dict() for w in warnings],
        },
        "manufacturingData": _manufacturing_data(analysis, configurations, task_plans),
        "qualityControlData": _quality_control_data(task_plans),
        "procurementData": _procurement_data(analysis, bom_items),
        "shippingData": _shipping_data(configurations),
        "workflowState": workflow_state,
    }
