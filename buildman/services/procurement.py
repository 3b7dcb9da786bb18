"""
Procurement reconciler.

Legs and feet are outsourced. The reconciler finds them in the flattened BOM
(by an allow-list of part numbers), turns each into a PENDING candidate and
overlays the tracked records kept by the procurement team:

- a tracked record replaces the candidate's fields wholesale on conflict
  (shallow overlay: tracked keys win, candidate keys survive only if the
  tracked record doesn't carry them)
- a candidate with no tracked record stays PENDING
- a tracked record with no candidate (added by hand) is kept as-is

The same part number in several builds becomes one candidate whose quantity
is the sum.
"""

from __future__ import annotations

from buildman.conf import get_setting
from buildman.results import ProcurementView

PENDING = "PENDING"
SENT = "SENT"
RECEIVED = "RECEIVED"

PROCUREMENT_STATUSES = (PENDING, SENT, RECEIVED)

SOURCE_BOM = "SINGLE_SOURCE_OF_TRUTH"

# Procurement milestone -> workflow stage
MILESTONE_STAGES = {
    "ANALYSIS_COMPLETE": "PROCUREMENT_PLANNING",
    "PARTS_SENT": "PROCUREMENT_STARTED",
    "PARTS_RECEIVED": "MANUFACTURING_SCHEDULING",
}


def outsourced_category(part_number: str) -> str | None:
    if part_number in get_setting("LEGS_PART_NUMBERS"):
        return "LEGS"
    if part_number in get_setting("FEET_PART_NUMBERS"):
        return "FEET"
    return None


def _part_number(item: dict) -> str:
    return item.get("id") or item.get("partNumber") or ""


def candidates_from_bom(bom_items: list[dict]) -> list[dict]:
    """BOM-derived outsourcing candidates, first-seen order, keyed by part number."""
    candidates: dict[str, dict] = {}

    for item in bom_items:
        part_number = _part_number(item)
        category = outsourced_category(part_number)
        if category is None:
            continue

        quantity = item.get("quantity") or 1
        if part_number in candidates:
            candidate = candidates[part_number]
            candidate["quantity"] += quantity
            build_number = item.get("buildNumber")
            if build_number and build_number not in candidate["buildNumbers"]:
                candidate["buildNumbers"].append(build_number)
            continue

        candidates[part_number] = {
            "id": part_number,
            "partNumber": part_number,
            "partName": item.get("name") or part_number,
            "quantity": quantity,
            "category": category,
            "source": SOURCE_BOM,
            "buildNumbers": [item["buildNumber"]] if item.get("buildNumber") else [],
        }

    return list(candidates.values())


def merge_parts(candidates: list[dict], tracked: list[dict]) -> list[dict]:
    merged: dict[str, dict] = {}

    for candidate in candidates:
        merged[candidate["partNumber"]] = {**candidate, "status": PENDING}

    for record in tracked:
        key = record.get("partNumber")
        if key in merged:
            merged[key] = {**merged[key], **record}
        else:
            merged[key] = dict(record)

    return list(merged.values())


def summarize(merged: list[dict], candidates: list[dict]) -> dict:
    return {
        "totalPartsForOutsourcing": len(candidates),
        "partsSent": sum(1 for p in merged if p.get("status") == SENT),
        "partsReceived": sum(1 for p in merged if p.get("status") == RECEIVED),
        "partsPending": sum(1 for p in merged if p.get("status") in (PENDING, None, "")),
    }


def procurement_needed(bom_items: list[dict]) -> bool:
    return any(outsourced_category(_part_number(item)) for item in bom_items)


def reconcile(order_id: str, bom_items: list[dict], tracking: dict | None = None) -> ProcurementView:
    """
    Merge BOM candidates with tracked procurement data.

    Args:
        order_id: Order the view belongs to
        bom_items: flattened BOM rows (document shape)
        tracking: {"outsourcedParts": [...], "analysisCompleted": bool,
                   "missingParts": [...]} or None if nothing is tracked yet
    """
    tracking = tracking or {}
    candidates = candidates_from_bom(bom_items)
    merged = merge_parts(candidates, tracking.get("outsourcedParts") or [])

    return ProcurementView(
        order_id=order_id,
        items=merged,
        summary=summarize(merged, candidates),
        procurement_needed=procurement_needed(bom_items),
        analysis_completed=bool(tracking.get("analysisCompleted")),
        missing_parts=list(tracking.get("missingParts") or []),
    )
