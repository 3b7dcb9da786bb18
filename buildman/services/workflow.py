"""
Workflow state machine of a compiled order.

The state lives in the snapshot document under "workflowState":

    {
        "currentStage": "PROCUREMENT_PLANNING",
        "milestones": {"ORDER_CREATED": "...", "PROCUREMENT_PLANNING": "..."},
        "nextSteps": [...],
        "completedSteps": [...],
        "estimatedDelivery": "2026-11-23",
    }

Rules:
- currentStage only moves forward in STAGE_ORDER
- a milestone timestamp, once recorded, is never overwritten
- re-recording a stage only refreshes metadata.lastUpdated
- nextSteps/completedSteps are always derived from currentStage

Functions here are pure: they take a document and return a new one.
Locking and persistence belong to the snapshot store.
"""

from __future__ import annotations

import copy
from datetime import date, datetime, timedelta

from buildman.conf import get_setting
from buildman.exceptions import BuildError
from buildman.models.snapshot import WorkflowStage

STAGE_ORDER = tuple(WorkflowStage.values)

COMPILE_STEPS = ("ORDER_CONFIGURATION", "BOM_GENERATION")

NEXT_STEPS_WINDOW = 3


def stage_index(stage: str) -> int:
    try:
        return STAGE_ORDER.index(stage)
    except ValueError:
        raise BuildError("INVALID_STAGE", stage=stage, allowed=list(STAGE_ORDER))


def derived_steps(stage: str) -> tuple[list[str], list[str]]:
    """Return (next_steps, completed_steps) for a current stage."""
    index = stage_index(stage)
    next_steps = list(STAGE_ORDER[index + 1 : index + 1 + NEXT_STEPS_WINDOW])
    completed_steps = list(COMPILE_STEPS) + list(STAGE_ORDER[:index])
    return next_steps, completed_steps


def estimated_delivery(want_date: date | None) -> str | None:
    if want_date is None:
        return None
    if isinstance(want_date, datetime):
        want_date = want_date.date()
    lead_days = get_setting("ESTIMATED_DELIVERY_LEAD_DAYS")
    return (want_date - timedelta(days=lead_days)).isoformat()


def initial_workflow_state(now: datetime, want_date: date | None = None) -> dict:
    stage = WorkflowStage.ORDER_CREATED.value
    next_steps, completed_steps = derived_steps(stage)
    return {
        "currentStage": stage,
        "milestones": {stage: now.isoformat()},
        "nextSteps": next_steps,
        "completedSteps": completed_steps,
        "estimatedDelivery": estimated_delivery(want_date),
    }


def advance_state(state: dict, stage: str, now: datetime) -> dict:
    """
    Return a new workflow state with stage applied.

    Recording an earlier or repeated stage is allowed: its milestone is set
    if absent, but currentStage stays where it is.
    """
    target = stage_index(stage)
    state = copy.deepcopy(state)

    milestones = state.setdefault("milestones", {})
    milestones.setdefault(stage, now.isoformat())

    current = state.get("currentStage") or STAGE_ORDER[0]
    if target > stage_index(current):
        current = stage

    state["currentStage"] = current
    state["nextSteps"], state["completedSteps"] = derived_steps(current)
    return state


def deep_merge(target: dict, extra: dict) -> dict:
    """Merge extra into a copy of target; nested dicts merge, other values replace."""
    merged = copy.deepcopy(target)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_advance(document: dict, stage: str, now: datetime, extra_data: dict | None = None) -> dict:
    """
    Advance the document's workflow and merge extra data into it.

    A stage whose milestone is already recorded only refreshes
    metadata.lastUpdated; its extra data is not merged.
    """
    stage_index(stage)
    recorded = stage in ((document.get("workflowState") or {}).get("milestones") or {})

    if extra_data and not recorded:
        document = deep_merge(
            document, {k: v for k, v in extra_data.items() if k != "workflowState"}
        )
    else:
        document = copy.deepcopy(document)

    state = document.get("workflowState") or initial_workflow_state(now)
    document["workflowState"] = advance_state(state, stage, now)

    metadata = document.setdefault("metadata", {})
    metadata["lastUpdated"] = now.isoformat()
    metadata["status"] = document["workflowState"]["currentStage"]
    return document
