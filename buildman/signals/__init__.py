"""
Buildman Signals.

Downstream modules (manufacturing, QC, procurement, shipping) listen here
instead of polling the snapshot.

Signals:
    snapshot_compiled: An order was compiled and its snapshot saved
    workflow_advanced: An order's workflow recorded a stage
    procurement_updated: Tracked procurement data of an order changed
"""

from django.dispatch import Signal

# Order compiled - snapshot document saved
# Sent when Build.compile() finishes
# Args: order_id, document, warnings (list of BuildWarning)
snapshot_compiled = Signal()

# Workflow stage recorded
# Sent by the snapshot store after advance() is saved
# Args: order_id, stage, previous_stage, workflow_state
workflow_advanced = Signal()

# Procurement tracking saved
# Sent when Build.update_procurement() is called
# Args: order_id, tracking (dict), milestone (str or None)
procurement_updated = Signal()

__all__ = ["snapshot_compiled", "workflow_advanced", "procurement_updated"]
