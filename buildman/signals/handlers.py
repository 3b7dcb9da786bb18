"""
Buildman Signal Handlers.

Moves the order workflow when procurement reaches a milestone.

This module is imported in apps.py to register handlers.
"""

import logging

from django.dispatch import receiver

from buildman.signals import procurement_updated

logger = logging.getLogger(__name__)


@receiver(procurement_updated)
def advance_workflow_on_procurement_milestone(sender, order_id, tracking, milestone=None, **kwargs):
    """
    Record the workflow stage matching a procurement milestone.

    ANALYSIS_COMPLETE → PROCUREMENT_PLANNING
    PARTS_SENT → PROCUREMENT_STARTED
    PARTS_RECEIVED → MANUFACTURING_SCHEDULING

    Orders without a compiled snapshot are skipped; the tracking
    update that sent the signal is already saved.
    """
    if not milestone:
        return

    from buildman.conf import get_snapshot_store
    from buildman.services.procurement import MILESTONE_STAGES

    stage = MILESTONE_STAGES.get(milestone)
    if stage is None:
        logger.warning(
            f"Unknown procurement milestone {milestone!r} for order {order_id}",
            extra={"order_id": order_id, "milestone": milestone},
        )
        return

    store = get_snapshot_store()
    if store.load(order_id) is None:
        logger.warning(
            f"Procurement milestone {milestone} for order {order_id} ignored: order not compiled",
            extra={"order_id": order_id, "milestone": milestone, "stage": stage},
        )
        return

    store.advance(order_id, stage)
    logger.info(
        f"Procurement milestone {milestone} moved order {order_id} to {stage}",
        extra={"order_id": order_id, "milestone": milestone, "stage": stage},
    )
