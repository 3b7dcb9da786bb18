"""
Buildman Snapshot Stores — persistence of the compiled order document.

ModelSnapshotStore keeps one OrderSnapshot row per order. Its exclusive
section is transaction.atomic() plus SELECT FOR UPDATE on the order's row,
so two compiles (or a compile and an advance) of the same order serialize
on the database.

InMemorySnapshotStore keeps documents in a dict guarded by one
threading.RLock per order. It is for hosts without a database and tests.

Both share the narrow writes (advance, record_bom, record_procurement),
implemented as load-modify-save inside locked().

Settings:
    BUILDMAN = {
        "SNAPSHOT_STORE": "buildman.adapters.snapshot.InMemorySnapshotStore",
    }
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager

from django.db import transaction
from django.utils import timezone

from buildman.exceptions import BuildError
from buildman.services.workflow import apply_advance, deep_merge

logger = logging.getLogger(__name__)


class BaseSnapshotStore:
    """Narrow writes on top of locked/load/save."""

    def locked(self, order_id: str):
        raise NotImplementedError

    def load(self, order_id: str) -> dict | None:
        raise NotImplementedError

    def save(self, order_id: str, document: dict) -> None:
        raise NotImplementedError

    def _load_existing(self, order_id: str) -> dict:
        document = self.load(order_id)
        if document is None:
            raise BuildError("SNAPSHOT_NOT_FOUND", order_id=order_id)
        return document

    def advance(self, order_id: str, stage: str, extra_data: dict | None = None) -> dict:
        """
        Record a workflow stage.

        Idempotent per (order_id, stage): a stage whose milestone is already
        recorded only refreshes metadata.lastUpdated, and its extra_data is
        ignored. A first-time stage deep-merges extra_data into the document,
        but currentStage never moves backward.

        Raises:
            BuildError: SNAPSHOT_NOT_FOUND, INVALID_STAGE
        """
        from buildman.signals import workflow_advanced

        with self.locked(order_id):
            document = self._load_existing(order_id)
            previous_stage = (document.get("workflowState") or {}).get("currentStage")
            document = apply_advance(document, stage, timezone.now(), extra_data)
            self.save(order_id, document)

        state = document["workflowState"]
        logger.info(
            f"Order {order_id} recorded {stage} (current: {state['currentStage']})",
            extra={"order_id": order_id, "stage": stage, "previous_stage": previous_stage},
        )
        workflow_advanced.send(
            sender=self.__class__,
            order_id=order_id,
            stage=stage,
            previous_stage=previous_stage,
            workflow_state=state,
        )
        return state

    def record_bom(self, order_id: str, bill_of_materials: dict) -> None:
        """Replace the billOfMaterials section."""
        with self.locked(order_id):
            document = self._load_existing(order_id)
            document["billOfMaterials"] = copy.deepcopy(bill_of_materials)
            document.setdefault("metadata", {})["lastUpdated"] = timezone.now().isoformat()
            self.save(order_id, document)

    def record_procurement(self, order_id: str, procurement_data: dict) -> None:
        """Merge into the procurementData section."""
        with self.locked(order_id):
            document = self._load_existing(order_id)
            document["procurementData"] = deep_merge(
                document.get("procurementData") or {}, procurement_data
            )
            document.setdefault("metadata", {})["lastUpdated"] = timezone.now().isoformat()
            self.save(order_id, document)


class ModelSnapshotStore(BaseSnapshotStore):
    """Snapshot store on the OrderSnapshot model."""

    @contextmanager
    def locked(self, order_id: str):
        from buildman.models import OrderSnapshot

        with transaction.atomic():
            # Creates the lock row on first compile; an empty document reads as not found
            OrderSnapshot.objects.select_for_update().get_or_create(order_id=order_id)
            yield

    def load(self, order_id: str) -> dict | None:
        from buildman.models import OrderSnapshot

        snapshot = OrderSnapshot.objects.filter(order_id=order_id).first()
        if snapshot is None or not snapshot.is_compiled:
            return None
        return snapshot.document

    def save(self, order_id: str, document: dict) -> None:
        from buildman.models import OrderSnapshot

        snapshot, _ = OrderSnapshot.objects.get_or_create(order_id=order_id)
        snapshot.store(document)


class InMemorySnapshotStore(BaseSnapshotStore):
    """
    Process-local snapshot store.

    Keeps one RLock per order id seen; clear() drops documents and locks.
    """

    def __init__(self):
        self._documents: dict[str, dict] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, order_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(order_id)
            if lock is None:
                lock = self._locks[order_id] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, order_id: str):
        with self._lock_for(order_id):
            yield

    def load(self, order_id: str) -> dict | None:
        document = self._documents.get(order_id)
        return copy.deepcopy(document) if document is not None else None

    def save(self, order_id: str, document: dict) -> None:
        self._documents[order_id] = copy.deepcopy(document)

    def clear(self) -> None:
        with self._registry_lock:
            self._documents.clear()
            self._locks.clear()
