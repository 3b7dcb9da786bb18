"""
Tests for the snapshot stores (model-backed and in-memory).
"""

import threading

import pytest
from unittest.mock import MagicMock

from django.utils import timezone

from buildman import BuildError
from buildman.adapters.snapshot import InMemorySnapshotStore, ModelSnapshotStore
from buildman.models import OrderSnapshot
from buildman.signals import workflow_advanced
from buildman.services.workflow import initial_workflow_state


def document(order_id="ORD-1"):
    now = timezone.now()
    return {
        "metadata": {"orderId": order_id, "orderNumber": f"ORD-2026-{order_id}", "lastUpdated": None},
        "billOfMaterials": {"totalItems": 0},
        "procurementData": {"procurementNeeded": False},
        "workflowState": initial_workflow_state(now),
    }


@pytest.fixture(params=["model", "memory"])
def store(request, db):
    if request.param == "model":
        return ModelSnapshotStore()
    return InMemorySnapshotStore()


class TestLoadSave:
    def test_missing_order(self, store):
        assert store.load("NOPE") is None

    def test_round_trip(self, store):
        store.save("ORD-1", document())
        assert store.load("ORD-1")["metadata"]["orderId"] == "ORD-1"

    def test_lock_row_reads_as_not_found(self, store):
        with store.locked("ORD-9"):
            assert store.load("ORD-9") is None
        assert store.load("ORD-9") is None


class TestAdvance:
    def test_not_compiled(self, store):
        with pytest.raises(BuildError) as exc:
            store.advance("NOPE", "BOM_REVIEW")
        assert exc.value.code == "SNAPSHOT_NOT_FOUND"

    def test_monotonic(self, store):
        store.save("ORD-1", document())

        store.advance("ORD-1", "PROCUREMENT_PLANNING")
        recorded = store.load("ORD-1")["workflowState"]["milestones"]["PROCUREMENT_PLANNING"]
        state = store.advance("ORD-1", "ORDER_CREATED")

        assert state["currentStage"] == "PROCUREMENT_PLANNING"
        assert state["milestones"]["PROCUREMENT_PLANNING"] == recorded

    def test_idempotent_same_stage(self, store):
        store.save("ORD-1", document())

        first = store.advance("ORD-1", "BOM_REVIEW")
        second = store.advance("ORD-1", "BOM_REVIEW")

        assert first["milestones"] == second["milestones"]
        assert store.load("ORD-1")["metadata"]["lastUpdated"] is not None

    def test_repeated_stage_ignores_extra_data(self, store):
        store.save("ORD-1", document())
        store.advance("ORD-1", "SHIPPING", {"shippingData": {"carrier": "UPS"}})

        store.advance("ORD-1", "SHIPPING", {"shippingData": {"carrier": "FedEx"}})

        assert store.load("ORD-1")["shippingData"]["carrier"] == "UPS"

    def test_invalid_stage(self, store):
        store.save("ORD-1", document())

        with pytest.raises(BuildError) as exc:
            store.advance("ORD-1", "DONE")

        assert exc.value.code == "INVALID_STAGE"
        assert store.load("ORD-1")["workflowState"]["currentStage"] == "ORDER_CREATED"

    def test_sends_signal(self, store):
        store.save("ORD-1", document())
        handler = MagicMock()
        workflow_advanced.connect(handler, weak=False)
        try:
            store.advance("ORD-1", "BOM_REVIEW")
        finally:
            workflow_advanced.disconnect(handler)

        kwargs = handler.call_args.kwargs
        assert kwargs["order_id"] == "ORD-1"
        assert kwargs["stage"] == "BOM_REVIEW"
        assert kwargs["previous_stage"] == "ORDER_CREATED"
        assert kwargs["workflow_state"]["currentStage"] == "BOM_REVIEW"


class TestNarrowWrites:
    def test_record_bom(self, store):
        store.save("ORD-1", document())

        store.record_bom("ORD-1", {"totalItems": 22})

        assert store.load("ORD-1")["billOfMaterials"] == {"totalItems": 22}

    def test_record_procurement_merges(self, store):
        store.save("ORD-1", document())

        store.record_procurement("ORD-1", {"tracking": {"analysisCompleted": True}})

        data = store.load("ORD-1")["procurementData"]
        assert data == {"procurementNeeded": False, "tracking": {"analysisCompleted": True}}

    def test_record_bom_not_compiled(self, store):
        with pytest.raises(BuildError) as exc:
            store.record_bom("NOPE", {})
        assert exc.value.code == "SNAPSHOT_NOT_FOUND"


class TestModelSnapshotStore:
    def test_indexed_columns_follow_document(self, db):
        store = ModelSnapshotStore()
        store.save("ORD-1", document())

        store.advance("ORD-1", "BOM_REVIEW")

        row = OrderSnapshot.objects.get(order_id="ORD-1")
        assert row.current_stage == "BOM_REVIEW"
        assert row.order_number == "ORD-2026-ORD-1"
        assert row.is_compiled

    def test_history_recorded(self, db):
        store = ModelSnapshotStore()
        store.save("ORD-1", document())
        store.advance("ORD-1", "BOM_REVIEW")

        row = OrderSnapshot.objects.get(order_id="ORD-1")
        assert row.history.count() >= 2

    def test_locked_is_reentrant(self, db):
        store = ModelSnapshotStore()
        store.save("ORD-1", document())

        with store.locked("ORD-1"):
            store.advance("ORD-1", "BOM_REVIEW")

        assert store.load("ORD-1")["workflowState"]["currentStage"] == "BOM_REVIEW"


class TestInMemorySnapshotStore:
    def test_documents_are_copies(self):
        store = InMemorySnapshotStore()
        original = document()
        store.save("ORD-1", original)

        original["metadata"]["orderId"] = "changed"
        loaded = store.load("ORD-1")
        loaded["metadata"]["orderId"] = "changed again"

        assert store.load("ORD-1")["metadata"]["orderId"] == "ORD-1"

    def test_concurrent_advances_serialize(self):
        store = InMemorySnapshotStore()
        store.save("ORD-1", document())
        stages = ["BOM_REVIEW", "PROCUREMENT_PLANNING", "PROCUREMENT_STARTED", "SHIPPING"]

        threads = [
            threading.Thread(target=store.advance, args=("ORD-1", stage)) for stage in stages
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        state = store.load("ORD-1")["workflowState"]
        assert state["currentStage"] == "SHIPPING"
        assert set(stages) <= set(state["milestones"])

    def test_clear_drops_documents_and_locks(self):
        store = InMemorySnapshotStore()
        store.save("ORD-1", document())
        store.advance("ORD-1", "BOM_REVIEW")
        assert store._locks

        store.clear()

        assert store.load("ORD-1") is None
        assert store._locks == {}
