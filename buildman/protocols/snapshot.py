"""
Snapshot Store Protocol — durable home of the compiled order document.

The store is the only shared mutable resource of the compiler. Every
load-modify-save cycle on an order runs inside locked(order_id), which
must exclude every other writer of the same order.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable


@runtime_checkable
class SnapshotStore(Protocol):
    """
    Protocol for snapshot persistence.

    load/save move whole documents. advance, record_bom and
    record_procurement are the narrow writes the compiler uses after the
    first save, so a store may implement them as field-level updates.
    """

    def locked(self, order_id: str) -> AbstractContextManager:
        """Exclusive section for one order. Re-entrant."""
        ...

    def load(self, order_id: str) -> dict | None:
        """Return the document, or None if the order was never compiled."""
        ...

    def save(self, order_id: str, document: dict) -> None:
        """Replace the whole document."""
        ...

    def advance(self, order_id: str, stage: str, extra_data: dict | None = None) -> dict:
        """Move the workflow forward. Returns the new workflowState."""
        ...

    def record_bom(self, order_id: str, bill_of_materials: dict) -> None:
        ...

    def record_procurement(self, order_id: str, procurement_data: dict) -> None:
        ...
