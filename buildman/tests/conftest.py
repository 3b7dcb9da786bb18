"""
Shared fixtures for Buildman tests.
"""

import copy

import pytest

from buildman.adapters.catalog import DictCatalogBackend
from buildman.adapters.snapshot import InMemorySnapshotStore
from buildman.conf import reset_backends


RAW_ORDER = {
    "order_id": "ORD-1",
    "po_number": "PO-7781",
    "customer_name": "St. Mary Hospital",
    "project_name": "Sterile Processing Expansion",
    "sales_person": "J. Ortiz",
    "want_date": "2026-12-15",
    "language": "EN",
    "build_numbers": ["001"],
    "sink_configurations": [
        {
            "build_number": "001",
            "sink_model_id": "T2-B1",
            "width": 30,
            "length": 60,
            "legs_type_id": "T2-DL27-KIT",
            "feet_type_id": "T2-LEVELING-CASTOR-475",
            "pegboard": True,
            "pegboard_type_id": "PERF",
        }
    ],
    "basin_configurations": [
        {
            "build_number": "001",
            "basin_type_id": "E-Drain",
            "basin_size_part_number": "T2-ADW-BASIN20X20X8",
            "addon_ids": [],
        }
    ],
}


@pytest.fixture(autouse=True)
def _reset_backends():
    reset_backends()
    yield
    reset_backends()


@pytest.fixture
def raw_order():
    """One build, pegboard, one E-Drain basin, no accessories."""
    return copy.deepcopy(RAW_ORDER)


@pytest.fixture
def memory_store():
    return InMemorySnapshotStore()


def make_catalog(assemblies: dict, parts: dict) -> DictCatalogBackend:
    """
    Compact catalog builder.

    assemblies: {id: [(child_id, quantity), ...]}
    parts: iterable of part ids
    """
    return DictCatalogBackend(
        {
            assembly_id: {
                "name": assembly_id.title(),
                "type": "SIMPLE",
                "components": [{"part_id": child, "quantity": qty} for child, qty in children],
            }
            for assembly_id, children in assemblies.items()
        },
        {part_id: {"name": part_id.title(), "type": "COMPONENT"} for part_id in parts},
    )
