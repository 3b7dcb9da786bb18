"""
Buildman Protocols.

Defines interfaces for external integrations.
"""

from buildman.protocols.bom import BOMResponse, BOMServiceBackend
from buildman.protocols.catalog import (
    AssemblyInfo,
    CatalogBackend,
    ComponentLink,
    PartInfo,
)
from buildman.protocols.snapshot import SnapshotStore

__all__ = [
    # Catalog Protocol
    "CatalogBackend",
    "AssemblyInfo",
    "ComponentLink",
    "PartInfo",
    # BOM Service Protocol
    "BOMServiceBackend",
    "BOMResponse",
    # Snapshot Protocol
    "SnapshotStore",
]
