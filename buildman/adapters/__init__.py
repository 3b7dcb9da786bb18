"""
Buildman Adapters.

Implementations of protocols for the catalog, the BOM service and the
snapshot store. Select them with the *_BACKEND / SNAPSHOT_STORE settings.
"""

from buildman.adapters.bom import LocalBOMService
from buildman.adapters.catalog import DictCatalogBackend, JSONCatalogBackend
from buildman.adapters.snapshot import (
    BaseSnapshotStore,
    InMemorySnapshotStore,
    ModelSnapshotStore,
)

__all__ = [
    # Catalog adapters
    "DictCatalogBackend",
    "JSONCatalogBackend",
    # BOM service adapters
    "LocalBOMService",
    # Snapshot stores
    "BaseSnapshotStore",
    "ModelSnapshotStore",
    "InMemorySnapshotStore",
]
