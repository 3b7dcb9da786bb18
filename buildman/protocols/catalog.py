"""
Catalog Protocol — Interface for part and assembly lookup.

Buildman defines this protocol; the parts catalog (JSON resources, a
database, an ERP) implements it. Not-found is a normal outcome: lookups
return None and the expansion engine records a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ComponentLink:
    """Edge from an assembly to one child, with the quantity per parent."""

    child_part_id: str | None = None
    child_assembly_id: str | None = None
    quantity: int = 1
    notes: str | None = None

    @property
    def child_id(self) -> str | None:
        return self.child_assembly_id or self.child_part_id


@dataclass(frozen=True)
class AssemblyInfo:
    """Assembly definition from catalog."""

    id: str
    name: str
    type: str  # SIMPLE, COMPLEX, KIT, SERVICE_PART
    category: str | None = None
    components: tuple[ComponentLink, ...] = ()
    can_order: bool = True
    status: str = "ACTIVE"


@dataclass(frozen=True)
class PartInfo:
    """Part definition from catalog."""

    id: str
    name: str
    type: str  # COMPONENT, MATERIAL, SERVICE_PART, ...
    status: str = "ACTIVE"
    manufacturer: str | None = None


@runtime_checkable
class CatalogBackend(Protocol):
    """
    Protocol for catalog lookups.

    Implementations should provide methods to:
    - Get an assembly with its component edges
    - Get a part
    """

    def get_assembly(self, assembly_id: str) -> AssemblyInfo | None:
        """
        Get assembly definition.

        Args:
            assembly_id: Catalog id

        Returns:
            AssemblyInfo or None if not found
        """
        ...

    def get_part(self, part_id: str) -> PartInfo | None:
        """
        Get part definition.

        Args:
            part_id: Catalog id

        Returns:
            PartInfo or None if not found
        """
        ...
