"""
BOM Service Protocol — Interface for the upstream BOM generator.

The service receives every BuildConfiguration of an order and answers with
the hierarchical tree plus a display-oriented flattened list. A response
with success=False aborts the compile before anything is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from buildman.results import BuildWarning
    from buildman.services.configuration import BuildConfiguration
    from buildman.services.expansion import BOMNode


@dataclass(frozen=True)
class BOMResponse:
    """BOM service response."""

    success: bool
    hierarchical: list[BOMNode] = field(default_factory=list)
    flattened: list[dict] = field(default_factory=list)
    total_items: int = 0
    top_level_items: int = 0
    warnings: list[BuildWarning] = field(default_factory=list)
    error: dict | None = None


@runtime_checkable
class BOMServiceBackend(Protocol):
    """Protocol for BOM generation."""

    def generate(self, configurations: list[BuildConfiguration]) -> BOMResponse:
        """
        Generate the BOM for every build of an order.

        Args:
            configurations: normalized builds, in declaration order

        Returns:
            BOMResponse
        """
        ...
