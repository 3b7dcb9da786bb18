"""
Local BOM Service — in-process BOM generation from the configured catalog.

Implements BOMServiceBackend by running the expansion engine over every
build of the order. Hosts with a remote BOM generator point
BOM_SERVICE_BACKEND at their own adapter; the response shape stays the same.

Usage:
    from buildman.adapters.bom import LocalBOMService

    response = LocalBOMService().generate(configurations)
    response.hierarchical   # [BOMNode, ...]
    response.flattened      # display rows with indentLevel/isChild
"""

from __future__ import annotations

import logging

from buildman.protocols.bom import BOMResponse
from buildman.services.expansion import BOMExpander, BOMNode

logger = logging.getLogger(__name__)


def flatten_for_display(roots: list[BOMNode]) -> list[dict]:
    """Pre-order rows with their nesting level, for BOM viewers and exports."""
    rows = []
    for root in roots:
        for node, depth in root.walk():
            rows.append(
                {
                    "id": node.id,
                    "partNumber": node.id,
                    "name": node.name,
                    "type": node.type,
                    "category": node.category,
                    "quantity": node.quantity,
                    "buildNumber": root.build_number,
                    "hasChildren": bool(node.components),
                    "isChild": depth > 0,
                    "indentLevel": depth,
                }
            )
    return rows


class LocalBOMService:
    """
    BOM service backed by a CatalogBackend.

    Args:
        catalog: CatalogBackend; the configured catalog backend if None
    """

    def __init__(self, catalog=None):
        self._catalog = catalog

    @property
    def catalog(self):
        if self._catalog is None:
            from buildman.conf import get_catalog_backend

            self._catalog = get_catalog_backend()
        return self._catalog

    def generate(self, configurations) -> BOMResponse:
        """
        Expand every build, in declaration order.

        Raises:
            BuildError: INVALID_SINK_LENGTH
            BOMCycleError: catalog cycle reached from a build
        """
        expander = BOMExpander(self.catalog)
        roots: list[BOMNode] = []
        warnings = []

        for configuration in configurations:
            build_roots, build_warnings = expander.expand_build(configuration)
            roots.extend(build_roots)
            warnings.extend(build_warnings)

        flattened = flatten_for_display(roots)

        logger.debug(
            f"Generated BOM: {len(roots)} top-level items, {len(flattened)} rows",
            extra={"builds": [c.build_number for c in configurations], "warnings": len(warnings)},
        )

        return BOMResponse(
            success=True,
            hierarchical=roots,
            flattened=flattened,
            total_items=len(flattened),
            top_level_items=len(roots),
            warnings=warnings,
        )
