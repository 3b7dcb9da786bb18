"""
BOM expansion engine.

Expands a BuildConfiguration against the catalog into a BOM tree:

1. select_top_level() picks the build's top-level catalog items from the
   configuration (manual, sink body, legs, pegboard, basins, control box...)
2. BOMExpander walks each one depth-first through the catalog's component
   edges, producing one BOMNode per reachable tree node

Quantities stay local to each parent-child edge. A child that appears under
three parents appears three times, each with its own edge quantity; total
consumption is the product along the path, computed by whoever needs it.

Unknown catalog ids are skipped with a CATALOG_ITEM_NOT_FOUND warning.
Custom-sized basin and pegboard panels (part numbers under the
720.215.001 / 720.215.002 prefixes) are made to order: when the catalog
lacks them they become CUSTOM_PART_AUTOGEN leaves named after their size.
A node that reappears inside its own ancestor chain raises BOMCycleError.
The same node under two different parents (diamond) is fine.

Usage:
    from buildman.services.expansion import BOMExpander

    roots, warnings = BOMExpander(catalog).expand_build(configuration)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from buildman.conf import get_setting
from buildman.exceptions import BOMCycleError, BuildError
from buildman.protocols.catalog import CatalogBackend
from buildman.results import BuildWarning
from buildman.services.configuration import E_SINK_DI, BuildConfiguration

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════
# TREE
# ══════════════════════════════════════════════════════════════


@dataclass
class BOMNode:
    """One node of the expanded BOM tree."""

    id: str
    name: str
    type: str
    category: str
    quantity: int
    build_number: str | None = None
    components: list[BOMNode] = field(default_factory=list)
    manufacturer: str | None = None

    def walk(self, depth: int = 0):
        """Yield (node, depth) in depth-first pre-order."""
        yield self, depth
        for child in self.components:
            yield from child.walk(depth + 1)

    def as_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "quantity": self.quantity,
            "components": [child.as_dict() for child in self.components],
        }
        if self.build_number is not None:
            data["buildNumber"] = self.build_number
        if self.manufacturer:
            data["manufacturer"] = self.manufacturer
        return data


@dataclass(frozen=True)
class TopLevelItem:
    """A catalog item selected directly from the configuration."""

    item_id: str
    category: str
    quantity: int = 1
    fallbacks: tuple[str, ...] = ()
    custom_name: str | None = None  # made-to-order panel, never expanded


# ══════════════════════════════════════════════════════════════
# TOP-LEVEL SELECTION
# ══════════════════════════════════════════════════════════════

MANUAL_KITS = {
    "EN": "T2-STD-MANUAL-EN-KIT",
    "FR": "T2-STD-MANUAL-FR-KIT",
    "SP": "T2-STD-MANUAL-SP-KIT",
}

# (min length, max length, sink body assembly)
SINK_BODIES = (
    (48, 60, "T2-BODY-48-60-HA"),
    (61, 72, "T2-BODY-61-72-HA"),
    (73, 120, "T2-BODY-73-120-HA"),
)

# (min length, max length, pegboard size code)
PEGBOARD_SIZES = (
    (34, 47, "3436"),
    (48, 59, "4836"),
    (60, 71, "6036"),
    (72, 83, "7236"),
    (84, 95, "8436"),
    (96, 107, "9636"),
    (108, 119, "10836"),
    (120, 130, "12036"),
)

PEGBOARD_MANDATORY_KIT = "T2-OHL-MDRD-KIT"

# (e_drains, e_sinks) -> control box assembly
CONTROL_BOXES = {
    (1, 0): "T2-CTRL-EDR1",
    (0, 1): "T2-CTRL-ESK1",
    (1, 1): "T2-CTRL-EDR1-ESK1",
    (2, 0): "T2-CTRL-EDR2",
    (0, 2): "T2-CTRL-ESK2",
    (3, 0): "T2-CTRL-EDR3",
    (0, 3): "T2-CTRL-ESK3",
    (1, 2): "T2-CTRL-EDR1-ESK2",
    (2, 1): "T2-CTRL-EDR2-ESK1",
}

DI_GOOSENECK_FAUCET_KIT = "T2-OA-DI-GOOSENECK-FAUCET-KIT"

CUSTOM_BASIN_PREFIX = "720.215.001 T2-ADW-BASIN-"
CUSTOM_PEGBOARD_PREFIX = "720.215.002 T2-ADW-PB-"
CUSTOM_PART_TYPE = "CUSTOM_PART_AUTOGEN"


def sink_body_id(length: int) -> str:
    for low, high, body_id in SINK_BODIES:
        if low <= length <= high:
            return body_id
    raise BuildError("INVALID_SINK_LENGTH", length=length)


def pegboard_size(length: int | None) -> str | None:
    if length is None:
        return None
    for low, high, size in PEGBOARD_SIZES:
        if low <= length <= high:
            return size
    if length > PEGBOARD_SIZES[-1][1]:
        return PEGBOARD_SIZES[-1][2]
    return None


def custom_panel(part_number: str, prefix: str, label: str, category: str) -> TopLevelItem | None:
    """A made-to-order panel item if part_number carries the custom prefix."""
    if not part_number.startswith(prefix):
        return None
    dimensions = part_number[len(prefix) :]
    return TopLevelItem(part_number, category, custom_name=f"{label} {dimensions}")


def control_box_id(configuration: BuildConfiguration) -> str | None:
    """Control box assembly for the build's basin mix, or None."""
    return CONTROL_BOXES.get(configuration.basin_type_counts())


def select_top_level(
    configuration: BuildConfiguration,
) -> tuple[list[TopLevelItem], list[BuildWarning]]:
    """
    Pick the top-level catalog items of one build, in assembly order.

    Raises:
        BuildError: INVALID_SINK_LENGTH
    """
    items: list[TopLevelItem] = []
    warnings: list[BuildWarning] = []
    config = configuration

    manual = MANUAL_KITS.get((config.language or "EN").upper(), MANUAL_KITS["EN"])
    items.append(TopLevelItem(manual, "SYSTEM"))

    if config.length is not None:
        items.append(TopLevelItem(sink_body_id(config.length), "SINK_BODY"))

    if config.legs_type_id:
        items.append(TopLevelItem(config.legs_type_id, "LEGS"))
    if config.feet_type_id:
        items.append(TopLevelItem(config.feet_type_id, "FEET"))

    if config.pegboard.enabled:
        items.append(TopLevelItem(PEGBOARD_MANDATORY_KIT, "PEGBOARD"))
        style = "PERF" if config.pegboard.is_perforated else "SOLID"
        generic = f"T2-ADW-PB-{style}-KIT"
        size = pegboard_size(config.pegboard.size_basis)
        if size:
            color = (config.pegboard.color_id or "").upper()
            sized = (
                f"T2-ADW-PB-{size}-{color}-{style}-KIT"
                if color
                else f"T2-ADW-PB-{size}-{style}-KIT"
            )
            items.append(TopLevelItem(sized, "PEGBOARD", fallbacks=(generic,)))
        else:
            items.append(TopLevelItem(generic, "PEGBOARD"))

        panel_id = config.pegboard.size_part_number
        if panel_id:
            items.append(
                custom_panel(panel_id, CUSTOM_PEGBOARD_PREFIX, "Custom Pegboard Panel", "PEGBOARD_PANEL")
                or TopLevelItem(panel_id, "PEGBOARD")
            )

    for drawer_id in config.drawers:
        items.append(TopLevelItem(drawer_id, "DRAWER_COMPARTMENT"))

    for basin in config.basins:
        if basin.type_kit_id:
            items.append(TopLevelItem(basin.type_kit_id, "BASIN_TYPE_KIT"))
        if basin.size_code:
            items.append(
                custom_panel(basin.size_code, CUSTOM_BASIN_PREFIX, "Custom Basin", "BASIN_PANEL")
                or TopLevelItem(basin.size_code, "BASIN_SIZE_ASSEMBLY")
            )
        for addon_id in basin.addons:
            items.append(TopLevelItem(addon_id, "BASIN_ADDON"))

    e_drains, e_sinks = config.basin_type_counts()
    if e_drains or e_sinks:
        box_id = control_box_id(config)
        if box_id:
            items.append(TopLevelItem(box_id, "CONTROL_BOX"))
        else:
            message = (
                f"No control box defined for {e_drains} E-Drain and {e_sinks} E-Sink basins"
            )
            logger.warning(
                message,
                extra={"build_number": config.build_number, "e_drains": e_drains, "e_sinks": e_sinks},
            )
            warnings.append(
                BuildWarning(
                    "CONTROL_BOX_UNAVAILABLE",
                    message,
                    {"buildNumber": config.build_number, "eDrains": e_drains, "eSinks": e_sinks},
                )
            )

    di_basins = sum(1 for b in config.basins if b.type == E_SINK_DI)
    if di_basins:
        items.append(TopLevelItem(DI_GOOSENECK_FAUCET_KIT, "FAUCET_AUTO", di_basins))

    for faucet in config.faucets:
        items.append(TopLevelItem(faucet.item_id, "FAUCET_KIT", faucet.quantity))
    for sprayer in config.sprayers:
        items.append(TopLevelItem(sprayer.item_id, "SPRAYER_KIT", sprayer.quantity))
    for accessory in config.accessories:
        items.append(TopLevelItem(accessory.item_id, "ACCESSORY", accessory.quantity))

    return items, warnings


# ══════════════════════════════════════════════════════════════
# EXPANSION
# ══════════════════════════════════════════════════════════════


class BOMExpander:
    """
    Depth-first catalog walker.

    One instance can expand any number of builds; warnings are returned per
    call, never kept on the instance.
    """

    def __init__(self, catalog: CatalogBackend, max_depth: int | None = None):
        self.catalog = catalog
        self.max_depth = max_depth if max_depth is not None else get_setting("BOM_MAX_DEPTH")

    def exists(self, item_id: str) -> bool:
        return (
            self.catalog.get_assembly(item_id) is not None
            or self.catalog.get_part(item_id) is not None
        )

    def expand_build(
        self, configuration: BuildConfiguration
    ) -> tuple[list[BOMNode], list[BuildWarning]]:
        """Expand every top-level item of one build."""
        items, warnings = select_top_level(configuration)
        roots: list[BOMNode] = []
        build_number = configuration.build_number

        for item in items:
            if item.custom_name:
                roots.append(self.custom_node(item, build_number))
                continue
            item_id = self._resolve(item, build_number, warnings)
            node = self.expand_item(
                item_id,
                item.quantity,
                item.category,
                build_number=build_number,
                warnings=warnings,
            )
            if node is not None:
                roots.append(node)

        return roots, warnings

    def expand_item(
        self,
        item_id: str,
        quantity: int = 1,
        category: str | None = None,
        *,
        build_number: str | None = None,
        warnings: list[BuildWarning] | None = None,
    ) -> BOMNode | None:
        """
        Expand one catalog item into a subtree.

        Returns None (and records a warning) if the item is not in the catalog.

        Raises:
            BOMCycleError: the item reappears inside its own expansion
        """
        if warnings is None:
            warnings = []
        return self._expand(item_id, quantity, category, (), None, build_number, warnings)

    def custom_node(self, item: TopLevelItem, build_number: str | None = None) -> BOMNode:
        """Leaf node for a made-to-order panel; catalog details win when present."""
        part = self.catalog.get_part(item.item_id)
        return BOMNode(
            id=item.item_id,
            name=part.name if part else item.custom_name,
            type=(part.type if part else None) or CUSTOM_PART_TYPE,
            category=item.category,
            quantity=item.quantity,
            build_number=build_number,
            manufacturer=part.manufacturer if part else None,
        )

    # ── internals ──

    def _resolve(self, item: TopLevelItem, build_number: str, warnings: list) -> str:
        if not item.fallbacks or self.exists(item.item_id):
            return item.item_id

        for fallback in item.fallbacks:
            if self.exists(fallback):
                message = f"Using {fallback} in place of {item.item_id}"
                logger.warning(message, extra={"build_number": build_number})
                warnings.append(
                    BuildWarning(
                        "PEGBOARD_FALLBACK",
                        message,
                        {"itemId": item.item_id, "fallbackId": fallback, "buildNumber": build_number},
                    )
                )
                return fallback

        return item.item_id

    def _expand(
        self,
        item_id: str,
        quantity: int,
        category: str | None,
        path: tuple[str, ...],
        parent_id: str | None,
        build_number: str | None,
        warnings: list[BuildWarning],
    ) -> BOMNode | None:
        if item_id in path:
            raise BOMCycleError(item_id, path + (item_id,))

        assembly = self.catalog.get_assembly(item_id)
        if assembly is not None:
            node = BOMNode(
                id=assembly.id,
                name=assembly.name,
                type=assembly.type,
                category=(category or assembly.category or "ASSEMBLY") if not path else "SUB_ASSEMBLY",
                quantity=quantity,
                build_number=build_number if not path else None,
            )

            if len(path) >= self.max_depth and assembly.components:
                message = f"Stopped expanding {item_id} at depth {len(path)}"
                logger.warning(message, extra={"item_id": item_id, "build_number": build_number})
                warnings.append(
                    BuildWarning(
                        "BOM_DEPTH_EXCEEDED",
                        message,
                        {"itemId": item_id, "depth": len(path), "buildNumber": build_number},
                    )
                )
                return node

            child_path = path + (item_id,)
            for link in assembly.components:
                child_id = link.child_id
                if not child_id:
                    self._not_found(None, item_id, build_number, warnings)
                    continue
                child = self._expand(
                    child_id,
                    link.quantity,
                    None,
                    child_path,
                    item_id,
                    build_number,
                    warnings,
                )
                if child is not None:
                    node.components.append(child)
            return node

        part = self.catalog.get_part(item_id)
        if part is not None:
            return BOMNode(
                id=part.id,
                name=part.name,
                type=part.type or "COMPONENT",
                category=(category or "PART") if not path else "PART",
                quantity=quantity,
                build_number=build_number if not path else None,
                manufacturer=part.manufacturer,
            )

        self._not_found(item_id, parent_id, build_number, warnings)
        return None

    def _not_found(self, item_id, parent_id, build_number, warnings) -> None:
        message = f"Unknown catalog item {item_id!r} skipped"
        logger.warning(
            message,
            extra={"item_id": item_id, "parent_id": parent_id, "build_number": build_number},
        )
        warnings.append(
            BuildWarning(
                "CATALOG_ITEM_NOT_FOUND",
                message,
                {"itemId": item_id, "parentId": parent_id, "buildNumber": build_number},
            )
        )
