"""
BOM analyzer.

Flattens the expanded BOM tree and classifies every node:

- manufacturing_type (first match wins):
    KIT → ASSEMBLY_KIT, COMPLEX → COMPLEX_ASSEMBLY, SIMPLE → SIMPLE_ASSEMBLY,
    category PART → MANUFACTURED_PART, SERVICE_PART → PURCHASED_PART,
    otherwise COMPONENT
- procurement_type (first match wins):
    SERVICE_PART → EXTERNAL_PURCHASE,
    category PART with an internal id prefix → INTERNAL_MANUFACTURE,
    category PART → EXTERNAL_PURCHASE, otherwise ASSEMBLY

Critical components are flagged for electronics (CRITICAL), and for core
basin function, structure and external dependency (HIGH). The critical list
is ordered CRITICAL first, keeping tree order inside each priority.

Usage:
    from buildman.services.analysis import analyze_bom

    analysis = analyze_bom(roots)
    for critical in analysis.critical_components:
        print(critical.priority, critical.item.id, critical.reasons)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from buildman.conf import get_setting
from buildman.services.expansion import BOMNode


# Manufacturing types
ASSEMBLY_KIT = "ASSEMBLY_KIT"
COMPLEX_ASSEMBLY = "COMPLEX_ASSEMBLY"
SIMPLE_ASSEMBLY = "SIMPLE_ASSEMBLY"
MANUFACTURED_PART = "MANUFACTURED_PART"
PURCHASED_PART = "PURCHASED_PART"
COMPONENT = "COMPONENT"

# Procurement types
INTERNAL_MANUFACTURE = "INTERNAL_MANUFACTURE"
EXTERNAL_PURCHASE = "EXTERNAL_PURCHASE"
ASSEMBLY = "ASSEMBLY"

# Critical reasons
ELECTRONIC = "Electronic component"
CORE_FUNCTION = "Core sink functionality"
STRUCTURAL = "Structural component"
EXTERNAL_DEPENDENCY = "External dependency"

PRIORITY_RANK = {"CRITICAL": 3, "HIGH": 2, "NORMAL": 1}

_ASSEMBLY_TYPES = ("KIT", "COMPLEX", "SIMPLE")


def manufacturing_type(item_type: str, category: str) -> str:
    if item_type == "KIT":
        return ASSEMBLY_KIT
    if item_type == "COMPLEX":
        return COMPLEX_ASSEMBLY
    if item_type == "SIMPLE":
        return SIMPLE_ASSEMBLY
    if category == "PART":
        return MANUFACTURED_PART
    if item_type == "SERVICE_PART":
        return PURCHASED_PART
    return COMPONENT


def procurement_type(item_id: str, item_type: str, category: str, prefixes=None) -> str:
    if prefixes is None:
        prefixes = tuple(get_setting("INTERNAL_PART_PREFIXES"))
    if item_type == "SERVICE_PART":
        return EXTERNAL_PURCHASE
    if category == "PART" and item_id.startswith(tuple(prefixes)):
        return INTERNAL_MANUFACTURE
    if category == "PART":
        return EXTERNAL_PURCHASE
    return ASSEMBLY


@dataclass(frozen=True)
class FlattenedBOMItem:
    """One BOM tree node with its position and classification."""

    index: int
    id: str
    name: str
    type: str
    category: str
    quantity: int
    depth: int
    parent_path: tuple[str, ...]
    parent_id: str | None
    child_count: int
    manufacturing_type: str
    procurement_type: str
    build_number: str | None = None
    children: tuple[dict, ...] = ()

    @property
    def is_assembly(self) -> bool:
        return self.child_count > 0

    @property
    def is_part(self) -> bool:
        return self.child_count == 0

    @property
    def full_path(self) -> str:
        return " → ".join(self.parent_path + (self.name,))

    def as_dict(self) -> dict:
        return {
            "index": self.index,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "quantity": self.quantity,
            "buildNumber": self.build_number,
            "depth": self.depth,
            "parentPath": list(self.parent_path),
            "parentId": self.parent_id,
            "fullPath": self.full_path,
            "isTopLevel": self.depth == 0,
            "childCount": self.child_count,
            "isAssembly": self.is_assembly,
            "isPart": self.is_part,
            "manufacturingType": self.manufacturing_type,
            "procurementType": self.procurement_type,
            "children": list(self.children),
        }


@dataclass(frozen=True)
class CriticalComponent:
    item: FlattenedBOMItem
    reasons: tuple[str, ...]
    priority: str

    def as_dict(self) -> dict:
        return {**self.item.as_dict(), "criticalReasons": list(self.reasons), "priority": self.priority}


def critical_reasons(item: FlattenedBOMItem) -> tuple[str, ...]:
    name = item.name.lower()
    reasons = []
    if "electronic" in name or "control" in name or "CTRL" in item.id:
        reasons.append(ELECTRONIC)
    if item.category == "BASIN_TYPE_KIT" or "basin" in name:
        reasons.append(CORE_FUNCTION)
    if "frame" in name or item.category == "SINK_BODY":
        reasons.append(STRUCTURAL)
    if item.procurement_type == EXTERNAL_PURCHASE:
        reasons.append(EXTERNAL_DEPENDENCY)
    return tuple(reasons)


def identify_critical_components(items: list[FlattenedBOMItem]) -> list[CriticalComponent]:
    """Flag critical items; CRITICAL before HIGH, tree order within a tier."""
    critical = []
    for item in items:
        reasons = critical_reasons(item)
        if reasons:
            priority = "CRITICAL" if ELECTRONIC in reasons else "HIGH"
            critical.append(CriticalComponent(item, reasons, priority))
    # sorted() is stable
    return sorted(critical, key=lambda c: -PRIORITY_RANK[c.priority])


def flatten(roots: list[BOMNode], prefixes=None) -> list[FlattenedBOMItem]:
    """One item per tree node, depth-first pre-order."""
    if prefixes is None:
        prefixes = tuple(get_setting("INTERNAL_PART_PREFIXES"))
    items: list[FlattenedBOMItem] = []

    def visit(node: BOMNode, path: tuple[str, ...], parent_id, depth: int, build_number):
        items.append(
            FlattenedBOMItem(
                index=len(items) + 1,
                id=node.id,
                name=node.name,
                type=node.type,
                category=node.category,
                quantity=node.quantity,
                depth=depth,
                parent_path=path,
                parent_id=parent_id,
                child_count=len(node.components),
                manufacturing_type=manufacturing_type(node.type, node.category),
                procurement_type=procurement_type(node.id, node.type, node.category, prefixes),
                build_number=build_number,
                children=tuple(
                    {
                        "id": child.id,
                        "name": child.name,
                        "quantity": child.quantity,
                        "type": child.type,
                        "category": child.category,
                    }
                    for child in node.components
                ),
            )
        )
        for child in node.components:
            visit(child, path + (node.name,), node.id, depth + 1, build_number)

    for root in roots:
        visit(root, (), None, 0, root.build_number)

    return items


@dataclass
class BOMAnalysis:
    """Flattened, indexed and classified BOM."""

    roots: list[BOMNode]
    items: list[FlattenedBOMItem]
    by_category: dict[str, list[FlattenedBOMItem]] = field(default_factory=dict)
    by_type: dict[str, list[FlattenedBOMItem]] = field(default_factory=dict)
    by_assembly: dict[str, FlattenedBOMItem] = field(default_factory=dict)
    critical_components: list[CriticalComponent] = field(default_factory=list)

    def summary(self) -> dict:
        return {
            "totalCategories": len(self.by_category),
            "totalTypes": len(self.by_type),
            "totalAssemblies": len(self.by_assembly),
            "categoryCounts": {cat: len(items) for cat, items in self.by_category.items()},
        }

    def manufacturing_breakdown(self) -> dict:
        counts = Counter(item.manufacturing_type for item in self.items)
        procurement = Counter(item.procurement_type for item in self.items)
        return {
            "totalParts": len(self.items),
            "assemblies": sum(1 for item in self.items if item.is_assembly),
            "purchasedParts": procurement[EXTERNAL_PURCHASE],
            "manufacturedParts": procurement[INTERNAL_MANUFACTURE],
            "complexAssemblies": counts[COMPLEX_ASSEMBLY],
            "simpleAssemblies": counts[SIMPLE_ASSEMBLY],
            "kits": counts[ASSEMBLY_KIT],
        }

    def procurement_breakdown(self) -> dict:
        return {
            "internalManufacture": [
                i.as_dict() for i in self.items if i.procurement_type == INTERNAL_MANUFACTURE
            ],
            "externalPurchase": [
                i.as_dict() for i in self.items if i.procurement_type == EXTERNAL_PURCHASE
            ],
            "assemblies": [i.as_dict() for i in self.items if i.procurement_type == ASSEMBLY],
            "totalItems": len(self.items),
        }

    def assembly_tree(self) -> list[dict]:
        """Top-level items with their direct children, for production planning."""
        return [
            {
                "id": root.id,
                "name": root.name,
                "type": root.type,
                "category": root.category,
                "quantity": root.quantity,
                "buildNumber": root.build_number,
                "hasChildren": bool(root.components),
                "childCount": len(root.components),
                "children": [
                    {
                        "id": child.id,
                        "name": child.name,
                        "type": child.type,
                        "quantity": child.quantity,
                        "hasChildren": bool(child.components),
                    }
                    for child in root.components
                ],
            }
            for root in self.roots
        ]

    def as_dict(self) -> dict:
        """The analysis sections of the billOfMaterials document."""
        return {
            "byCategory": {
                cat: [i.as_dict() for i in items] for cat, items in self.by_category.items()
            },
            "byType": {t: [i.as_dict() for i in items] for t, items in self.by_type.items()},
            "byAssembly": {key: item.as_dict() for key, item in self.by_assembly.items()},
            "summary": self.summary(),
            "flattenedWithRelationships": [i.as_dict() for i in self.items],
            "manufacturingBreakdown": self.manufacturing_breakdown(),
            "procurementBreakdown": self.procurement_breakdown(),
            "assemblyTree": self.assembly_tree(),
            "criticalComponents": [c.as_dict() for c in self.critical_components],
        }


def analyze_bom(roots: list[BOMNode]) -> BOMAnalysis:
    """Flatten, index and classify a BOM tree."""
    items = flatten(roots)
    analysis = BOMAnalysis(roots=roots, items=items)

    for item in items:
        analysis.by_category.setdefault(item.category or "UNCATEGORIZED", []).append(item)
        analysis.by_type.setdefault(item.type or "UNKNOWN", []).append(item)
        if item.is_assembly or item.type in _ASSEMBLY_TYPES:
            # Same id under several parents: the last occurrence wins
            analysis.by_assembly[item.id] = item

    analysis.critical_components = identify_critical_components(items)
    return analysis
