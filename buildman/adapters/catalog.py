"""
Buildman Catalog Adapters - part and assembly lookup.

DictCatalogBackend serves lookups from in-memory dicts in the catalog's
resource shape. JSONCatalogBackend loads the same shape from the JSON files
named in settings:

    BUILDMAN = {
        "CATALOG_ASSEMBLIES_PATH": BASE_DIR / "resources" / "assemblies.json",
        "CATALOG_PARTS_PATH": BASE_DIR / "resources" / "parts.json",
    }

Resource shape:

    assemblies.json: {"assemblies": {"T2-CTRL-EDR1": {
        "name": "...", "type": "KIT", "category_code": "721",
        "components": [{"part_id": "...", "quantity": 1, "notes": "..."}],
        "can_order": true, "status": "ACTIVE"}}}

    parts.json: {"parts": {"T2-RELAY-24V": {
        "name": "...", "type": "COMPONENT", "status": "ACTIVE",
        "manufacturer_info": "..."}}}

A component's part_id names either an assembly or a part; the adapter
resolves which one when building ComponentLink edges.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured

from buildman.conf import get_setting
from buildman.protocols.catalog import AssemblyInfo, ComponentLink, PartInfo

logger = logging.getLogger(__name__)


class DictCatalogBackend:
    """
    Catalog backed by plain dicts.

    Args:
        assemblies: {assembly_id: assembly record}
        parts: {part_id: part record}
    """

    def __init__(self, assemblies: dict | None = None, parts: dict | None = None):
        self._assemblies = dict(assemblies or {})
        self._parts = dict(parts or {})

    def get_assembly(self, assembly_id: str) -> AssemblyInfo | None:
        record = self._assemblies.get(assembly_id)
        if record is None:
            return None

        components = []
        for component in record.get("components") or []:
            child_id = component.get("part_id") or component.get("assembly_id")
            quantity = int(component.get("quantity") or 1)
            notes = component.get("notes")
            if child_id in self._assemblies:
                components.append(
                    ComponentLink(child_assembly_id=child_id, quantity=quantity, notes=notes)
                )
            else:
                components.append(
                    ComponentLink(child_part_id=child_id, quantity=quantity, notes=notes)
                )

        return AssemblyInfo(
            id=assembly_id,
            name=record.get("name") or assembly_id,
            type=record.get("type") or "SIMPLE",
            category=record.get("category") or record.get("category_code"),
            components=tuple(components),
            can_order=bool(record.get("can_order", True)),
            status=record.get("status") or "ACTIVE",
        )

    def get_part(self, part_id: str) -> PartInfo | None:
        record = self._parts.get(part_id)
        if record is None:
            return None
        return PartInfo(
            id=part_id,
            name=record.get("name") or part_id,
            type=record.get("type") or "COMPONENT",
            status=record.get("status") or "ACTIVE",
            manufacturer=record.get("manufacturer_info") or record.get("manufacturer"),
        )

    @property
    def assembly_count(self) -> int:
        return len(self._assemblies)

    @property
    def part_count(self) -> int:
        return len(self._parts)


def _read_json(path, key: str) -> dict:
    with Path(path).open(encoding="utf-8") as f:
        data = json.load(f)
    return data.get(key, data)


class JSONCatalogBackend(DictCatalogBackend):
    """
    Catalog loaded once from the configured JSON resource files.

    Raises:
        ImproperlyConfigured: if either path is unset or cannot be read
    """

    def __init__(self, assemblies_path=None, parts_path=None):
        assemblies_path = assemblies_path or get_setting("CATALOG_ASSEMBLIES_PATH")
        parts_path = parts_path or get_setting("CATALOG_PARTS_PATH")

        if not assemblies_path or not parts_path:
            raise ImproperlyConfigured(
                "BUILDMAN CATALOG_ASSEMBLIES_PATH and CATALOG_PARTS_PATH must be configured "
                "to use the JSON catalog."
            )

        try:
            assemblies = _read_json(assemblies_path, "assemblies")
            parts = _read_json(parts_path, "parts")
        except (OSError, ValueError) as e:
            raise ImproperlyConfigured(f"Failed to load catalog JSON: {e}") from e

        super().__init__(assemblies, parts)
        logger.debug(
            f"Loaded catalog: {self.assembly_count} assemblies, {self.part_count} parts",
            extra={"assemblies_path": str(assemblies_path), "parts_path": str(parts_path)},
        )
