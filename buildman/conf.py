"""
Buildman Settings.

Supports two formats (dict takes priority):

    # Option 1: Dict
    BUILDMAN = {
        "CATALOG_ASSEMBLIES_PATH": BASE_DIR / "resources" / "assemblies.json",
        "CATALOG_PARTS_PATH": BASE_DIR / "resources" / "parts.json",
    }

    # Option 2: Flat
    BUILDMAN_CATALOG_ASSEMBLIES_PATH = "resources/assemblies.json"
    BUILDMAN_INTERNAL_PART_PREFIXES = ("T2-",)

Everything except the catalog location has a sensible default.
"""

import threading

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


# ── Defaults ──

DEFAULTS = {
    "CATALOG_BACKEND": "buildman.adapters.catalog.JSONCatalogBackend",
    "CATALOG_ASSEMBLIES_PATH": None,
    "CATALOG_PARTS_PATH": None,
    "BOM_SERVICE_BACKEND": "buildman.adapters.bom.LocalBOMService",
    "SNAPSHOT_STORE": "buildman.adapters.snapshot.ModelSnapshotStore",
    "INTERNAL_PART_PREFIXES": ("T2-",),
    "LEGS_PART_NUMBERS": (
        "T2-DL27-KIT",
        "T2-DL14-KIT",
        "T2-LC1-KIT",
        "T2-DL27-FH-KIT",
        "T2-DL14-FH-KIT",
    ),
    "FEET_PART_NUMBERS": (
        "T2-LEVELING-CASTOR-475",
        "T2-SEISMIC-FEET",
    ),
    "ACCESSORY_FLAG_KEYWORDS": {
        "air_gun": ("AIR-GUN", "AIR_GUN", "AIRGUN"),
        "water_gun": ("WATER-GUN", "WATER_GUN", "WATERGUN"),
        "di_faucet": ("DI-GOOSENECK", "DI-FAUCET", "DI_FAUCET"),
        "combo_faucet": ("COMBO",),
        "dosing_pump": ("DOSING", "DOSE-PUMP"),
        "overhead_light": ("OVERHEAD-LIGHT", "OHL-LED", "LED-LIGHT"),
    },
    "BASIN_LIGHT_KEYWORDS": ("BASIN-LIGHT", "BASIN_LIGHT"),
    "BOM_MAX_DEPTH": 16,
    "SNAPSHOT_VERSION": "1.0.0",
    "ESTIMATED_DELIVERY_LEAD_DAYS": 7,
}


# ── Accessors ──

_sentinel = object()


def get_setting(name, default=_sentinel):
    """
    Get a buildman setting.

    Looks up in order:
    1. BUILDMAN dict (e.g. BUILDMAN = {"BOM_MAX_DEPTH": 8})
    2. Flat setting (e.g. BUILDMAN_BOM_MAX_DEPTH = 8)
    3. DEFAULTS
    """
    buildman_dict = getattr(settings, "BUILDMAN", {})
    if name in buildman_dict:
        return buildman_dict[name]

    flat_value = getattr(settings, f"BUILDMAN_{name}", _sentinel)
    if flat_value is not _sentinel:
        return flat_value

    if default is not _sentinel:
        return default

    return DEFAULTS.get(name)


def _load_backend(setting_name: str):
    from django.utils.module_loading import import_string

    path = get_setting(setting_name)
    if not path:
        raise ImproperlyConfigured(f"BUILDMAN {setting_name} is not set.")
    try:
        backend_class = import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"BUILDMAN {setting_name} points to {path!r}, which cannot be imported: {e}"
        ) from e
    return backend_class()


_catalog_lock = threading.Lock()
_catalog_instance = None


def get_catalog_backend():
    """
    Return the configured catalog backend instance.

    The catalog answers get_assembly(id) / get_part(id) lookups for BOM expansion.
    """
    global _catalog_instance

    if _catalog_instance is None:
        with _catalog_lock:
            if _catalog_instance is None:  # double-checked
                _catalog_instance = _load_backend("CATALOG_BACKEND")

    return _catalog_instance


def reset_catalog_backend() -> None:
    """Reset singleton (for tests)."""
    global _catalog_instance
    _catalog_instance = None


_bom_service_lock = threading.Lock()
_bom_service_instance = None


def get_bom_service():
    """Return the configured BOM service instance."""
    global _bom_service_instance

    if _bom_service_instance is None:
        with _bom_service_lock:
            if _bom_service_instance is None:  # double-checked
                _bom_service_instance = _load_backend("BOM_SERVICE_BACKEND")

    return _bom_service_instance


def reset_bom_service() -> None:
    """Reset singleton (for tests)."""
    global _bom_service_instance
    _bom_service_instance = None


_snapshot_store_lock = threading.Lock()
_snapshot_store_instance = None


def get_snapshot_store():
    """
    Return the configured snapshot store instance.

    The in-memory store keeps its documents on the instance, so the singleton
    matters: every caller in the process must see the same store.
    """
    global _snapshot_store_instance

    if _snapshot_store_instance is None:
        with _snapshot_store_lock:
            if _snapshot_store_instance is None:  # double-checked
                _snapshot_store_instance = _load_backend("SNAPSHOT_STORE")

    return _snapshot_store_instance


def reset_snapshot_store() -> None:
    """Reset singleton (for tests)."""
    global _snapshot_store_instance
    _snapshot_store_instance = None


def reset_backends() -> None:
    """Reset every backend singleton (for tests)."""
    reset_catalog_backend()
    reset_bom_service()
    reset_snapshot_store()
