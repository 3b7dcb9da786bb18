"""
Configuration normalizer.

Turns a raw order (already validated by OrderInputSerializer) into one
immutable BuildConfiguration per declared build number.

Raw orders carry their per-build sub-configurations as flat row lists keyed
by build_number. The normalizer picks each build's rows; absent sub-lists
yield empty tuples, never None. A build with no sink row is incomplete.

Usage:
    from buildman.services.configuration import normalize_order

    configurations = normalize_order(validated_order)
    for config in configurations:
        print(config.build_number, [b.type for b in config.basins])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from buildman.conf import get_setting
from buildman.exceptions import ConfigurationIncompleteError


# ══════════════════════════════════════════════════════════════
# BASIN TYPES
# ══════════════════════════════════════════════════════════════

E_DRAIN = "E-Drain"
E_SINK = "E-Sink"
E_SINK_DI = "E-Sink-DI"

BASIN_TYPES = (E_DRAIN, E_SINK, E_SINK_DI)

BASIN_TYPE_KITS = {
    E_DRAIN: "T2-BSN-EDR-KIT",
    E_SINK: "T2-BSN-ESK-KIT",
    E_SINK_DI: "T2-BSN-ESK-DI-KIT",
}

_BASIN_TYPE_ALIASES = {
    "E-DRAIN": E_DRAIN,
    "E_DRAIN": E_DRAIN,
    "EDRAIN": E_DRAIN,
    "T2-BSN-EDR-KIT": E_DRAIN,
    "E-SINK": E_SINK,
    "E_SINK": E_SINK,
    "ESINK": E_SINK,
    "T2-BSN-ESK-KIT": E_SINK,
    "E-SINK-DI": E_SINK_DI,
    "E-SINK DI": E_SINK_DI,
    "E_SINK_DI": E_SINK_DI,
    "ESINK-DI": E_SINK_DI,
    "T2-BSN-ESK-DI-KIT": E_SINK_DI,
}


def canonical_basin_type(value: str | None) -> str:
    """
    Map a raw basin type (display name, enum spelling or kit id) to its
    canonical name. Unknown values are returned stripped, unchanged.
    """
    raw = (value or "").strip()
    return _BASIN_TYPE_ALIASES.get(raw.upper(), raw)


def is_e_sink(basin_type: str) -> bool:
    return basin_type in (E_SINK, E_SINK_DI)


# ══════════════════════════════════════════════════════════════
# VALUE TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ItemSelection:
    """A catalog id picked in the configurator, with its quantity."""

    item_id: str
    quantity: int = 1
    detail: str | None = None  # faucet placement or sprayer location


@dataclass(frozen=True)
class BasinConfiguration:
    """One basin, 1-indexed by position within its build."""

    position: int
    type: str
    size_code: str | None = None
    addons: tuple[str, ...] = ()

    @property
    def is_recognized(self) -> bool:
        return self.type in BASIN_TYPES

    @property
    def type_kit_id(self) -> str | None:
        return BASIN_TYPE_KITS.get(self.type)

    @property
    def has_basin_light(self) -> bool:
        keywords = get_setting("BASIN_LIGHT_KEYWORDS")
        return any(k in addon.upper() for addon in self.addons for k in keywords)


@dataclass(frozen=True)
class PegboardSpec:
    enabled: bool = False
    type_id: str | None = None
    color_id: str | None = None
    size_basis: int | None = None  # sink length the pegboard size is derived from
    size_part_number: str | None = None

    @property
    def is_perforated(self) -> bool:
        return "PERF" in (self.type_id or "").upper()


@dataclass(frozen=True)
class AccessoryFlags:
    air_gun: bool = False
    water_gun: bool = False
    di_faucet: bool = False
    combo_faucet: bool = False
    dosing_pump: bool = False
    overhead_light: bool = False

    def as_dict(self) -> dict:
        return {
            "airGun": self.air_gun,
            "waterGun": self.water_gun,
            "diFaucet": self.di_faucet,
            "comboFaucet": self.combo_faucet,
            "dosingPump": self.dosing_pump,
            "overheadLight": self.overhead_light,
        }


@dataclass(frozen=True)
class BuildConfiguration:
    """
    Canonical configuration of one physical unit of an order.

    Immutable: every downstream stage (expansion, analysis, task rules,
    procurement) reads it and none of them may change it.
    """

    build_number: str
    sink_model_id: str
    width: int | None = None
    length: int | None = None
    legs_type_id: str | None = None
    feet_type_id: str | None = None
    pegboard: PegboardSpec = field(default_factory=PegboardSpec)
    drawers: tuple[str, ...] = ()
    basins: tuple[BasinConfiguration, ...] = ()
    faucets: tuple[ItemSelection, ...] = ()
    sprayers: tuple[ItemSelection, ...] = ()
    accessories: tuple[ItemSelection, ...] = ()
    flags: AccessoryFlags = field(default_factory=AccessoryFlags)
    language: str = "EN"
    workflow_direction: str | None = None

    def basin_type_counts(self) -> tuple[int, int]:
        """Return (e_drains, e_sinks), E-Sink-DI counting as E-Sink."""
        e_drains = sum(1 for b in self.basins if b.type == E_DRAIN)
        e_sinks = sum(1 for b in self.basins if is_e_sink(b.type))
        return e_drains, e_sinks

    def as_dict(self) -> dict:
        """Document shape of the configuration section for this build."""
        return {
            "buildNumber": self.build_number,
            "sinkModel": self.sink_model_id,
            "dimensions": {
                "width": self.width,
                "length": self.length,
                "unit": "inches",
            },
            "structuralComponents": {
                "legs": {"typeId": self.legs_type_id},
                "feet": {"typeId": self.feet_type_id},
            },
            "pegboard": {
                "enabled": self.pegboard.enabled,
                "type": self.pegboard.type_id,
                "color": self.pegboard.color_id,
                "sizeBasedOnLength": self.pegboard.size_basis,
                "sizePartNumber": self.pegboard.size_part_number,
            },
            "storage": {"drawersAndCompartments": list(self.drawers)},
            "basins": [
                {
                    "position": b.position,
                    "type": b.type,
                    "size": b.size_code,
                    "addons": list(b.addons),
                }
                for b in self.basins
            ],
            "faucets": [
                {"faucetTypeId": f.item_id, "quantity": f.quantity, "placement": f.detail}
                for f in self.faucets
            ],
            "sprayers": [
                {"sprayerTypeId": s.item_id, "quantity": s.quantity, "location": s.detail}
                for s in self.sprayers
            ],
            "accessories": [
                {"accessoryId": a.item_id, "quantity": a.quantity} for a in self.accessories
            ],
            "accessoryFlags": self.flags.as_dict(),
            "workflowDirection": self.workflow_direction,
        }


@dataclass(frozen=True)
class OrderHeader:
    """Order-level fields shared by every build."""

    order_id: str
    po_number: str
    customer_name: str
    project_name: str = ""
    sales_person: str = ""
    want_date: date | None = None
    language: str = "EN"
    build_numbers: tuple[str, ...] = ()


# ══════════════════════════════════════════════════════════════
# NORMALIZER
# ══════════════════════════════════════════════════════════════


def _rows_for(rows: list[dict] | None, build_number: str) -> list[dict]:
    return [row for row in rows or [] if str(row.get("build_number")) == build_number]


def _selection(row: dict, id_key: str, detail_key: str | None = None) -> ItemSelection:
    return ItemSelection(
        item_id=row[id_key],
        quantity=int(row.get("quantity") or 1),
        detail=row.get(detail_key) if detail_key else None,
    )


def _derive_flags(
    accessories: tuple[ItemSelection, ...],
    faucets: tuple[ItemSelection, ...],
    basins: tuple[BasinConfiguration, ...],
) -> AccessoryFlags:
    keywords: dict = get_setting("ACCESSORY_FLAG_KEYWORDS")
    ids = [a.item_id.upper() for a in accessories] + [f.item_id.upper() for f in faucets]

    def raised(flag: str) -> bool:
        return any(k.upper() in item_id for item_id in ids for k in keywords.get(flag, ()))

    return AccessoryFlags(
        air_gun=raised("air_gun"),
        water_gun=raised("water_gun"),
        di_faucet=raised("di_faucet") or any(b.type == E_SINK_DI for b in basins),
        combo_faucet=raised("combo_faucet"),
        dosing_pump=raised("dosing_pump"),
        overhead_light=raised("overhead_light"),
    )


def normalize_header(order: dict) -> OrderHeader:
    return OrderHeader(
        order_id=str(order["order_id"]),
        po_number=order["po_number"],
        customer_name=order["customer_name"],
        project_name=order.get("project_name") or "",
        sales_person=order.get("sales_person") or "",
        want_date=order.get("want_date"),
        language=order.get("language") or "EN",
        build_numbers=tuple(str(bn) for bn in order["build_numbers"]),
    )


def normalize_build(order: dict, build_number: str) -> BuildConfiguration:
    """
    Build the configuration of one build number.

    Raises:
        ConfigurationIncompleteError: no sink configuration row for the build
    """
    sinks = _rows_for(order.get("sink_configurations"), build_number)
    if not sinks:
        raise ConfigurationIncompleteError(build_number, missing="sink_configuration")
    sink = sinks[0]

    basins = tuple(
        BasinConfiguration(
            position=index,
            type=canonical_basin_type(row.get("basin_type_id")),
            size_code=row.get("basin_size_part_number") or None,
            addons=tuple(row.get("addon_ids") or ()),
        )
        for index, row in enumerate(
            _rows_for(order.get("basin_configurations"), build_number), start=1
        )
    )
    faucets = tuple(
        _selection(row, "faucet_type_id", "placement")
        for row in _rows_for(order.get("faucet_configurations"), build_number)
    )
    sprayers = tuple(
        _selection(row, "sprayer_type_id", "location")
        for row in _rows_for(order.get("sprayer_configurations"), build_number)
    )
    accessories = tuple(
        _selection(row, "accessory_id")
        for row in _rows_for(order.get("selected_accessories"), build_number)
    )

    length = sink.get("length")
    return BuildConfiguration(
        build_number=build_number,
        sink_model_id=sink["sink_model_id"],
        width=sink.get("width"),
        length=length,
        legs_type_id=sink.get("legs_type_id") or None,
        feet_type_id=sink.get("feet_type_id") or None,
        pegboard=PegboardSpec(
            enabled=bool(sink.get("pegboard")),
            type_id=sink.get("pegboard_type_id") or None,
            color_id=sink.get("pegboard_color_id") or None,
            size_basis=length,
            size_part_number=sink.get("pegboard_size_part_number") or None,
        ),
        drawers=tuple(sink.get("drawers_and_compartments") or ()),
        basins=basins,
        faucets=faucets,
        sprayers=sprayers,
        accessories=accessories,
        flags=_derive_flags(accessories, faucets, basins),
        language=order.get("language") or "EN",
        workflow_direction=sink.get("workflow_direction") or None,
    )


def normalize_order(order: dict) -> list[BuildConfiguration]:
    """Return one BuildConfiguration per declared build number, in order."""
    return [normalize_build(order, str(bn)) for bn in order["build_numbers"]]
