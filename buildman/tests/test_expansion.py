"""
Tests for top-level item selection and the BOM expansion engine.
"""

import pytest

from buildman import BuildError
from buildman.adapters.catalog import JSONCatalogBackend
from buildman.exceptions import BOMCycleError
from buildman.services.configuration import (
    BasinConfiguration,
    BuildConfiguration,
    PegboardSpec,
    normalize_order,
)
from buildman.services.expansion import (
    BOMExpander,
    control_box_id,
    pegboard_size,
    select_top_level,
    sink_body_id,
)
from buildman.tests.conftest import make_catalog


def config(**overrides):
    values = {"build_number": "001", "sink_model_id": "T2-B1", "length": 60}
    values.update(overrides)
    return BuildConfiguration(**values)


def basins(*types):
    return tuple(BasinConfiguration(position=i, type=t) for i, t in enumerate(types, start=1))


class TestSinkBody:
    @pytest.mark.parametrize(
        "length, body",
        [
            (48, "T2-BODY-48-60-HA"),
            (60, "T2-BODY-48-60-HA"),
            (61, "T2-BODY-61-72-HA"),
            (72, "T2-BODY-61-72-HA"),
            (73, "T2-BODY-73-120-HA"),
            (120, "T2-BODY-73-120-HA"),
        ],
    )
    def test_body_by_length(self, length, body):
        assert sink_body_id(length) == body

    @pytest.mark.parametrize("length", [47, 121])
    def test_out_of_range(self, length):
        with pytest.raises(BuildError) as exc:
            sink_body_id(length)
        assert exc.value.code == "INVALID_SINK_LENGTH"


class TestPegboardSize:
    def test_sizes(self):
        assert pegboard_size(34) == "3436"
        assert pegboard_size(60) == "6036"
        assert pegboard_size(119) == "10836"
        assert pegboard_size(130) == "12036"

    def test_longer_than_table_uses_largest(self):
        assert pegboard_size(140) == "12036"

    def test_too_short_or_unknown(self):
        assert pegboard_size(20) is None
        assert pegboard_size(None) is None


class TestControlBox:
    @pytest.mark.parametrize(
        "types, box",
        [
            (("E-Drain",), "T2-CTRL-EDR1"),
            (("E-Sink",), "T2-CTRL-ESK1"),
            (("E-Sink-DI",), "T2-CTRL-ESK1"),
            (("E-Drain", "E-Sink"), "T2-CTRL-EDR1-ESK1"),
            (("E-Drain", "E-Drain", "E-Sink"), "T2-CTRL-EDR2-ESK1"),
            (("E-Sink", "E-Sink", "E-Sink"), "T2-CTRL-ESK3"),
        ],
    )
    def test_box_by_basin_mix(self, types, box):
        assert control_box_id(config(basins=basins(*types))) == box

    def test_unsupported_mix_warns(self):
        items, warnings = select_top_level(
            config(basins=basins("E-Drain", "E-Drain", "E-Sink", "E-Sink"))
        )

        assert not [i for i in items if i.category == "CONTROL_BOX"]
        assert [w.code for w in warnings] == ["CONTROL_BOX_UNAVAILABLE"]
        assert warnings[0].context["eDrains"] == 2


class TestSelectTopLevel:
    def test_fixed_order(self, raw_order):
        (configuration,) = normalize_order(raw_order)

        items, warnings = select_top_level(configuration)

        assert [(i.item_id, i.category) for i in items] == [
            ("T2-STD-MANUAL-EN-KIT", "SYSTEM"),
            ("T2-BODY-48-60-HA", "SINK_BODY"),
            ("T2-DL27-KIT", "LEGS"),
            ("T2-LEVELING-CASTOR-475", "FEET"),
            ("T2-OHL-MDRD-KIT", "PEGBOARD"),
            ("T2-ADW-PB-6036-PERF-KIT", "PEGBOARD"),
            ("T2-BSN-EDR-KIT", "BASIN_TYPE_KIT"),
            ("T2-ADW-BASIN20X20X8", "BASIN_SIZE_ASSEMBLY"),
            ("T2-CTRL-EDR1", "CONTROL_BOX"),
        ]
        assert items[5].fallbacks == ("T2-ADW-PB-PERF-KIT",)
        assert warnings == []

    def test_manual_by_language(self):
        items, _ = select_top_level(config(language="FR"))
        assert items[0].item_id == "T2-STD-MANUAL-FR-KIT"

    def test_no_length_skips_body(self):
        items, _ = select_top_level(config(length=None))
        assert [i.category for i in items] == ["SYSTEM"]

    def test_colored_pegboard(self):
        pegboard = PegboardSpec(enabled=True, type_id="SOLID", color_id="green", size_basis=84)
        items, _ = select_top_level(config(length=84, pegboard=pegboard))
        assert "T2-ADW-PB-8436-GREEN-SOLID-KIT" in [i.item_id for i in items]

    def test_di_gooseneck_quantity_counts_di_basins(self):
        items, _ = select_top_level(config(basins=basins("E-Sink-DI", "E-Sink-DI")))

        (auto,) = [i for i in items if i.category == "FAUCET_AUTO"]
        assert auto.item_id == "T2-OA-DI-GOOSENECK-FAUCET-KIT"
        assert auto.quantity == 2


class TestBOMExpander:
    def test_tree_shape_and_categories(self):
        catalog = make_catalog(
            {"ROOT": [("SUB", 2), ("LEAF-A", 3)], "SUB": [("LEAF-B", 4)]},
            ["LEAF-A", "LEAF-B"],
        )

        node = BOMExpander(catalog).expand_item("ROOT", 1, "SINK_BODY", build_number="001")

        assert node.category == "SINK_BODY"
        assert node.build_number == "001"
        sub, leaf_a = node.components
        assert (sub.id, sub.category, sub.quantity) == ("SUB", "SUB_ASSEMBLY", 2)
        assert (leaf_a.id, leaf_a.category, leaf_a.quantity) == ("LEAF-A", "PART", 3)
        assert sub.components[0].quantity == 4  # edge quantity, not multiplied
        assert sub.build_number is None

    def test_unknown_child_skipped_with_warning(self):
        catalog = make_catalog({"ROOT": [("LEAF", 1), ("GHOST", 1)]}, ["LEAF"])
        warnings = []

        node = BOMExpander(catalog).expand_item("ROOT", warnings=warnings)

        assert [c.id for c in node.components] == ["LEAF"]
        assert [w.code for w in warnings] == ["CATALOG_ITEM_NOT_FOUND"]
        assert warnings[0].context == {"itemId": "GHOST", "parentId": "ROOT", "buildNumber": None}

    def test_unknown_root_returns_none(self):
        warnings = []
        assert BOMExpander(make_catalog({}, [])).expand_item("NOPE", warnings=warnings) is None
        assert warnings[0].code == "CATALOG_ITEM_NOT_FOUND"

    def test_cycle_rejected(self):
        catalog = make_catalog({"A": [("B", 1)], "B": [("C", 1)], "C": [("A", 1)]}, [])

        with pytest.raises(BOMCycleError) as exc:
            BOMExpander(catalog).expand_item("A")

        assert exc.value.code == "BOM_CYCLE"
        assert exc.value.details["node_id"] == "A"
        assert exc.value.details["path"] == ["A", "B", "C", "A"]

    def test_self_reference_rejected(self):
        catalog = make_catalog({"A": [("A", 1)]}, [])
        with pytest.raises(BOMCycleError):
            BOMExpander(catalog).expand_item("A")

    def test_diamond_reuse_allowed(self):
        catalog = make_catalog(
            {"ROOT": [("LEFT", 1), ("RIGHT", 1)], "LEFT": [("SHARED", 1)], "RIGHT": [("SHARED", 2)]},
            ["SHARED"],
        )

        node = BOMExpander(catalog).expand_item("ROOT")

        shared = [n for n, _ in node.walk() if n.id == "SHARED"]
        assert [n.quantity for n in shared] == [1, 2]

    def test_depth_stop_warns(self):
        catalog = make_catalog({"A": [("B", 1)], "B": [("C", 1)], "C": [("LEAF", 1)]}, ["LEAF"])
        warnings = []

        node = BOMExpander(catalog, max_depth=2).expand_item("A", warnings=warnings)

        depths = {n.id: d for n, d in node.walk()}
        assert depths == {"A": 0, "B": 1, "C": 2}
        assert [w.code for w in warnings] == ["BOM_DEPTH_EXCEEDED"]

    def test_expand_build_with_pegboard_fallback(self, raw_order):
        (configuration,) = normalize_order(raw_order)

        roots, warnings = BOMExpander(JSONCatalogBackend()).expand_build(configuration)

        assert [r.id for r in roots] == [
            "T2-STD-MANUAL-EN-KIT",
            "T2-BODY-48-60-HA",
            "T2-DL27-KIT",
            "T2-LEVELING-CASTOR-475",
            "T2-OHL-MDRD-KIT",
            "T2-ADW-PB-PERF-KIT",
            "T2-BSN-EDR-KIT",
            "T2-ADW-BASIN20X20X8",
            "T2-CTRL-EDR1",
        ]
        assert {r.build_number for r in roots} == {"001"}
        assert [w.code for w in warnings] == ["PEGBOARD_FALLBACK"]
        assert sum(1 for r in roots for _ in r.walk()) == 22


class TestCustomPanels:
    CUSTOM_BASIN = "720.215.001 T2-ADW-BASIN-24X20X8"
    CUSTOM_PEGBOARD = "720.215.002 T2-ADW-PB-60X36"

    def test_custom_basin_selected_as_panel(self):
        basin = BasinConfiguration(position=1, type="E-Drain", size_code=self.CUSTOM_BASIN)

        items, _ = select_top_level(config(basins=(basin,)))

        (panel,) = [i for i in items if i.item_id == self.CUSTOM_BASIN]
        assert panel.category == "BASIN_PANEL"
        assert panel.custom_name == "Custom Basin 24X20X8"

    def test_custom_pegboard_panel_follows_kits(self):
        pegboard = PegboardSpec(
            enabled=True, type_id="PERF", size_basis=60, size_part_number=self.CUSTOM_PEGBOARD
        )

        items, _ = select_top_level(config(pegboard=pegboard))

        assert [(i.item_id, i.category) for i in items if i.category.startswith("PEGBOARD")] == [
            ("T2-OHL-MDRD-KIT", "PEGBOARD"),
            ("T2-ADW-PB-6036-PERF-KIT", "PEGBOARD"),
            (self.CUSTOM_PEGBOARD, "PEGBOARD_PANEL"),
        ]
        assert items[-1].custom_name == "Custom Pegboard Panel 60X36"

    def test_standard_size_part_number_is_expanded(self):
        pegboard = PegboardSpec(enabled=True, type_id="PERF", size_part_number="T2-ADW-PB-PERF-KIT")

        items, _ = select_top_level(config(pegboard=pegboard))

        assert items[-1].item_id == "T2-ADW-PB-PERF-KIT"
        assert items[-1].category == "PEGBOARD"
        assert items[-1].custom_name is None

    def test_custom_basin_not_in_catalog_becomes_leaf(self, raw_order):
        raw_order["basin_configurations"][0]["basin_size_part_number"] = self.CUSTOM_BASIN
        (configuration,) = normalize_order(raw_order)

        roots, warnings = BOMExpander(JSONCatalogBackend()).expand_build(configuration)

        (panel,) = [r for r in roots if r.id == self.CUSTOM_BASIN]
        assert panel.name == "Custom Basin 24X20X8"
        assert panel.type == "CUSTOM_PART_AUTOGEN"
        assert panel.category == "BASIN_PANEL"
        assert panel.build_number == "001"
        assert panel.components == []
        assert [w.code for w in warnings] == ["PEGBOARD_FALLBACK"]

    def test_catalog_details_win(self):
        catalog = make_catalog({}, [self.CUSTOM_BASIN])
        basin = BasinConfiguration(position=1, type="E-Drain", size_code=self.CUSTOM_BASIN)

        roots, _ = BOMExpander(catalog).expand_build(config(length=None, basins=(basin,)))

        (panel,) = [r for r in roots if r.id == self.CUSTOM_BASIN]
        assert panel.name == self.CUSTOM_BASIN.title()
        assert panel.type == "COMPONENT"
        assert panel.category == "BASIN_PANEL"
