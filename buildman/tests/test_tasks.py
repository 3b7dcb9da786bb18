"""
Tests for the task rule engine.
"""

import pytest
from decimal import Decimal

from buildman import BuildError
from buildman.services.configuration import (
    AccessoryFlags,
    BasinConfiguration,
    BuildConfiguration,
    PegboardSpec,
    normalize_order,
)
from buildman.services.tasks import (
    PRODUCTION_RULES,
    TESTING_RULES,
    TaskCounter,
    TestingTaskSpec,
    generate_tasks,
)


def config(basin_types=(), addons=None, **overrides):
    addons = addons or {}
    values = {
        "build_number": "001",
        "sink_model_id": "T2-B1",
        "length": 60,
        "basins": tuple(
            BasinConfiguration(position=i, type=t, addons=tuple(addons.get(i, ())))
            for i, t in enumerate(basin_types, start=1)
        ),
    }
    values.update(overrides)
    return BuildConfiguration(**values)


class TestTaskCounter:
    def test_per_prefix_sequences(self):
        counter = TaskCounter()

        assert counter.next_id("PROD") == "PROD_001"
        assert counter.next_id("BASIN_1") == "BASIN_1_001"
        assert counter.next_id("PROD") == "PROD_002"

    def test_scoped_per_instance(self):
        TaskCounter().next_id("PROD")
        assert TaskCounter().next_id("PROD") == "PROD_001"


class TestEndToEndScenario:
    def test_pegboard_one_e_drain(self, raw_order):
        (configuration,) = normalize_order(raw_order)

        plan = generate_tasks(configuration)

        lighting = [t for t in plan.production if t.category == "lighting"]
        basin = [t for t in plan.production if t.basin_number == 1]
        control_box = [t for t in plan.production if t.title == "Install control box"]
        assert len(lighting) == 2
        assert len(basin) == 4
        assert len(control_box) == 1
        # 2 lighting + 6 unconditional + control box + 4 basin
        assert len(plan.production) == 13

        assert [t.test_type for t in plan.testing].count("setup") == 1
        assert len([t for t in plan.testing if t.basin_number == 1]) == 4
        assert len(plan.testing) == 8
        assert plan.warnings == []

    def test_task_id_sequence(self, raw_order):
        (configuration,) = normalize_order(raw_order)

        plan = generate_tasks(configuration)

        assert [t.task_id for t in plan.production] == [
            "PROD_001",
            "PROD_002",
            "PROD_003",
            "PROD_004",
            "PROD_005",
            "PROD_006",
            "PROD_007",
            "PROD_008",
            "PROD_009",
            "BASIN_1_001",
            "BASIN_1_002",
            "BASIN_1_003",
            "BASIN_1_004",
        ]
        assert [t.task_id for t in plan.testing] == [
            "TEST_001",
            "TEST_002",
            "TEST_003",
            "TEST_004",
            "TEST_BASIN_1_001",
            "TEST_BASIN_1_002",
            "TEST_BASIN_1_003",
            "TEST_BASIN_1_004",
        ]


class TestDeterminism:
    def test_same_configuration_same_ids(self):
        configuration = config(("E-Sink", "E-Drain"), pegboard=PegboardSpec(enabled=True))

        first = generate_tasks(configuration)
        second = generate_tasks(configuration)

        assert first.task_ids == second.task_ids
        assert [t.as_dict() for t in first.testing] == [t.as_dict() for t in second.testing]


class TestUnconditionalRules:
    def test_minimal_build(self):
        plan = generate_tasks(config())

        assert [t.title for t in plan.production] == [
            "Install lifter control button",
            "Install lifter controller",
            "Attach Torvan logo",
            "Install power bar",
            "Label cables",
            "Clean sink",
        ]
        assert len(plan.testing) == 4


class TestConditionalRules:
    def test_faucets(self):
        from buildman.services.configuration import ItemSelection

        plan = generate_tasks(config(faucets=(ItemSelection("T2-OA-STD-FAUCET-WB-KIT"),)))
        assert plan.production[0].title == "Install standard basin faucets"

    @pytest.mark.parametrize(
        "flag, title",
        [
            ("air_gun", "Install air gun"),
            ("water_gun", "Install water gun"),
            ("di_faucet", "Install DI faucet"),
            ("combo_faucet", "Install combo faucet"),
        ],
    )
    def test_accessory_flags(self, flag, title):
        plan = generate_tasks(config(flags=AccessoryFlags(**{flag: True})))

        titles = [t.title for t in plan.production]
        assert titles.count(title) == 1
        assert titles.index(title) == titles.index("Clean sink") + 1

    def test_overhead_light_and_dosing_pump_tests(self):
        plan = generate_tasks(
            config(("E-Drain",), flags=AccessoryFlags(overhead_light=True, dosing_pump=True))
        )

        titles = [t.title for t in plan.testing]
        assert titles[4] == "Test overhead LED light"
        assert titles[-1] == "Test dosing pump"

    def test_control_box_names_types(self):
        plan = generate_tasks(config(("E-Drain", "E-Sink-DI")))

        (task,) = [t for t in plan.production if t.title == "Install control box"]
        assert "E-Drain, E-Sink" in task.description
        assert "T2-CTRL-EDR1-ESK1" in task.description

    def test_no_control_box_without_basins(self):
        plan = generate_tasks(config())
        assert not [t for t in plan.production if t.title == "Install control box"]


class TestBasinFanOut:
    def test_e_drain_four_tasks(self):
        plan = generate_tasks(config(("E-Drain", "E-Drain")))

        for number in (1, 2):
            tasks = [t for t in plan.production if t.basin_number == number]
            assert len(tasks) == 4
            assert all(t.task_id.startswith(f"BASIN_{number}_") for t in tasks)

    def test_e_sink_eight_tasks(self):
        plan = generate_tasks(config(("E-Sink", "E-Sink-DI")))

        for number in (1, 2):
            tasks = [t for t in plan.production if t.basin_number == number]
            assert len(tasks) == 8
            assert [t.task_id for t in tasks][-1] == f"BASIN_{number}_008"

    def test_unrecognized_basin_emits_nothing(self):
        plan = generate_tasks(config(("E-Drain", "Manual")))

        assert not [t for t in plan.production if t.basin_number == 2]
        assert not [t for t in plan.testing if t.basin_number == 2]
        assert [w.code for w in plan.warnings] == ["BASIN_TYPE_UNRECOGNIZED"]
        assert plan.warnings[0].context["basinNumber"] == 2

    def test_build_level_tasks_have_no_basin_number(self):
        plan = generate_tasks(config(("E-Sink",)))

        for task in plan.production + plan.testing:
            basin_scoped = "BASIN_" in task.task_id
            assert (task.basin_number is not None) == basin_scoped


class TestMeasurementTolerances:
    def e_sink_tests(self, addons=None):
        plan = generate_tasks(config(("E-Sink",), addons=addons))
        return {t.title.split(": ", 1)[1]: t for t in plan.testing if t.basin_number == 1}

    def test_mixing_point_and_in_basin_differ(self):
        tests = self.e_sink_tests()

        mixing = tests["Test mixing temperature at mixing point (40°C)"]
        in_basin = tests["Test mixing temperature in basin (40°C)"]
        assert (mixing.min_value, mixing.max_value) == (Decimal("36"), Decimal("44"))
        assert (in_basin.min_value, in_basin.max_value) == (Decimal("38"), Decimal("42"))
        assert mixing.unit == in_basin.unit == "°C"

    def test_calibrations(self):
        tests = self.e_sink_tests()

        temperature = tests["Calibrate temperature sensor"]
        flow = tests["Calibrate flow meter"]
        assert (temperature.min_value, temperature.max_value) == (Decimal("-2"), Decimal("2"))
        assert (flow.min_value, flow.max_value, flow.unit) == (Decimal("39"), Decimal("41"), "L")
        assert temperature.test_type == flow.test_type == "calibration"

    def test_overflow_pair(self):
        tests = self.e_sink_tests()

        assert tests["Test overflow sensor activation"].test_type == "pass_fail"
        assert tests["Test overflow sensor deactivation"].test_type == "pass_fail"

    def test_basin_light_gated_on_addon(self):
        assert "Test basin light" not in self.e_sink_tests()
        assert "Test basin light" in self.e_sink_tests({1: ["T2-BASIN-LIGHT-ESK"]})

    def test_all_generated_ranges_ordered(self):
        plan = generate_tasks(config(("E-Sink", "E-Drain", "E-Sink-DI")))

        for task in plan.testing:
            if task.min_value is not None:
                assert task.min_value <= task.max_value
                assert task.test_type in ("measurement", "calibration")

    def test_as_dict_floats(self):
        tests = self.e_sink_tests()
        data = tests["Calibrate flow meter"].as_dict()

        assert data["minValue"] == 39.0
        assert data["maxValue"] == 41.0
        assert data["testType"] == "calibration"

    def test_inverted_range_rejected(self):
        with pytest.raises(BuildError) as exc:
            TestingTaskSpec(
                task_id="TEST_X",
                category="testing",
                title="Broken",
                description="",
                estimated_time=1,
                test_type="measurement",
                min_value=Decimal("5"),
                max_value=Decimal("1"),
            )

        assert exc.value.code == "INVALID_TOLERANCE"

    def test_unknown_test_type_rejected(self):
        with pytest.raises(BuildError) as exc:
            TestingTaskSpec("TEST_X", "testing", "Broken", "", 1, test_type="smoke")

        assert exc.value.code == "INVALID_TEST_TYPE"


class TestRuleOrder:
    def test_production_rule_names(self):
        assert [r.name for r in PRODUCTION_RULES] == [
            "lighting",
            "faucets",
            "lifter_control_button",
            "lifter_controller",
            "logo",
            "power_bar",
            "control_box",
            "cable_labeling",
            "cleaning",
            "air_gun",
            "water_gun",
            "di_faucet",
            "combo_faucet",
            "basins",
        ]

    def test_testing_rule_names(self):
        assert [r.name for r in TESTING_RULES] == [
            "setup",
            "general",
            "overhead_light",
            "basins",
            "dosing_pump",
        ]
