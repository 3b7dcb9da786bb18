"""
Task rule engine.

Production and testing tasks are produced by two ordered rule lists. Each
Rule pairs a predicate over the BuildConfiguration with an emitter; rules are
evaluated in list order, so the emitted order follows the assembly sequence
on the shop floor. Do not reorder the lists.

Task ids come from a TaskCounter created per generate_tasks() call, one
counter per id prefix:

    PROD_001, PROD_002, ...               build-level production tasks
    BASIN_1_001 ... BASIN_2_001 ...       production tasks of basin 1, 2...
    TEST_001, TEST_002, ...               build-level testing tasks
    TEST_BASIN_1_001, ...                 testing tasks of basin 1...

The same configuration always yields the same id sequence, which is what
makes task persistence idempotent.

A basin whose type is not recognised emits nothing (warning logged once,
from the production pass).

Usage:
    from buildman.services.tasks import generate_tasks

    plan = generate_tasks(configuration)
    print([t.task_id for t in plan.production])
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from buildman.exceptions import BuildError
from buildman.results import BuildWarning, TaskPlan
from buildman.services.configuration import (
    E_DRAIN,
    BasinConfiguration,
    BuildConfiguration,
    is_e_sink,
)
from buildman.services.expansion import control_box_id

logger = logging.getLogger(__name__)


# Testing task types
SETUP = "setup"
PASS_FAIL = "pass_fail"
MEASUREMENT = "measurement"
CALIBRATION = "calibration"

TEST_TYPES = (SETUP, PASS_FAIL, MEASUREMENT, CALIBRATION)


# ══════════════════════════════════════════════════════════════
# TASK TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ProductionTaskSpec:
    task_id: str
    category: str
    title: str
    description: str
    estimated_time: int  # minutes
    basin_number: int | None = None

    kind = "production"

    def as_dict(self) -> dict:
        return {
            "taskId": self.task_id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "estimatedTime": self.estimated_time,
            "basinNumber": self.basin_number,
        }


@dataclass(frozen=True)
class TestingTaskSpec:
    task_id: str
    category: str
    title: str
    description: str
    estimated_time: int  # minutes
    test_type: str
    expected_result: str | None = None
    unit: str | None = None
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    basin_number: int | None = None

    kind = "testing"
    __test__ = False  # not a pytest class

    def __post_init__(self):
        if self.test_type not in TEST_TYPES:
            raise BuildError("INVALID_TEST_TYPE", task_id=self.task_id, test_type=self.test_type)
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise BuildError(
                "INVALID_TOLERANCE",
                task_id=self.task_id,
                min_value=float(self.min_value),
                max_value=float(self.max_value),
            )

    def as_dict(self) -> dict:
        return {
            "taskId": self.task_id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "estimatedTime": self.estimated_time,
            "testType": self.test_type,
            "expectedResult": self.expected_result,
            "unit": self.unit,
            "minValue": float(self.min_value) if self.min_value is not None else None,
            "maxValue": float(self.max_value) if self.max_value is not None else None,
            "basinNumber": self.basin_number,
        }


# ══════════════════════════════════════════════════════════════
# RULE MACHINERY
# ══════════════════════════════════════════════════════════════


class TaskCounter:
    """Per-prefix sequence, scoped to one generation run."""

    def __init__(self):
        self._values: dict[str, int] = defaultdict(int)

    def next_id(self, prefix: str) -> str:
        self._values[prefix] += 1
        return f"{prefix}_{self._values[prefix]:03d}"


@dataclass
class TaskContext:
    counter: TaskCounter = field(default_factory=TaskCounter)
    warnings: list[BuildWarning] = field(default_factory=list)


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[BuildConfiguration], bool]
    emit: Callable[[BuildConfiguration, TaskContext], list]


def always(configuration: BuildConfiguration) -> bool:
    return True


def run_rules(rules: list[Rule], configuration: BuildConfiguration, context: TaskContext) -> list:
    tasks = []
    for rule in rules:
        if rule.predicate(configuration):
            tasks.extend(rule.emit(configuration, context))
    return tasks


# ══════════════════════════════════════════════════════════════
# PRODUCTION RULES
# ══════════════════════════════════════════════════════════════


def _production(*templates):
    """Emitter for fixed build-level tasks: (category, title, description, minutes)."""

    def emit(configuration, context):
        return [
            ProductionTaskSpec(context.counter.next_id("PROD"), category, title, description, minutes)
            for category, title, description, minutes in templates
        ]

    return emit


def _emit_control_box(configuration: BuildConfiguration, context: TaskContext) -> list:
    triggered = []
    for basin in configuration.basins:
        label = "E-Sink" if is_e_sink(basin.type) else basin.type
        if basin.is_recognized and label not in triggered:
            triggered.append(label)

    box_id = control_box_id(configuration)
    box = f"{box_id} control box" if box_id else "control box"
    return [
        ProductionTaskSpec(
            context.counter.next_id("PROD"),
            "control_system",
            "Install control box",
            f"Install and wire {box} for basin types: {', '.join(triggered)}",
            60,
        )
    ]


E_DRAIN_PRODUCTION = (
    ("basin", "Install bottom-fill mixing valve & faucet", "Installed Bottom-Fill Mixing Valve & Faucet", 30),
    (
        "basin",
        "Install bottom fill assembly",
        'Mixing Valve → 1/2" Male NPT to 3/4BSPP adapter → Check valve → ½" PEX Adaptor → '
        '½" PEX Piping → Bottom Fill hole',
        40,
    ),
    ("basin", "Label hot and cold pipes", "Pipes labelled as Hot Water and Cold Water", 10),
    ("basin", "Install overflow sensor", "Overflow sensor installed", 15),
)

E_SINK_PRODUCTION = (
    ("basin", "Install mixing valve plate", "Mixing Valve plate is installed", 30),
    ("basin", "Install emergency stop buttons", "Emergency Stop buttons installed", 15),
    ("basin", "Mount E-Sink touchscreen", "E-Sink touchscreen mounted onto Sink", 20),
    (
        "control_system",
        "Connect touchscreen to control box",
        "E-Sink touchscreen connected to E-Sink Control Box",
        20,
    ),
    ("basin", "Install overflow sensor", "Overflow sensor installed", 15),
    ("basin", "Install dosing port", "Install dosing port on backsplash", 15),
    ("basin", "Install temperature cable gland", "Install basin temperature cable gland on backsplash", 10),
    (
        "documentation",
        "Record E-Sink serial numbers",
        "Record touchscreen and mixing valve plate serial numbers on the traveller",
        5,
    ),
)


def basin_production_templates(basin: BasinConfiguration) -> tuple:
    if basin.type == E_DRAIN:
        return E_DRAIN_PRODUCTION
    if is_e_sink(basin.type):
        return E_SINK_PRODUCTION
    return ()


def _emit_basin_production(configuration: BuildConfiguration, context: TaskContext) -> list:
    tasks = []
    for basin in configuration.basins:
        templates = basin_production_templates(basin)
        if not templates:
            message = f"Unrecognized basin type {basin.type!r} on basin {basin.position}; no tasks emitted"
            logger.warning(
                message,
                extra={
                    "build_number": configuration.build_number,
                    "basin_number": basin.position,
                    "basin_type": basin.type,
                },
            )
            context.warnings.append(
                BuildWarning(
                    "BASIN_TYPE_UNRECOGNIZED",
                    message,
                    {
                        "buildNumber": configuration.build_number,
                        "basinNumber": basin.position,
                        "basinType": basin.type,
                    },
                )
            )
            continue

        prefix = f"BASIN_{basin.position}"
        for category, title, description, minutes in templates:
            tasks.append(
                ProductionTaskSpec(
                    context.counter.next_id(prefix),
                    category,
                    f"Basin {basin.position}: {title}",
                    description,
                    minutes,
                    basin_number=basin.position,
                )
            )
    return tasks


def _has_control_basin(configuration: BuildConfiguration) -> bool:
    return any(basin.type == E_DRAIN or is_e_sink(basin.type) for basin in configuration.basins)


PRODUCTION_RULES = [
    Rule(
        "lighting",
        lambda c: c.pegboard.enabled,
        _production(
            (
                "lighting",
                "Install overhead LED light bracket",
                "Mount sink overhead LED light bracket with plastic washers (pegboard installation)",
                30,
            ),
            ("lighting", "Install overhead LED light button", "Sink Overhead LED Light button lasered and installed", 15),
        ),
    ),
    Rule(
        "faucets",
        lambda c: bool(c.faucets),
        _production(
            ("faucet", "Install standard basin faucets", "Install all standard basin faucets according to configuration", 45),
        ),
    ),
    Rule(
        "lifter_control_button",
        always,
        _production(
            (
                "control_system",
                "Install lifter control button",
                "Install lifter control button (DPF1K Non-Programmable or DP1C Programmable)",
                30,
            ),
        ),
    ),
    Rule(
        "lifter_controller",
        always,
        _production(
            ("control_system", "Install lifter controller", "Lifter Controller installed underneath the sink", 30),
        ),
    ),
    Rule(
        "logo",
        always,
        _production(("finishing", "Attach Torvan logo", "Attach Torvan logo on left side of sink", 10)),
    ),
    Rule(
        "power_bar",
        always,
        _production(("control_system", "Install power bar", "Install power bar for electrical connections", 20)),
    ),
    Rule("control_box", _has_control_basin, _emit_control_box),
    Rule(
        "cable_labeling",
        always,
        _production(
            (
                "control_system",
                "Label cables",
                "All cables are labelled with 'D#' or 'S#'. Overhead Light cables labelled L4 & S4",
                20,
            ),
        ),
    ),
    Rule(
        "cleaning",
        always,
        _production(("finishing", "Clean sink", "Sink is clean of metal shavings, and waste", 20)),
    ),
    Rule(
        "air_gun",
        lambda c: c.flags.air_gun,
        _production(("accessory", "Install air gun", "Air Gun components (BL-4350-01 and BL-5500-07) installed", 20)),
    ),
    Rule(
        "water_gun",
        lambda c: c.flags.water_gun,
        _production(("accessory", "Install water gun", "Water Gun components (BL-4500-02 and BL-4249) installed", 20)),
    ),
    Rule(
        "di_faucet",
        lambda c: c.flags.di_faucet,
        _production(("faucet", "Install DI faucet", "Install DI gooseneck faucet kit", 25)),
    ),
    Rule(
        "combo_faucet",
        lambda c: c.flags.combo_faucet,
        _production(("faucet", "Install combo faucet", "Install combo faucet and sprayer kit", 25)),
    ),
    Rule("basins", lambda c: bool(c.basins), _emit_basin_production),
]


# ══════════════════════════════════════════════════════════════
# TESTING RULES
# ══════════════════════════════════════════════════════════════


def _testing(*templates):
    """Emitter for fixed build-level tests: dicts of TestingTaskSpec fields."""

    def emit(configuration, context):
        return [
            TestingTaskSpec(task_id=context.counter.next_id("TEST"), category="testing", **template)
            for template in templates
        ]

    return emit


def _tolerance(minimum, maximum) -> dict:
    return {"min_value": Decimal(str(minimum)), "max_value": Decimal(str(maximum))}


OVERFLOW_TESTS = (
    {
        "title": "Test overflow sensor activation",
        "description": "Fill basin until water reaches the overflow sensor",
        "estimated_time": 10,
        "test_type": PASS_FAIL,
        "expected_result": "Overflow alarm activates and filling stops",
    },
    {
        "title": "Test overflow sensor deactivation",
        "description": "Drain basin below the overflow sensor",
        "estimated_time": 10,
        "test_type": PASS_FAIL,
        "expected_result": "Overflow alarm clears within 10-15 seconds",
    },
)

E_DRAIN_TESTS = (
    {
        "title": "Test bottom fill",
        "description": "Open bottom fill faucet to fill basin below overflow sensor",
        "estimated_time": 15,
        "test_type": PASS_FAIL,
        "expected_result": "Water level rises",
    },
    {
        "title": "Test drain button",
        "description": "Press the drain button with water in the basin",
        "estimated_time": 10,
        "test_type": PASS_FAIL,
        "expected_result": "Drain valve opens and basin empties",
    },
) + OVERFLOW_TESTS

E_SINK_TESTS = (
    {
        "title": "Calibrate temperature sensor",
        "description": "Compare basin temperature reading against a calibrated thermometer",
        "estimated_time": 20,
        "test_type": CALIBRATION,
        "expected_result": "Deviation within ±2°C of reference",
        "unit": "°C",
        **_tolerance(-2, 2),
    },
    {
        "title": "Calibrate flow meter",
        "description": "Dispense a 40 L reference volume and measure the collected volume",
        "estimated_time": 20,
        "test_type": CALIBRATION,
        "expected_result": "Between 39 and 41 L for a 40 L request",
        "unit": "L",
        **_tolerance(39, 41),
    },
    {
        "title": "Fill at 20°C and check for leaks",
        "description": "Fill basin at 20°C and inspect every fitting",
        "estimated_time": 20,
        "test_type": PASS_FAIL,
        "expected_result": "Basin fills to set level with no leaks",
    },
    {
        "title": "Test mixing temperature at mixing point (40°C)",
        "description": "Set 40°C and measure at the mixing valve outlet using calibrated thermometer",
        "estimated_time": 25,
        "test_type": MEASUREMENT,
        "expected_result": "Within 4°C of target temperature",
        "unit": "°C",
        **_tolerance(36, 44),
    },
    {
        "title": "Test mixing temperature in basin (40°C)",
        "description": "Set 40°C and measure the water in the basin using calibrated thermometer",
        "estimated_time": 25,
        "test_type": MEASUREMENT,
        "expected_result": "Within 2°C of target temperature",
        "unit": "°C",
        **_tolerance(38, 42),
    },
) + OVERFLOW_TESTS

BASIN_LIGHT_TEST = {
    "title": "Test basin light",
    "description": "Switch the basin light on and off",
    "estimated_time": 5,
    "test_type": PASS_FAIL,
    "expected_result": "Basin light turns on and off",
}


def basin_testing_templates(basin: BasinConfiguration) -> tuple:
    if basin.type == E_DRAIN:
        templates = E_DRAIN_TESTS
    elif is_e_sink(basin.type):
        templates = E_SINK_TESTS
    else:
        return ()
    if basin.has_basin_light:
        templates = templates + (BASIN_LIGHT_TEST,)
    return templates


def _emit_basin_testing(configuration: BuildConfiguration, context: TaskContext) -> list:
    tasks = []
    for basin in configuration.basins:
        prefix = f"TEST_BASIN_{basin.position}"
        for template in basin_testing_templates(basin):
            tasks.append(
                TestingTaskSpec(
                    task_id=context.counter.next_id(prefix),
                    category="testing",
                    basin_number=basin.position,
                    **{**template, "title": f"Basin {basin.position}: {template['title']}"},
                )
            )
    return tasks


TESTING_RULES = [
    Rule(
        "setup",
        always,
        _testing(
            {
                "title": "Set up basin test environment",
                "description": "Install drain assembly, connect drain solenoid, and connect valve "
                "plate/bottom fill faucet to hot and cold water lines",
                "estimated_time": 30,
                "test_type": SETUP,
            }
        ),
    ),
    Rule(
        "general",
        always,
        _testing(
            {
                "title": "Test main power connection",
                "description": "Plug sink main power cord into electrical outlet and verify all systems initialize properly",
                "estimated_time": 10,
                "test_type": PASS_FAIL,
                "expected_result": "E-Drain: All buttons lit, E-Sink: GUI displays on touchscreen(s)",
            },
            {
                "title": "Test height adjustment - raise",
                "description": "Press height adjustment button to raise sink",
                "estimated_time": 5,
                "test_type": PASS_FAIL,
                "expected_result": "Sink height increases when pressing up",
            },
            {
                "title": "Test height adjustment - lower",
                "description": "Press height adjustment button to lower sink",
                "estimated_time": 5,
                "test_type": PASS_FAIL,
                "expected_result": "Sink height decreases when pressing down",
            },
        ),
    ),
    Rule(
        "overhead_light",
        lambda c: c.flags.overhead_light,
        _testing(
            {
                "title": "Test overhead LED light",
                "description": "Press the overhead light button through every brightness level",
                "estimated_time": 5,
                "test_type": PASS_FAIL,
                "expected_result": "Overhead LED light turns on, dims and turns off",
            }
        ),
    ),
    Rule("basins", lambda c: bool(c.basins), _emit_basin_testing),
    Rule(
        "dosing_pump",
        lambda c: c.flags.dosing_pump,
        _testing(
            {
                "title": "Test dosing pump",
                "description": "Prime the dosing pump and run one dosing cycle",
                "estimated_time": 10,
                "test_type": PASS_FAIL,
                "expected_result": "Detergent dispensed into basin",
            }
        ),
    ),
]


# ══════════════════════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════════════════════


def generate_tasks(configuration: BuildConfiguration) -> TaskPlan:
    """Generate the production and testing tasks of one build."""
    context = TaskContext()
    production = run_rules(PRODUCTION_RULES, configuration, context)
    testing = run_rules(TESTING_RULES, configuration, context)

    return TaskPlan(
        build_number=configuration.build_number,
        production=production,
        testing=testing,
        warnings=context.warnings,
    )
