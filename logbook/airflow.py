"""
Cleanroom air validation: grid velocity readings -> CFM -> ACH -> verdict.

Readings are anemometer velocities in feet per minute taken across the
diffuser grid, areas are in square feet and room volume in cubic feet,
so average velocity * area gives CFM directly.
"""
from dataclasses import dataclass, asdict

from logbook.chemistry import require_number
from logbook.errors import InvalidInput

# Minimum air changes per hour per ISO 14644 class.
DESIGN_SPEC_ACH = {
    5: 240,
    6: 150,
    7: 60,
    8: 20,
}

PASS = "pass"
FAIL = "fail"


@dataclass(frozen=True)
class ValidationResult:
    average_velocity: float
    flow_rate_cfm: float
    total_cfm: float
    ach: float
    design_spec: float
    result: str

    @property
    def passed(self) -> bool:
        return self.result == PASS

    def as_dict(self):
        return asdict(self)


def design_spec(iso_class) -> float:
    if isinstance(iso_class, bool) or iso_class not in DESIGN_SPEC_ACH:
        raise InvalidInput(
            f"ISO class must be one of {sorted(DESIGN_SPEC_ACH)}",
            field="iso_class"
        )
    return DESIGN_SPEC_ACH[iso_class]


def average_velocity(grid_readings) -> float:
    if not grid_readings:
        raise InvalidInput("At least one grid reading is required", field="grid_readings")

    readings = []
    for i, reading in enumerate(grid_readings):
        value = require_number(reading, f"grid_readings[{i}]")
        if value < 0:
            raise InvalidInput(
                f"Grid reading {i + 1} is negative", field="grid_readings"
            )
        readings.append(value)

    return sum(readings) / len(readings)


def evaluate(iso_class, room_volume, grid_readings, diffuser_area, diffuser_count=1):
    """
    Evaluate a room against its ISO class design ACH.

    `diffuser_area` and `diffuser_count` describe the room's supply grid
    and come from the room configuration, not from the readings.
    """
    spec = design_spec(iso_class)

    room_volume = require_number(room_volume, "room_volume")
    if room_volume <= 0:
        raise InvalidInput("Room volume must be greater than 0", field="room_volume")

    diffuser_area = require_number(diffuser_area, "diffuser_area")
    if diffuser_area <= 0:
        raise InvalidInput("Diffuser area must be greater than 0", field="diffuser_area")

    if isinstance(diffuser_count, bool) or not isinstance(diffuser_count, int) or diffuser_count < 1:
        raise InvalidInput("Diffuser count must be a whole number >= 1", field="diffuser_count")

    avg = average_velocity(grid_readings)
    flow_rate = avg * diffuser_area
    total_cfm = flow_rate * diffuser_count
    ach = (total_cfm * 60) / room_volume

    return ValidationResult(
        average_velocity=avg,
        flow_rate_cfm=flow_rate,
        total_cfm=total_cfm,
        ach=ach,
        design_spec=spec,
        result=PASS if ach >= spec else FAIL,
    )
