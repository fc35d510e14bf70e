from logbook.chemistry import require_number
from logbook.errors import InvalidInput

EQUIPMENT = {
    "chiller": ["CH-001", "CH-002", "CH-003"],
    "boiler": ["BL-001", "BL-002"],
    "compressor": ["AC-001", "AC-002", "AC-003"],
}

# Chemical prep is dosed into these reactors / tanks
PREP_EQUIPMENT = ["RE0001", "RE0002", "RE0003", "RE0004", "RE0005"]

READING_FIELDS = ("t1", "t2", "p1", "p2", "flow_rate")


def check_equipment(equipment_type, equipment_id):
    ids = EQUIPMENT.get(equipment_type)
    if ids is None:
        raise InvalidInput(
            f"Unknown equipment type: {equipment_type}", field="equipment_type"
        )
    if equipment_id not in ids:
        raise InvalidInput(
            f"{equipment_id} is not a {equipment_type}", field="equipment_id"
        )


def validate_reading(equipment_type, equipment_id, **values):
    """
    Check a manual utility reading before it is stored.

    Temperatures may be negative (chilled water), pressures and flow
    may not.
    """
    check_equipment(equipment_type, equipment_id)

    for field in READING_FIELDS:
        value = require_number(values.get(field), field)
        if field not in ("t1", "t2") and value < 0:
            raise InvalidInput(f"{field} cannot be negative", field=field)


def check_prep_equipment(equipment_id):
    if equipment_id not in PREP_EQUIPMENT:
        raise InvalidInput(
            f"Unknown equipment: {equipment_id}", field="equipment_id"
        )
