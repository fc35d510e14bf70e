"""
Dilution maths for the chemical preparation log.

Formula: V1 = (C2 * V2) / C1
  C1 = stock concentration (%), C2 = target concentration (%),
  V2 = water / solution volume (L), V1 = chemical quantity (L)
"""
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from logbook.errors import InvalidInput


@dataclass(frozen=True)
class Chemical:
    name: str
    stock_concentration: float   # % as supplied
    formula: str


CHEMICALS = (
    Chemical("Sodium Hydroxide (NaOH)", 98, "NaOH"),
    Chemical("Hydrochloric Acid (HCl)", 37, "HCl"),
    Chemical("Sulfuric Acid (H2SO4)", 98, "H2SO4"),
    Chemical("Nitric Acid (HNO3)", 70, "HNO3"),
    Chemical("Phosphoric Acid (H3PO4)", 85, "H3PO4"),
)

_BY_NAME = {c.name: c for c in CHEMICALS}


def require_number(value, field: str) -> float:
    """Return `value` as a finite float or raise InvalidInput."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInput(f"{field} must be a number", field=field)
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInput(f"{field} must be finite", field=field)
    return value


def _percent(value, field):
    value = require_number(value, field)
    if not 0 < value <= 100:
        raise InvalidInput(f"{field} must be in (0, 100]", field=field)
    return value


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def compute(target_concentration, volume, stock_concentration) -> float:
    """Litres of stock chemical needed for `volume` litres at the target %."""
    target = _percent(target_concentration, "target_concentration")
    stock = _percent(stock_concentration, "stock_concentration")
    volume = require_number(volume, "volume")
    if volume <= 0:
        raise InvalidInput("volume must be greater than 0", field="volume")

    return round_half_up((target * volume) / stock, 2)


def get_chemical(name: str) -> Chemical:
    chemical = _BY_NAME.get(name)
    if chemical is None:
        raise InvalidInput(f"Unknown chemical: {name}", field="chemical_name")
    return chemical


def quantity_for(chemical_name, target_concentration, volume) -> float:
    chemical = get_chemical(chemical_name)
    return compute(target_concentration, volume, chemical.stock_concentration)
