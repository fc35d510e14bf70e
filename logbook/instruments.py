from datetime import date, timedelta

VALID = "valid"
EXPIRING = "expiring"
EXPIRED = "expired"


def calibration_status(due_date: date, today: date, warning_days: int = 30) -> str:
    """Classify an instrument by how close its calibration due date is."""
    if due_date < today:
        return EXPIRED
    if due_date <= today + timedelta(days=warning_days):
        return EXPIRING
    return VALID
