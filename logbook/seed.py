"""Demo users, instruments and a few records for a fresh database."""
import logging
from datetime import date, timedelta

from logbook.auth import hash_password
from logbook.models import (
    User, Instrument, UtilityReading, ChemicalPreparation, AirValidation, Report,
    APPROVED, PENDING, REJECTED, utcnow,
)
from logbook.workflow import recompute

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "logbook"

USERS = [
    ("James Wilson", "operator@logbook.io", "operator", "site-001"),
    ("Sarah Chen", "supervisor@logbook.io", "supervisor", "site-001"),
    ("Michael Foster", "customer@logbook.io", "customer", "site-001"),
    ("Emily Rodriguez", "admin@logbook.io", "super_admin", None),
]

INSTRUMENTS = [
    ("INS-001", "Anemometer", "TSI", "VelociCalc 9565", "TSI-2024-001", date(2024, 6, 15), 365),
    ("INS-002", "Pressure Gauge", "Omega", "PGM-100", "OMG-2023-042", date(2024, 1, 20), 365),
    ("INS-003", "Thermometer", "Fluke", "52-II", "FLK-2023-088", date(2023, 11, 10), 366),
    ("INS-004", "Particle Counter", "Lighthouse", "Handheld 3016", "LH-2024-015", date(2024, 8, 1), 365),
    ("INS-005", "Flow Meter", "Dwyer", "RMB-85", "DWY-2024-033", date(2024, 9, 15), 365),
]


def _record(model, operator, status, hours_ago, reviewer=None, review_remarks=None, **inputs):
    created = utcnow() - timedelta(hours=hours_ago)
    record = model(
        status=status,
        created_at=created,
        operator_id=operator.id,
        operator_name=operator.name,
        site_id=operator.site_id,
    )
    for key, value in recompute(record, **inputs).items():
        setattr(record, key, value)
    if reviewer is not None:
        record.approved_by = reviewer.id
        record.approved_by_name = reviewer.name
        record.approved_at = created + timedelta(hours=1)
        record.review_remarks = review_remarks
    return record


def seed_demo_data(db):
    if db.query(User).first() is not None:
        return

    users = {}
    for name, email, role, site in USERS:
        user = User(name=name, email=email, role=role, site_id=site,
                    hashed_password=hash_password(DEMO_PASSWORD))
        db.add(user)
        users[role] = user
    db.flush()

    for ins_id, name, make, model, serial, calibrated, valid_days in INSTRUMENTS:
        db.add(Instrument(
            id=ins_id, name=name, make=make, model=model, serial_number=serial,
            calibration_date=calibrated,
            calibration_due_date=calibrated + timedelta(days=valid_days),
        ))

    op = users["operator"]
    sv = users["supervisor"]

    db.add_all([
        _record(UtilityReading, op, PENDING, 0.5,
                equipment_type="chiller", equipment_id="CH-001",
                t1=7.2, t2=12.5, p1=2.4, p2=1.8, flow_rate=45.2, remarks="Normal operation"),
        _record(UtilityReading, op, PENDING, 2.5,
                equipment_type="boiler", equipment_id="BL-001",
                t1=185.0, t2=92.0, p1=8.5, p2=7.2, flow_rate=120.0, remarks="High temp warning"),
        _record(UtilityReading, sv, APPROVED, 4, reviewer=sv,
                equipment_type="compressor", equipment_id="AC-001",
                t1=45.0, t2=38.0, p1=7.0, p2=6.5, flow_rate=85.0, remarks=""),
        _record(ChemicalPreparation, op, APPROVED, 0.75, reviewer=sv,
                chemical_name="Sodium Hydroxide (NaOH)", equipment_id="RE0001",
                concentration=5, water_volume=100, remarks="For CIP cycle"),
        _record(ChemicalPreparation, op, PENDING, 2,
                chemical_name="Hydrochloric Acid (HCl)", equipment_id="RE0002",
                concentration=2, water_volume=50, remarks=""),
        _record(AirValidation, sv, APPROVED, 2, reviewer=sv,
                room_name="Fill Room 2", iso_class=7, room_volume=1800,
                grid_readings=[92, 88, 95, 90], diffuser_area=4.0, diffuser_count=6),
        _record(Report, op, PENDING, 2,
                report_type="utility", title="Daily Chiller Log - Line A"),
        _record(Report, sv, APPROVED, 24, reviewer=sv,
                report_type="validation", title="ISO 7 Clean Room Validation - Q4"),
        _record(Report, op, APPROVED, 48, reviewer=sv,
                report_type="chemical", title="CIP Chemical Prep Log - Week 48"),
        _record(Report, op, REJECTED, 72, reviewer=sv,
                review_remarks="Missing pressure readings for 14:00 shift",
                report_type="utility", title="Boiler Maintenance Log - BL-001"),
    ])
    db.commit()
    logger.info("Seeded demo data (%d users)", len(users))
