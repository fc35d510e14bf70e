from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, JSON
from sqlalchemy.orm import declared_attr

from logbook import airflow, chemistry, utility
from logbook.errors import InvalidInput
from logbook.database import Base

DRAFT = "draft"
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

STATUSES = (DRAFT, PENDING, APPROVED, REJECTED)


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    role = Column(String, nullable=False)
    site_id = Column(String, nullable=True)      # super admins have no site
    hashed_password = Column(String, nullable=False)


class RecordMixin:
    """Columns every approvable logbook entry carries."""

    id = Column(Integer, primary_key=True)
    site_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default=DRAFT)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    operator_name = Column(String, nullable=False)

    approved_by_name = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    review_remarks = Column(String, nullable=True)

    # inputs a draft edit may change, and the columns derived from them
    INPUT_FIELDS = ()
    DERIVED_FIELDS = ()

    @declared_attr
    def operator_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=False)

    @declared_attr
    def approved_by(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True)

    def recalculate(self):
        """Re-derive computed columns from the inputs. No-op by default."""

    def describe(self):
        return f"{self.KIND} #{self.id}"


class UtilityReading(RecordMixin, Base):
    __tablename__ = "utility_readings"
    KIND = "utility-logs"
    INPUT_FIELDS = ("equipment_type", "equipment_id", "t1", "t2", "p1", "p2", "flow_rate", "remarks")

    equipment_type = Column(String, nullable=False)
    equipment_id = Column(String, nullable=False)
    t1 = Column(Float, nullable=False)
    t2 = Column(Float, nullable=False)
    p1 = Column(Float, nullable=False)
    p2 = Column(Float, nullable=False)
    flow_rate = Column(Float, nullable=False)
    remarks = Column(String, default="")

    def recalculate(self):
        utility.validate_reading(
            self.equipment_type, self.equipment_id,
            t1=self.t1, t2=self.t2, p1=self.p1, p2=self.p2,
            flow_rate=self.flow_rate
        )

    def describe(self):
        return f"{self.equipment_type.title()} {self.equipment_id} Reading"


class ChemicalPreparation(RecordMixin, Base):
    __tablename__ = "chemical_preparations"
    KIND = "chemical-prep"
    INPUT_FIELDS = ("chemical_name", "equipment_id", "concentration", "water_volume", "remarks")
    DERIVED_FIELDS = ("chemical_quantity",)

    chemical_name = Column(String, nullable=False)
    equipment_id = Column(String, nullable=False)
    concentration = Column(Float, nullable=False)       # target %
    water_volume = Column(Float, nullable=False)        # L
    chemical_quantity = Column(Float, nullable=False)   # L, derived
    remarks = Column(String, default="")

    def recalculate(self):
        utility.check_prep_equipment(self.equipment_id)
        self.chemical_quantity = chemistry.quantity_for(
            self.chemical_name, self.concentration, self.water_volume
        )

    def describe(self):
        formula = chemistry.get_chemical(self.chemical_name).formula
        return f"{formula} Solution Prepared - {self.equipment_id}"


class AirValidation(RecordMixin, Base):
    __tablename__ = "air_validations"
    KIND = "air-validation"
    INPUT_FIELDS = ("room_name", "iso_class", "room_volume", "grid_readings", "diffuser_area", "diffuser_count")
    DERIVED_FIELDS = ("average_velocity", "flow_rate_cfm", "total_cfm", "ach", "design_spec", "result")

    room_name = Column(String, nullable=False)
    iso_class = Column(Integer, nullable=False)
    room_volume = Column(Float, nullable=False)         # cu ft
    grid_readings = Column(JSON, nullable=False)        # fpm, grid order
    diffuser_area = Column(Float, nullable=False)       # sq ft per diffuser
    diffuser_count = Column(Integer, nullable=False, default=1)

    # derived
    average_velocity = Column(Float, nullable=False)
    flow_rate_cfm = Column(Float, nullable=False)
    total_cfm = Column(Float, nullable=False)
    ach = Column(Float, nullable=False)
    design_spec = Column(Float, nullable=False)
    result = Column(String, nullable=False)

    def recalculate(self):
        if not isinstance(self.room_name, str) or not self.room_name.strip():
            raise InvalidInput("Room name is required", field="room_name")
        outcome = airflow.evaluate(
            self.iso_class,
            self.room_volume,
            self.grid_readings,
            self.diffuser_area,
            self.diffuser_count if self.diffuser_count is not None else 1,
        )
        for key, value in outcome.as_dict().items():
            setattr(self, key, value)
        return outcome

    def describe(self):
        return f"ISO {self.iso_class} Clean Room Validation - {self.room_name}"


class Report(RecordMixin, Base):
    __tablename__ = "reports"
    KIND = "reports"
    INPUT_FIELDS = ("report_type", "title")

    REPORT_TYPES = ("utility", "chemical", "validation")

    report_type = Column(String, nullable=False)
    title = Column(String, nullable=False)

    def recalculate(self):
        if self.report_type not in self.REPORT_TYPES:
            raise InvalidInput(f"Unknown report type: {self.report_type}", field="report_type")
        if not (self.title or "").strip():
            raise InvalidInput("Report title is required", field="title")

    def describe(self):
        return self.title


class Instrument(Base):
    __tablename__ = "instruments"

    id = Column(String, primary_key=True)           # INS-001
    name = Column(String, nullable=False)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    serial_number = Column(String, nullable=False)
    calibration_date = Column(Date, nullable=False)
    calibration_due_date = Column(Date, nullable=False)
    certificate_ref = Column(String, nullable=True)


RECORD_MODELS = {
    model.KIND: model
    for model in (UtilityReading, ChemicalPreparation, AirValidation, Report)
}
