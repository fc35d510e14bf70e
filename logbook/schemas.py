from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


# ---------- calculators ----------

class ChemicalOut(BaseModel):
    name: str
    stock_concentration: float
    formula: str


class ChemicalCalc(BaseModel):
    chemical_name: str
    concentration: float
    water_volume: float


class ChemicalCalcResult(BaseModel):
    chemical_name: str
    stock_concentration: float
    concentration: float
    water_volume: float
    chemical_quantity: float


class AirEvaluate(BaseModel):
    iso_class: int
    room_volume: float
    grid_readings: list[float]
    diffuser_area: float | None = None
    diffuser_count: int = 1


class AirEvaluateResult(BaseModel):
    average_velocity: float
    flow_rate_cfm: float
    total_cfm: float
    ach: float
    design_spec: float
    result: str


# ---------- record inputs ----------

class UtilityReadingCreate(BaseModel):
    equipment_type: str
    equipment_id: str
    t1: float
    t2: float
    p1: float
    p2: float
    flow_rate: float
    remarks: str = ""


class UtilityReadingUpdate(BaseModel):
    equipment_type: str | None = None
    equipment_id: str | None = None
    t1: float | None = None
    t2: float | None = None
    p1: float | None = None
    p2: float | None = None
    flow_rate: float | None = None
    remarks: str | None = None


class ChemicalPrepCreate(BaseModel):
    chemical_name: str
    equipment_id: str
    concentration: float
    water_volume: float
    remarks: str = ""


class ChemicalPrepUpdate(BaseModel):
    chemical_name: str | None = None
    equipment_id: str | None = None
    concentration: float | None = None
    water_volume: float | None = None
    remarks: str | None = None


class AirValidationCreate(AirEvaluate):
    room_name: str


class AirValidationUpdate(BaseModel):
    room_name: str | None = None
    iso_class: int | None = None
    room_volume: float | None = None
    grid_readings: list[float] | None = None
    diffuser_area: float | None = None
    diffuser_count: int | None = None


class ReportCreate(BaseModel):
    report_type: str
    title: str


class ReportUpdate(BaseModel):
    report_type: str | None = None
    title: str | None = None


class Review(BaseModel):
    remarks: str | None = None


# ---------- outputs ----------

class RecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    site_id: str | None
    status: str
    created_at: datetime
    operator_id: int
    operator_name: str
    approved_by: int | None = None
    approved_by_name: str | None = None
    approved_at: datetime | None = None
    review_remarks: str | None = None


class UtilityReadingOut(RecordOut):
    equipment_type: str
    equipment_id: str
    t1: float
    t2: float
    p1: float
    p2: float
    flow_rate: float
    remarks: str | None = ""


class ChemicalPrepOut(RecordOut):
    chemical_name: str
    equipment_id: str
    concentration: float
    water_volume: float
    chemical_quantity: float
    remarks: str | None = ""


class AirValidationOut(RecordOut):
    room_name: str
    iso_class: int
    room_volume: float
    grid_readings: list[float]
    diffuser_area: float
    diffuser_count: int
    average_velocity: float
    flow_rate_cfm: float
    total_cfm: float
    ach: float
    design_spec: float
    result: str


class ReportOut(RecordOut):
    report_type: str
    title: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str
    site_id: str | None = None


class UserCreate(BaseModel):
    name: str
    email: str
    role: str
    site_id: str | None = None
    password: str | None = None


class Me(UserOut):
    sections: list[str]


class InstrumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    make: str
    model: str
    serial_number: str
    calibration_date: date
    calibration_due_date: date
    certificate_ref: str | None = None
    status: str
