import logging
import secrets
from collections import Counter
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, Depends, HTTPException, Query, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from logbook import access, airflow, chemistry, utility
from logbook.auth import authenticate, hash_password
from logbook.config import get_settings
from logbook.database import Base, SessionLocal, engine, get_db
from logbook.errors import InvalidInput, LogbookError, Unauthorized
from logbook.export import XLSX_MEDIA_TYPE, approved_workbook
from logbook.instruments import VALID, calibration_status
from logbook.models import RECORD_MODELS, REJECTED, STATUSES, Instrument, User, AirValidation
from logbook.repository import SqlRecordRepository
from logbook.seed import seed_demo_data
from logbook.workflow import ApprovalWorkflow
from logbook import schemas

logger = logging.getLogger(__name__)


# -------------------------------------------------
# APP
# -------------------------------------------------
@asynccontextmanager
async def lifespan(app):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    Base.metadata.create_all(engine)
    if settings.seed_demo_data:
        db = SessionLocal()
        try:
            seed_demo_data(db)
        finally:
            db.close()
    yield


app = FastAPI(
    title="Facility Logbook",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------
# ERRORS
# -------------------------------------------------
@app.exception_handler(LogbookError)
async def logbook_error(request, exc: LogbookError):
    return JSONResponse(status_code=exc.http_status, content=exc.as_dict())


@app.exception_handler(RequestValidationError)
async def form_error(request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or None
    err = InvalidInput(first.get("msg", "Invalid form values"), field=field)
    return JSONResponse(status_code=err.http_status, content=err.as_dict())


# -------------------------------------------------
# IDENTITY
# -------------------------------------------------
basic = HTTPBasic()


def current_user(
    credentials: HTTPBasicCredentials = Depends(basic),
    db: Session = Depends(get_db),
):
    user = authenticate(db, credentials.username, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return user


def require_section(section):
    def check(user: User = Depends(current_user)):
        if not access.can_open(user.role, section):
            raise Unauthorized(f"Role '{user.role}' cannot open {section}")
        return user
    return check


def workflow_for(kind, db):
    return ApprovalWorkflow(SqlRecordRepository(db, RECORD_MODELS[kind]))


@app.get("/me", response_model=schemas.Me)
def me(user: User = Depends(current_user)):
    return schemas.Me(
        id=user.id, name=user.name, email=user.email, role=user.role,
        site_id=user.site_id,
        sections=access.get_allowed_sections_for_role(user.role),
    )


# -------------------------------------------------
# REFERENCE DATA
# -------------------------------------------------
@app.get("/chemicals", response_model=list[schemas.ChemicalOut])
def list_chemicals(user: User = Depends(require_section("chemical-prep"))):
    return [
        schemas.ChemicalOut(name=c.name, stock_concentration=c.stock_concentration, formula=c.formula)
        for c in chemistry.CHEMICALS
    ]


@app.get("/equipment")
def list_equipment(user: User = Depends(require_section("logbooks"))):
    return {
        "utility": utility.EQUIPMENT,
        "chemical_prep": utility.PREP_EQUIPMENT,
        "iso_classes": airflow.DESIGN_SPEC_ACH,
    }


# -------------------------------------------------
# CALCULATORS (preview, nothing is stored)
# -------------------------------------------------
@app.post("/chemical-prep/calculate", response_model=schemas.ChemicalCalcResult)
def calculate_chemical(data: schemas.ChemicalCalc,
                       user: User = Depends(require_section("chemical-prep"))):
    chemical = chemistry.get_chemical(data.chemical_name)
    quantity = chemistry.compute(data.concentration, data.water_volume, chemical.stock_concentration)
    return schemas.ChemicalCalcResult(
        chemical_name=chemical.name,
        stock_concentration=chemical.stock_concentration,
        concentration=data.concentration,
        water_volume=data.water_volume,
        chemical_quantity=quantity,
    )


@app.post("/air-validation/evaluate", response_model=schemas.AirEvaluateResult)
def evaluate_air(data: schemas.AirEvaluate,
                 user: User = Depends(require_section("air-validation"))):
    area = data.diffuser_area
    if area is None:
        area = get_settings().default_diffuser_area
    outcome = airflow.evaluate(
        data.iso_class, data.room_volume, data.grid_readings, area, data.diffuser_count
    )
    return schemas.AirEvaluateResult(**outcome.as_dict())


# -------------------------------------------------
# RECORDS
# -------------------------------------------------
def _air_defaults(inputs):
    if "diffuser_area" in inputs and inputs["diffuser_area"] is None:
        inputs["diffuser_area"] = get_settings().default_diffuser_area
    if "diffuser_count" in inputs and inputs["diffuser_count"] is None:
        inputs["diffuser_count"] = 1
    return inputs


def _alert_on_fail(record):
    if isinstance(record, AirValidation) and record.result == airflow.FAIL:
        logger.warning(
            "ALERT: %s at %.1f ACH is below the ISO %s design of %s",
            record.room_name, record.ach, record.iso_class, record.design_spec
        )


def _matches(record, status_filter, search, report_type):
    if status_filter and record.status != status_filter:
        return False
    if report_type and getattr(record, "report_type", None) != report_type:
        return False
    if search:
        needle = search.lower()
        return needle in record.describe().lower() or needle in str(record.id)
    return True


def register_record_routes(kind, create_schema, update_schema, out_schema):
    section = require_section(kind)

    @app.post(f"/{kind}", response_model=out_schema, status_code=201)
    def create(data: create_schema, user: User = Depends(section), db: Session = Depends(get_db)):
        inputs = _air_defaults(data.model_dump())
        record = workflow_for(kind, db).create(user, **inputs)
        _alert_on_fail(record)
        return record

    @app.get(f"/{kind}", response_model=list[out_schema])
    def list_records(status_filter: str | None = Query(None, alias="status"),
                     search: str | None = None,
                     report_type: str | None = Query(None, alias="type"),
                     user: User = Depends(section), db: Session = Depends(get_db)):
        records = workflow_for(kind, db).visible(user)
        return [r for r in records if _matches(r, status_filter, search, report_type)]

    @app.get(f"/{kind}/{{record_id}}", response_model=out_schema)
    def get_record(record_id: int, user: User = Depends(section), db: Session = Depends(get_db)):
        return workflow_for(kind, db).get(user, record_id)

    @app.patch(f"/{kind}/{{record_id}}", response_model=out_schema)
    def revise(record_id: int, data: update_schema,
               user: User = Depends(section), db: Session = Depends(get_db)):
        inputs = _air_defaults(data.model_dump(exclude_unset=True))
        record = workflow_for(kind, db).revise(record_id, user, **inputs)
        _alert_on_fail(record)
        return record

    @app.post(f"/{kind}/{{record_id}}/submit", response_model=out_schema)
    def submit(record_id: int, user: User = Depends(section), db: Session = Depends(get_db)):
        return workflow_for(kind, db).submit(record_id, user)

    @app.post(f"/{kind}/{{record_id}}/approve", response_model=out_schema)
    def approve(record_id: int, data: schemas.Review | None = None,
                user: User = Depends(section), db: Session = Depends(get_db)):
        remarks = data.remarks if data else None
        return workflow_for(kind, db).approve(record_id, user, remarks)

    @app.post(f"/{kind}/{{record_id}}/reject", response_model=out_schema)
    def reject(record_id: int, data: schemas.Review | None = None,
               user: User = Depends(section), db: Session = Depends(get_db)):
        remarks = data.remarks if data else None
        return workflow_for(kind, db).reject(record_id, user, remarks)


register_record_routes("utility-logs", schemas.UtilityReadingCreate,
                       schemas.UtilityReadingUpdate, schemas.UtilityReadingOut)
register_record_routes("chemical-prep", schemas.ChemicalPrepCreate,
                       schemas.ChemicalPrepUpdate, schemas.ChemicalPrepOut)
register_record_routes("air-validation", schemas.AirValidationCreate,
                       schemas.AirValidationUpdate, schemas.AirValidationOut)
register_record_routes("reports", schemas.ReportCreate,
                       schemas.ReportUpdate, schemas.ReportOut)


# -------------------------------------------------
# DASHBOARD / ALERTS
# -------------------------------------------------
@app.get("/dashboard/summary")
def dashboard_summary(user: User = Depends(require_section("dashboard")),
                      db: Session = Depends(get_db)):
    counts = {}
    activity = []

    for kind in RECORD_MODELS:
        if not (access.can_open(user.role, kind) or access.can_open(user.role, "reports")):
            continue
        records = workflow_for(kind, db).visible(user)
        by_status = Counter(r.status for r in records)
        counts[kind] = {s: by_status.get(s, 0) for s in STATUSES}
        activity.extend(records)

    activity.sort(key=lambda r: r.created_at, reverse=True)

    return {
        "counts": counts,
        "recent_activity": [
            {
                "id": r.id,
                "type": r.KIND,
                "action": r.describe(),
                "operator": r.operator_name,
                "timestamp": r.created_at,
                "status": r.status,
            }
            for r in activity[:5]
        ],
    }


def _instrument_out(ins, today, warning_days):
    return schemas.InstrumentOut(
        id=ins.id, name=ins.name, make=ins.make, model=ins.model,
        serial_number=ins.serial_number,
        calibration_date=ins.calibration_date,
        calibration_due_date=ins.calibration_due_date,
        certificate_ref=ins.certificate_ref,
        status=calibration_status(ins.calibration_due_date, today, warning_days),
    )


@app.get("/alerts")
def alerts(user: User = Depends(require_section("dashboard")),
           db: Session = Depends(get_db)):
    found = []

    if access.can_open(user.role, "air-validation") or access.can_open(user.role, "reports"):
        for v in workflow_for("air-validation", db).visible(user):
            if v.result == airflow.FAIL and v.status != REJECTED:
                found.append({
                    "type": "AIR_VALIDATION_FAIL",
                    "message": f"{v.room_name} (ISO {v.iso_class}) at {v.ach:.1f} ACH, design {v.design_spec:g}"
                })

    if access.can_open(user.role, "instruments"):
        warning_days = get_settings().calibration_warning_days
        for ins in db.query(Instrument).order_by(Instrument.id).all():
            state = calibration_status(ins.calibration_due_date, date.today(), warning_days)
            if state != VALID:
                found.append({
                    "type": f"CALIBRATION_{state.upper()}",
                    "message": f"{ins.name} {ins.id} due {ins.calibration_due_date}"
                })

    return {"alerts": found}


# -------------------------------------------------
# INSTRUMENTS
# -------------------------------------------------
@app.get("/instruments", response_model=list[schemas.InstrumentOut])
def list_instruments(user: User = Depends(require_section("instruments")),
                     db: Session = Depends(get_db)):
    warning_days = get_settings().calibration_warning_days
    today = date.today()
    return [
        _instrument_out(ins, today, warning_days)
        for ins in db.query(Instrument).order_by(Instrument.id).all()
    ]


# -------------------------------------------------
# USERS
# -------------------------------------------------
@app.get("/users", response_model=list[schemas.UserOut])
def list_users(user: User = Depends(require_section("users")), db: Session = Depends(get_db)):
    return db.query(User).order_by(User.id).all()


@app.post("/users", status_code=201)
def create_user(data: schemas.UserCreate, user: User = Depends(require_section("users")),
                db: Session = Depends(get_db)):
    if data.role not in access.ROLES:
        raise InvalidInput(f"Unknown role: {data.role}", field="role")
    email = data.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise InvalidInput(f"{email} is already registered", field="email")

    # no password given: hand back a generated one, once
    password = data.password or secrets.token_urlsafe(9)
    new = User(name=data.name, email=email, role=data.role, site_id=data.site_id,
               hashed_password=hash_password(password))
    db.add(new)
    db.commit()
    db.refresh(new)
    logger.info("User %s (%s) created by %s", new.email, new.role, user.name)

    body = schemas.UserOut.model_validate(new).model_dump()
    if not data.password:
        body["password"] = password
    return body


# -------------------------------------------------
# EXPORT
# -------------------------------------------------
@app.get("/export/{kind}.xlsx")
def export_approved(kind: str, year: int | None = None, month: int | None = None,
                    user: User = Depends(current_user), db: Session = Depends(get_db)):
    if kind not in RECORD_MODELS:
        raise HTTPException(status_code=404, detail=f"Unknown record type: {kind}")
    if not (access.can_open(user.role, kind) or access.can_open(user.role, "reports")):
        raise Unauthorized(f"Role '{user.role}' cannot export {kind}")

    records = workflow_for(kind, db).visible(user)
    content = approved_workbook(kind, records, year, month)

    suffix = f"_{year}_{month}" if year and month else ""
    filename = f"{kind}_approved{suffix}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
