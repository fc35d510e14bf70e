from io import BytesIO

import openpyxl

from logbook.models import APPROVED

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COMMON_HEADERS = ["ID", "Date", "Operator", "Approved By", "Approved At", "Remarks"]

# per kind: sheet title, extra headers, row builder
SHEETS = {
    "utility-logs": (
        "Utility Logs",
        ["Type", "Equipment", "T1", "T2", "P1", "P2", "Flow Rate"],
        lambda r: [r.equipment_type, r.equipment_id, r.t1, r.t2, r.p1, r.p2, r.flow_rate],
    ),
    "chemical-prep": (
        "Chemical Prep",
        ["Chemical", "Equipment", "Concentration %", "Water L", "Chemical L"],
        lambda r: [r.chemical_name, r.equipment_id, r.concentration, r.water_volume, r.chemical_quantity],
    ),
    "air-validation": (
        "Air Validation",
        ["Room", "ISO Class", "Room Volume", "Avg Velocity", "Total CFM", "ACH", "Design ACH", "Result"],
        lambda r: [
            r.room_name, r.iso_class, r.room_volume,
            round(r.average_velocity, 2), round(r.total_cfm, 2),
            round(r.ach, 2), r.design_spec, r.result.upper()
        ],
    ),
    "reports": (
        "Reports",
        ["Type", "Title"],
        lambda r: [r.report_type, r.title],
    ),
}


def in_month(record, year, month):
    if year is None or month is None:
        return True
    return record.created_at.year == year and record.created_at.month == month


def approved_workbook(kind, records, year=None, month=None) -> bytes:
    """Approved records of one kind as an .xlsx file."""
    title, headers, build_row = SHEETS[kind]

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title

    ws.append(COMMON_HEADERS[:3] + headers + COMMON_HEADERS[3:])

    for r in records:
        if r.status != APPROVED or not in_month(r, year, month):
            continue
        ws.append(
            [r.id, r.created_at.strftime("%Y-%m-%d %H:%M"), r.operator_name]
            + build_row(r)
            + [
                r.approved_by_name,
                r.approved_at.strftime("%Y-%m-%d %H:%M") if r.approved_at else None,
                r.review_remarks,
            ]
        )

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
