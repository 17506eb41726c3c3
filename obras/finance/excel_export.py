"""
Financial report workbook (openpyxl).

Three sheets:
  - Resumen Financiero    one row per project plus a totals row
  - Hitos de Facturación  one row per billing milestone
  - Fechas Proyecto       planning/execution dates per project

Usage:
    obras finance export --from 2025-01-01 --to 2025-06-30
"""

from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from obras.core.config import OBRAS_PATHS
from obras.core.logging import get_logger
from obras.core.output import format_date, format_percent
from obras.finance.records import FinancialDataset, FinancialRecord, sum_records
from obras.projects.models import STATUS_EXCEL_COLORS, status_label

logger = get_logger("obras.finance.excel_export")

CURRENCY_FORMAT = "#,##0.00 €"

SUMMARY_SHEET = "Resumen Financiero"
MILESTONES_SHEET = "Hitos de Facturación"
DATES_SHEET = "Fechas Proyecto"

SUMMARY_HEADERS = [
    "Proyecto", "Cliente", "Oficina", "Estado", "Presupuesto",
    "Cobrado", "Cobrado %", "Pdte. Cobro", "Pdte. Cobro %",
    "Pdte. Factura", "Pdte. Factura %", "Sin Asignar", "Sin Asignar %",
]
SUMMARY_WIDTHS = [30, 25, 15, 18, 14, 14, 10, 14, 12, 14, 13, 14, 12]

MILESTONE_HEADERS = [
    "Proyecto", "Cliente", "Hito", "Tipo Importe", "Importe", "Total",
    "Estado", "Fecha Facturación", "Fecha Creación", "Fecha Actualización",
]
MILESTONE_WIDTHS = [30, 25, 30, 12, 12, 14, 12, 16, 16, 16]

DATES_HEADERS = [
    "Proyecto", "Cliente", "Estado", "Oficina",
    "Previsión - Fecha Inicio", "Previsión - Días Ejecución",
    "Planificación - Fecha Inicio", "Ejecución - Fecha Inicio",
    "Ejecución - Fecha Fin", "Fecha Creación Ficha", "Fecha Actualización",
]
DATES_WIDTHS = [30, 25, 18, 15, 20, 22, 24, 22, 18, 18, 18]

MILESTONE_LABELS = {"pendiente": "Pendiente", "facturado": "Facturado", "cobrado": "Cobrado"}
MILESTONE_COLORS = {"pendiente": "FFF3CD", "facturado": "CCE5FF", "cobrado": "D4EDDA"}


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------

_HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
_HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

_TOTALS_FONT = Font(bold=True, color="1F4E79", size=11)
_TOTALS_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")

_THIN = Side(style="thin", color="D0D0D0")
_CELL_BORDER = Border(top=_THIN, bottom=_THIN, left=_THIN, right=_THIN)
_MEDIUM = Side(style="medium", color="1F4E79")
_TOTALS_BORDER = Border(top=_MEDIUM, bottom=_MEDIUM)

_ROW_FILLS = (
    PatternFill(start_color="FFFFFF", end_color="FFFFFF", fill_type="solid"),
    PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid"),
)

# Font colours of the amount columns in the summary sheet
FONT_COBRADO = "28A745"
FONT_PDTE_COBRO = "007BFF"
FONT_PDTE_FACTURA = "FFC107"
FONT_SIN_ASIGNAR = "6F42C1"
FONT_EXCESS = "DC3545"


def _fill(color: str) -> PatternFill:
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


def _style_header(ws, headers: List[str], widths: List[int]) -> None:
    for col_idx, (header, width) in enumerate(zip(headers, widths), start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN
        ws.column_dimensions[get_column_letter(col_idx)].width = width
    ws.row_dimensions[1].height = 25
    ws.freeze_panes = "A2"


def _write_row(ws, row_idx: int, values: List[Any], align: Optional[Dict[int, str]] = None) -> None:
    """Write a data row with the alternating fill and thin borders."""
    fill = _ROW_FILLS[row_idx % 2 == 0]
    for col_idx, value in enumerate(values, start=1):
        cell = ws.cell(row=row_idx, column=col_idx, value=value)
        cell.fill = fill
        cell.border = _CELL_BORDER
        cell.font = Font(size=10)
        cell.alignment = Alignment(horizontal=(align or {}).get(col_idx, "left"), vertical="center")


def _currency(cell, color: Optional[str] = None) -> None:
    cell.number_format = CURRENCY_FORMAT
    cell.alignment = Alignment(horizontal="right", vertical="center")
    if color:
        cell.font = Font(size=10, color=color)


def _status_cell(cell, color: Optional[str], bold: bool = False) -> None:
    if color:
        cell.fill = _fill(color)
    cell.font = Font(size=10, bold=bold)
    cell.alignment = Alignment(horizontal="center", vertical="center")


def _plain_number(value: Any) -> str:
    """``30`` for 30.0, ``12.5`` for 12.5."""
    n = float(value or 0)
    return str(int(n)) if n.is_integer() else str(n)


# ---------------------------------------------------------------------------
# Export rows
# ---------------------------------------------------------------------------

def build_export_rows(dataset: FinancialDataset, records: List[FinancialRecord]) -> List[Dict[str, Any]]:
    """Pair each record with its billing plan and source project."""
    return [
        {
            "record": r,
            "billing": dataset.billings.get(r.project_id),
            "project": dataset.projects.get(r.project_id),
        }
        for r in records
    ]


def date_range_label(
    date_from: Union[date, str, None],
    date_to: Union[date, str, None],
) -> Optional[str]:
    """``<from>_<to>`` (ISO days) only when both bounds are set."""
    if not date_from or not date_to:
        return None
    return f"{str(date_from)[:10]}_{str(date_to)[:10]}"


def export_filename(label: Optional[str] = None, today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"finanzas_{label}_{stamp}.xlsx" if label else f"finanzas_{stamp}.xlsx"


# ---------------------------------------------------------------------------
# Sheets
# ---------------------------------------------------------------------------

def _summary_values(r: FinancialRecord) -> List[Any]:
    total = r.total_budget
    return [
        r.project_name,
        r.client_name,
        r.office or "-",
        status_label(r.project_status),
        total,
        r.payments_received,
        format_percent(r.payments_received, total),
        r.facturado,
        format_percent(r.facturado, total),
        r.pendiente_factura,
        format_percent(r.pendiente_factura, total),
        r.unassigned,
        format_percent(r.unassigned, total),
    ]


def _write_summary_sheet(ws, records: List[FinancialRecord]) -> None:
    _style_header(ws, SUMMARY_HEADERS, SUMMARY_WIDTHS)
    right = {7: "right", 9: "right", 11: "right", 13: "right"}

    for row_idx, r in enumerate(records, start=2):
        _write_row(ws, row_idx, _summary_values(r), align=right)
        _status_cell(ws.cell(row=row_idx, column=4), STATUS_EXCEL_COLORS.get(r.project_status))
        _currency(ws.cell(row=row_idx, column=5))
        _currency(ws.cell(row=row_idx, column=6), FONT_COBRADO)
        _currency(ws.cell(row=row_idx, column=8), FONT_PDTE_COBRO)
        _currency(ws.cell(row=row_idx, column=10), FONT_PDTE_FACTURA)
        _currency(
            ws.cell(row=row_idx, column=12),
            FONT_SIN_ASIGNAR if r.unassigned >= 0 else FONT_EXCESS,
        )

    # One blank row, then totals
    totals = sum_records(records)
    grand = totals["total_budget"]
    totals_row = len(records) + 3
    values = [
        f"TOTALES ({len(records)} proyectos)", "", "", "",
        grand,
        totals["payments_received"], format_percent(totals["payments_received"], grand),
        totals["facturado"], format_percent(totals["facturado"], grand),
        totals["pendiente_factura"], format_percent(totals["pendiente_factura"], grand),
        totals["unassigned"], format_percent(totals["unassigned"], grand),
    ]
    for col_idx, value in enumerate(values, start=1):
        cell = ws.cell(row=totals_row, column=col_idx, value=value)
        cell.font = _TOTALS_FONT
        cell.fill = _TOTALS_FILL
        cell.border = _TOTALS_BORDER
        cell.alignment = Alignment(horizontal="right" if col_idx >= 5 else "left", vertical="center")
        if col_idx in (5, 6, 8, 10, 12):
            cell.number_format = CURRENCY_FORMAT


def _write_milestones_sheet(ws, rows: List[Dict[str, Any]]) -> None:
    _style_header(ws, MILESTONE_HEADERS, MILESTONE_WIDTHS)
    centered = {8: "center", 9: "center", 10: "center"}

    row_idx = 2
    for item in rows:
        record: FinancialRecord = item["record"]
        hitos = (item.get("billing") or {}).get("hitos_facturacion") or []

        if not hitos:
            _write_row(
                ws, row_idx,
                [record.project_name, record.client_name, "Sin hitos de facturación",
                 "-", "-", 0, "-", "-", "-", "-"],
                align=centered,
            )
            _currency(ws.cell(row=row_idx, column=6))
            row_idx += 1
            continue

        for hito in hitos:
            is_pct = hito.get("tipo_de_importe") == "porcentaje"
            estado = hito.get("estado") or ""
            _write_row(
                ws, row_idx,
                [
                    record.project_name,
                    record.client_name,
                    hito.get("nombre") or "-",
                    "Porcentaje" if is_pct else "Euro",
                    f"{_plain_number(hito.get('importe'))}%" if is_pct else hito.get("importe") or 0,
                    hito.get("total") or 0,
                    MILESTONE_LABELS.get(estado, estado),
                    format_date(hito.get("fecha_facturacion")),
                    format_date(hito.get("created_at")),
                    format_date(hito.get("updated_at")),
                ],
                align=centered,
            )
            if not is_pct:
                _currency(ws.cell(row=row_idx, column=5))
            _currency(ws.cell(row=row_idx, column=6))
            if estado:
                _status_cell(ws.cell(row=row_idx, column=7), MILESTONE_COLORS.get(estado), bold=True)
            row_idx += 1


def _write_dates_sheet(ws, rows: List[Dict[str, Any]]) -> None:
    _style_header(ws, DATES_HEADERS, DATES_WIDTHS)
    centered = {i: "center" for i in range(5, len(DATES_HEADERS) + 1)}

    for row_idx, item in enumerate(rows, start=2):
        record: FinancialRecord = item["record"]
        project = item.get("project")
        if project:
            prevision = project.get("prevision") or {}
            planificacion = project.get("planificacion") or {}
            ejecucion = project.get("ejecucion") or {}
            dias = prevision.get("dias_ejecucion")
            dates = [
                format_date(prevision.get("fecha_inicio")),
                dias if dias is not None else "-",
                format_date(planificacion.get("fecha_inicio")),
                format_date(ejecucion.get("fecha_inicio")),
                format_date(ejecucion.get("fecha_fin")),
                format_date(project.get("created_at")),
                format_date(project.get("updated_at")),
            ]
        else:
            dates = ["-", "-", "-", "-", "-", format_date(record.created_at), "-"]

        _write_row(
            ws, row_idx,
            [record.project_name, record.client_name, status_label(record.project_status),
             record.office or "-"] + dates,
            align=centered,
        )
        _status_cell(ws.cell(row=row_idx, column=3), STATUS_EXCEL_COLORS.get(record.project_status))


def export_financial_workbook(rows: List[Dict[str, Any]]) -> Workbook:
    """
    Build the three-sheet workbook for the given export rows.

    Args:
        rows: Output of build_export_rows (record, billing, project per row).

    Raises:
        ValueError: if there is nothing to export.
    """
    if not rows:
        raise ValueError("Sin datos para exportar: no hay registros visibles.")

    wb = Workbook()
    summary = wb.active
    summary.title = SUMMARY_SHEET
    _write_summary_sheet(summary, [r["record"] for r in rows])
    _write_milestones_sheet(wb.create_sheet(title=MILESTONES_SHEET), rows)
    _write_dates_sheet(wb.create_sheet(title=DATES_SHEET), rows)
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def write_financial_workbook(
    rows: List[Dict[str, Any]],
    label: Optional[str] = None,
    output_dir: Optional[Path] = None,
) -> Path:
    """Build the workbook and save it under the export directory. Returns the file path."""
    wb = export_financial_workbook(rows)

    output_dir = Path(output_dir) if output_dir else OBRAS_PATHS.exports
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / export_filename(label)
    wb.save(str(path))
    logger.info("Exported %d financial records -> %s", len(rows), path)
    return path
