"""
Finance Blueprint - financial report and Excel export.

Thin delivery layer: records come from finance.records, the workbook
from finance.excel_export.
"""

from io import BytesIO

from flask import Blueprint, jsonify, render_template, request, send_file

from obras.api.helpers import backend, json_body, list_arg

bp = Blueprint("finance", __name__, url_prefix="/finanzas")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _date_range():
    from obras.core.output import parse_date

    start = parse_date(request.args.get("from"))
    end = parse_date(request.args.get("to"))
    return (start.date() if start else None), (end.date() if end else None)


def _filtered_dataset():
    """Dataset for the query-string date range plus the searched/faceted rows."""
    from obras.finance.records import filter_records, load_financial_data, search_records

    date_from, date_to = _date_range()
    dataset = load_financial_data(backend(), date_from, date_to)
    rows = search_records(dataset.records, request.args.get("search"))
    rows = filter_records(rows, offices=list_arg("office"), statuses=list_arg("status"))
    return dataset, rows


@bp.route("/")
def index():
    """Financial summary table."""
    from obras.finance.records import office_options, sum_records

    dataset, rows = _filtered_dataset()
    date_from, date_to = _date_range()
    return render_template(
        "finance/index.html",
        records=rows,
        totals=sum_records(rows),
        offices=office_options(dataset.records),
        total_count=len(dataset.records),
        date_from=date_from,
        date_to=date_to,
        search=request.args.get("search", ""),
    )


@bp.route("/api/records", methods=["GET"])
def api_records():
    from obras.finance.records import office_options, paginate, sort_records, sum_records

    dataset, rows = _filtered_dataset()
    try:
        rows = sort_records(rows, request.args.get("sort"), request.args.get("desc") == "1")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    page = paginate(
        rows,
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 10, type=int),
    )
    page["items"] = [r.to_dict() for r in page["items"]]
    return jsonify({
        "records": page,
        "totals": sum_records(rows),
        "offices": office_options(dataset.records),
    })


@bp.route("/export.xlsx", methods=["GET"])
def export_xlsx():
    """Workbook of the selected rows (``?selected=id,id``) or every filtered row."""
    from obras.finance.excel_export import (
        build_export_rows, date_range_label, export_filename,
        export_financial_workbook, workbook_bytes,
    )
    from obras.finance.records import select_rows_for_export

    dataset, rows = _filtered_dataset()
    chosen = select_rows_for_export(rows, list_arg("selected"))
    if not chosen:
        return jsonify({"warning": "Sin datos para exportar", "detail": "No hay registros visibles para exportar."}), 400

    wb = export_financial_workbook(build_export_rows(dataset, chosen))
    return send_file(
        BytesIO(workbook_bytes(wb)),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_filename(date_range_label(*_date_range())),
    )


@bp.route("/api/server-export", methods=["POST"])
def api_server_export():
    """Pass through the backend's own billing workbook."""
    from obras.billing.service import export_billing_excel
    from obras.finance.excel_export import export_filename

    data = json_body()
    content = export_billing_excel(backend(), data.get("fecha_inicio"), data.get("fecha_fin"))
    return send_file(
        BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_filename(),
    )
