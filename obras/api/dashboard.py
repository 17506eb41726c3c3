"""
Dashboard Blueprint - project calendar.

Thin delivery layer: event building lives in calendar.timeline.
"""

from datetime import date

from flask import Blueprint, abort, jsonify, render_template, request

from obras.api.helpers import backend, json_body

bp = Blueprint("dashboard", __name__)


@bp.route("/")
def index():
    """Calendar page; ``?date=YYYY-MM-DD&view=month|week|day``."""
    from obras.calendar.timeline import VIEWS, shift_date, view_window

    view = request.args.get("view", "month")
    if view not in VIEWS:
        abort(400)
    focus = _date_arg("date") or date.today()
    start, end = view_window(focus, view)
    return render_template(
        "dashboard/index.html",
        view=view,
        focus=focus,
        start=start,
        end=end,
        prev_date=shift_date(focus, view, -1),
        next_date=shift_date(focus, view, 1),
    )


@bp.route("/dashboard/api/events")
def api_events():
    """Calendar events overlapping ``[start, end)``; all events when unbounded."""
    from obras.calendar.timeline import build_timeline_events, events_in_range
    from obras.clients.service import list_clients
    from obras.projects.service import list_projects

    api = backend()
    events = build_timeline_events(list_projects(api), list_clients(api))
    start, end = _date_arg("start"), _date_arg("end")
    if start and end:
        events = events_in_range(events, start, end)
    return jsonify([e.to_dict() for e in events])


@bp.route("/dashboard/api/preview", methods=["POST"])
def api_preview():
    """Preview a drag/resize of an event. Nothing is persisted."""
    from obras.calendar.timeline import preview_reschedule
    from obras.projects.service import get_project

    data = json_body()
    if not data.get("project_id"):
        return jsonify({"error": "project_id is required"}), 400
    project = get_project(backend(), data["project_id"])
    if not project:
        abort(404)
    try:
        preview = preview_reschedule(project, data.get("start"), data.get("end"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({
        "id": preview["id"],
        "prevision": preview["prevision"],
        "saved": False,
        "message": "Vista previa: los cambios no se guardan. Edita el proyecto para cambiar las fechas.",
    })


def _date_arg(name: str):
    from obras.core.output import parse_date

    parsed = parse_date(request.args.get(name))
    return parsed.date() if parsed else None
