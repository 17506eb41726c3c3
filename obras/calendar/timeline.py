"""
Project timeline for the dashboard calendar.

Each project with a forecast start date (``prevision.fecha_inicio``)
becomes an all-day event spanning ``dias_ejecucion`` days. Dragging or
resizing an event only previews the new forecast; nothing is saved.
"""

import calendar
import copy
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from obras.clients.service import client_name_map
from obras.core.logging import get_logger
from obras.core.output import parse_date
from obras.projects.models import calendar_colors, status_label
from obras.projects.service import UNKNOWN_CLIENT

logger = get_logger("obras.calendar")

VIEWS = ("month", "week", "day")

DateLike = Union[str, date, datetime]


@dataclass
class CalendarEvent:
    id: str
    title: str
    start: date
    end: date
    client_name: str
    estado: str
    oficina: str = ""
    colors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = self.__dict__.copy()
        d["start"] = self.start.isoformat()
        d["end"] = self.end.isoformat()
        d["estado_label"] = status_label(self.estado)
        return d


def _to_date(value: Optional[DateLike]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    return parsed.date() if parsed else None


def build_timeline_events(
    projects: List[Dict[str, Any]],
    clients: List[Dict[str, Any]],
) -> List[CalendarEvent]:
    names = client_name_map(clients)
    events = []
    for p in projects:
        prevision = p.get("prevision") or {}
        start = _to_date(prevision.get("fecha_inicio"))
        if start is None:
            continue
        days = int(prevision.get("dias_ejecucion") or 0) or 1
        events.append(CalendarEvent(
            id=p.get("id", ""),
            title=p.get("direccion") or "Sin dirección",
            start=start,
            end=start + timedelta(days=days),
            client_name=names.get(p.get("id_cliente"), UNKNOWN_CLIENT),
            estado=p.get("estado") or "presupuesto",
            oficina=p.get("oficina") or "",
            colors=calendar_colors(p.get("estado")),
        ))
    return events


def events_in_range(events: List[CalendarEvent], start: DateLike, end: DateLike) -> List[CalendarEvent]:
    """Events overlapping the half-open window [start, end)."""
    lo, hi = _to_date(start), _to_date(end)
    return [e for e in events if e.start < hi and e.end > lo]


# =============================================================================
# Navigation
# =============================================================================

def month_window(day: DateLike) -> Tuple[date, date]:
    """
    Visible range of the month grid containing ``day``.

    Weeks start on Monday; the grid runs from the Monday on/before the 1st
    to the day after the Sunday on/after the month's last day (exclusive).
    """
    d = _to_date(day)
    first = d.replace(day=1)
    last = d.replace(day=calendar.monthrange(d.year, d.month)[1])
    grid_start = first - timedelta(days=first.weekday())
    grid_end = last + timedelta(days=7 - last.weekday())
    return grid_start, grid_end


def view_window(day: DateLike, view: str = "month") -> Tuple[date, date]:
    """Visible [start, end) range for a month, week or day view."""
    d = _to_date(day)
    if view == "month":
        return month_window(d)
    if view == "week":
        start = d - timedelta(days=d.weekday())
        return start, start + timedelta(days=7)
    if view == "day":
        return d, d + timedelta(days=1)
    raise ValueError(f"Unknown calendar view: {view}")


def shift_date(day: DateLike, view: str, steps: int = 1) -> date:
    """Move the focus date by whole months, weeks or days."""
    d = _to_date(day)
    if view == "month":
        month_index = d.month - 1 + steps
        year = d.year + month_index // 12
        month = month_index % 12 + 1
        return d.replace(year=year, month=month, day=min(d.day, calendar.monthrange(year, month)[1]))
    if view == "week":
        return d + timedelta(weeks=steps)
    if view == "day":
        return d + timedelta(days=steps)
    raise ValueError(f"Unknown calendar view: {view}")


def preview_reschedule(project: Dict[str, Any], new_start: DateLike, new_end: DateLike) -> Dict[str, Any]:
    """
    Project copy with ``prevision`` moved to [new_start, new_end).

    ``dias_ejecucion`` is the span rounded up to whole days. The result is
    for display only and is never sent to the backend.
    """
    start = new_start if isinstance(new_start, datetime) else parse_date(new_start)
    end = new_end if isinstance(new_end, datetime) else parse_date(new_end)
    if start is None or end is None:
        raise ValueError("Fechas de reprogramación no válidas")
    if (start.tzinfo is None) != (end.tzinfo is None):
        start, end = start.replace(tzinfo=None), end.replace(tzinfo=None)

    days = math.ceil((end - start).total_seconds() / 86400)
    preview = copy.deepcopy(project)
    preview["prevision"] = {
        "fecha_inicio": start.date().isoformat(),
        "dias_ejecucion": days,
    }
    logger.debug("Preview reschedule %s: %s +%d days", project.get("id"), start.date(), days)
    return preview
