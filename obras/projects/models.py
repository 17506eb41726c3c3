"""
Project status vocabulary and display metadata.
"""

from enum import Enum
from typing import Dict, Optional


class ProjectStatus(str, Enum):
    PRESUPUESTO = "presupuesto"
    PRESUPUESTO_ABANDONADO = "presupuesto_abandonado"
    PLANIFICACION = "planificacion"
    EN_EJECUCION = "en_ejecucion"
    FINALIZADO = "finalizado"
    CANCELADO = "cancelado"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self.value]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ProjectStatus"]:
        """Status for a raw value, or None when unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


STATUS_LABELS: Dict[str, str] = {
    "presupuesto": "Presupuestado",
    "presupuesto_abandonado": "Presupuesto Abandonado",
    "planificacion": "Planificación",
    "en_ejecucion": "En ejecución",
    "finalizado": "Finalizado",
    "cancelado": "Cancelado",
}

# Row fill in the financial workbook (no leading '#', openpyxl style)
STATUS_EXCEL_COLORS: Dict[str, str] = {
    "presupuesto": "E9ECEF",
    "presupuesto_abandonado": "F8D7DA",
    "planificacion": "FFF3CD",
    "en_ejecucion": "CCE5FF",
    "finalizado": "D4EDDA",
    "cancelado": "F8D7DA",
}

# Calendar event colours: background, border, text
STATUS_CALENDAR_COLORS: Dict[str, Dict[str, str]] = {
    "presupuesto": {"bg": "#fef9c3", "border": "#fde047", "text": "#854d0e"},
    "planificacion": {"bg": "#dbeafe", "border": "#93c5fd", "text": "#1e40af"},
    "en_ejecucion": {"bg": "#dcfce7", "border": "#86efac", "text": "#166534"},
    "finalizado": {"bg": "#f3f4f6", "border": "#d1d5db", "text": "#374151"},
    "cancelado": {"bg": "#fee2e2", "border": "#fca5a5", "text": "#991b1b"},
}


def status_label(value: Optional[str]) -> str:
    """Spanish label for a status value; the raw value when unknown."""
    return STATUS_LABELS.get(value or "", value or "-")


def calendar_colors(value: Optional[str]) -> Dict[str, str]:
    return STATUS_CALENDAR_COLORS.get(value or "", STATUS_CALENDAR_COLORS["presupuesto"])
