"""
Output formatters for CLI display.

Supports human-readable, JSON, and markdown output modes, plus the
Spanish currency/percent/date conventions used across the dashboard.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


class OutputFormat(str, Enum):
    HUMAN = "human"
    JSON = "json"
    MARKDOWN = "markdown"


def format_currency(amount: Optional[float]) -> str:
    """Format an amount as es-ES euros: ``1.234,56 €``."""
    value = float(amount or 0)
    sign = "-" if value < 0 else ""
    whole, cents = f"{abs(value):,.2f}".split(".")
    return f"{sign}{whole.replace(',', '.')},{cents} €"


def format_percent(value: float, total: float, decimals: int = 1) -> str:
    """Share of ``value`` over ``total`` as ``"12.5%"``; ``0.0%`` when total <= 0."""
    if total <= 0:
        return f"{0:.{decimals}f}%"
    return f"{value / total * 100:.{decimals}f}%"


def parse_date(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """Parse an ISO date/datetime string (``Z`` suffix allowed). Returns None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_iso(value: Union[str, date, datetime, None]) -> Optional[str]:
    """UTC ISO-8601 string with millisecond precision and ``Z`` suffix, as the backend stores."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return to_iso(datetime.now(timezone.utc))


def format_date(value: Union[str, date, datetime, None]) -> str:
    """Render a date as ``dd/mm/yyyy``; ``-`` when missing or invalid."""
    parsed = parse_date(value)
    if parsed is None:
        return "-"
    return parsed.strftime("%d/%m/%Y")


def format_result(
    result: Any,
    fmt: OutputFormat = OutputFormat.HUMAN,
    title: Optional[str] = None,
) -> str:
    """Format a result object for display."""
    if fmt == OutputFormat.JSON:
        return _format_json(result)
    elif fmt == OutputFormat.MARKDOWN:
        return _format_markdown(result, title)
    else:
        return _format_human(result, title)


def _to_dict(result: Any) -> Dict:
    if is_dataclass(result):
        return asdict(result)
    elif isinstance(result, dict):
        return result
    elif hasattr(result, "__dict__"):
        return result.__dict__
    return {"value": str(result)}


def _format_json(result: Any) -> str:
    return json.dumps(_to_dict(result), indent=2, default=str, ensure_ascii=False)


def _format_value(value: Any, sep: str) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, list):
        return sep.join(str(v) for v in value) if value else "-"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _format_human(result: Any, title: Optional[str] = None) -> str:
    lines = []
    if title:
        lines.extend([title, "=" * len(title), ""])

    data = _to_dict(result)
    max_key_len = max(len(str(k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        label = key.replace("_", " ").title()
        if isinstance(value, list) and value:
            formatted = "\n" + "\n".join(f"  - {v}" for v in value)
        else:
            formatted = _format_value(value, ", ")
        lines.append(f"{label:<{max_key_len + 2}}: {formatted}")

    return "\n".join(lines)


def _format_markdown(result: Any, title: Optional[str] = None) -> str:
    lines = []
    if title:
        lines.extend([f"# {title}", ""])

    data = _to_dict(result)
    lines.extend(["| Campo | Valor |", "|-------|-------|"])

    for key, value in data.items():
        label = key.replace("_", " ").title()
        lines.append(f"| {label} | {_format_value(value, ', ')} |")

    return "\n".join(lines)
