"""
Web JSON exporter.

Renders one activity as the JSON document the web dashboard produces,
byte for byte: fixed key order, two-space indentation, distances without
trailing zeros and a minimal string escape. The layout is written by hand
instead of through ``json.dumps`` because the whitespace is part of the
format.

Usage:
    text = export_activity_as_web_json(activity)
    path = write_export(activity, Path("exports"))
"""

import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from ..exceptions import ExportError
from ..metrics.stats import round_half_away
from ..models.activity import Activity, ActivityLap, ActivitySplit, format_pace_seconds

logger = logging.getLogger(__name__)

TOP_LEVEL_KEYS = (
    "nombre", "tipo", "fecha", "distancia_km", "tiempo_total", "tiempo_total_s",
    "ritmo_medio", "desnivel_positivo_m", "fc_media", "fc_max", "tipo_parciales", "parciales",
)
PARTIAL_KEYS = (
    "parcial", "nombre", "distancia_km", "tiempo", "tiempo_s",
    "ritmo", "ritmo_s_km", "desnivel_m", "fc_media",
)
OPTIONAL_PARTIAL_KEYS = ("fc_max", "potencia_media", "cadencia_media")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
MISSING_PACE = "-"

FILENAME_FORBIDDEN = re.compile(r'[/\\?%*|"<>:]')
MAX_FILENAME_LENGTH = 50

JSONValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]


# =============================================================================
# Value formatting
# =============================================================================

def escape_string(value: str) -> str:
    """Quote a string escaping only backslash, quote, newline, CR and tab."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def optional_int(value: Optional[float]) -> Optional[int]:
    """Half-away rounding; None for missing, non-finite or out-of-int64 values."""
    if value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    rounded = round_half_away(value)
    if rounded < INT64_MIN or rounded > INT64_MAX:
        return None
    return rounded


def round_km(meters: float) -> float:
    """Kilometers rounded to two decimals."""
    return round_half_away(meters / 1000 * 100) / 100


def format_number(value: float) -> str:
    """Two-decimal number without trailing zeros (9.30 -> 9.3, 9.00 -> 9)."""
    if not math.isfinite(value):
        return "null"
    cents = round_half_away(value * 100)
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    if frac == 0:
        return f"{sign}{whole}"
    if frac % 10 == 0:
        return f"{sign}{whole}.{frac // 10}"
    return f"{sign}{whole}.{frac:02d}"


def format_fecha(moment: datetime) -> str:
    """``d/M/yyyy, H:mm:ss`` from the stored wall-clock components."""
    return (
        f"{moment.day}/{moment.month}/{moment.year}, "
        f"{moment.hour}:{moment.minute:02d}:{moment.second:02d}"
    )


def format_duration(seconds: int) -> str:
    """Total duration as ``Xh Ym``, ``Xm Ys`` or ``Xs``."""
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_time(seconds: int) -> str:
    """Partial time as ``M:SS`` below one hour, ``H:MM:SS`` otherwise."""
    minutes, secs = divmod(seconds, 60)
    if minutes >= 60:
        hours, minutes = divmod(minutes, 60)
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_ritmo_medio(speed_ms: float) -> str:
    """Average pace as ``M:SS /km`` (``0:00 /km`` without speed)."""
    if not speed_ms or speed_ms <= 0:
        return "0:00 /km"
    return f"{format_pace_seconds(round_half_away(1000 / speed_ms))} /km"


def format_value(value: JSONValue) -> str:
    """Render a scalar the way the web document does."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if value < INT64_MIN or value > INT64_MAX:
            return "null"
        return str(value)
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, str):
        return escape_string(value)
    raise TypeError(f"Unsupported JSON value: {type(value).__name__}")


# =============================================================================
# Document building
# =============================================================================

def lap_partial(lap: ActivityLap, index: int) -> Dict[str, JSONValue]:
    """Partial for an athlete-marked lap (pace from moving time)."""
    km = lap.distance / 1000
    ritmo_s_km = round_half_away(lap.moving_time / km) if km > 0 else None
    partial: Dict[str, JSONValue] = {
        "parcial": index,
        "nombre": lap.name or f"Lap {index}",
        "distancia_km": round_km(lap.distance),
        "tiempo": format_time(lap.moving_time),
        "tiempo_s": lap.moving_time,
        "ritmo": format_pace_seconds(ritmo_s_km) if ritmo_s_km is not None else MISSING_PACE,
        "ritmo_s_km": ritmo_s_km,
        "desnivel_m": optional_int(lap.total_elevation_gain),
        "fc_media": optional_int(lap.average_heartrate),
    }
    optional = {
        "fc_max": optional_int(lap.max_heartrate),
        "potencia_media": optional_int(lap.average_watts),
        "cadencia_media": optional_int(lap.average_cadence),
    }
    partial.update({key: value for key, value in optional.items() if value is not None})
    return partial


def split_partial(split: ActivitySplit, index: int) -> Dict[str, JSONValue]:
    """Partial for a per-kilometer split (pace from elapsed time)."""
    ritmo_s_km = split.ritmo_s_km
    return {
        "parcial": index,
        "nombre": f"Km {index}",
        "distancia_km": round_km(split.distance),
        "tiempo": format_time(split.elapsed_time),
        "tiempo_s": split.elapsed_time,
        "ritmo": format_pace_seconds(ritmo_s_km) if ritmo_s_km is not None else MISSING_PACE,
        "ritmo_s_km": ritmo_s_km,
        "desnivel_m": optional_int(split.elevation_difference),
        "fc_media": optional_int(split.average_heartrate),
    }


def build_web_document(activity: Activity) -> Dict[str, JSONValue]:
    """
    Build the ordered export document for an activity.

    Laps are used when there is more than one; otherwise the metric splits.

    Args:
        activity: Activity with its laps and splits loaded

    Returns:
        Dict whose insertion order is the output key order
    """
    laps = activity.sorted_laps or []
    use_laps = len(laps) > 1

    if use_laps:
        partials = [lap_partial(lap, i) for i, lap in enumerate(laps, start=1)]
    else:
        partials = [split_partial(split, i) for i, split in enumerate(activity.sorted_splits or [], start=1)]

    moment = activity.start_date_local or activity.start_date
    return {
        "nombre": activity.name,
        "tipo": activity.sport_type,
        "fecha": format_fecha(moment),
        "distancia_km": round_km(activity.distance),
        "tiempo_total": format_duration(activity.moving_time),
        "tiempo_total_s": activity.moving_time,
        "ritmo_medio": format_ritmo_medio(activity.average_speed),
        "desnivel_positivo_m": optional_int(activity.total_elevation_gain),
        "fc_media": optional_int(activity.average_heartrate),
        "fc_max": optional_int(activity.max_heartrate),
        "tipo_parciales": "intervalos" if use_laps else "kilometros",
        "parciales": partials,
    }


# =============================================================================
# Rendering
# =============================================================================

def _render_partial(partial: Dict[str, JSONValue]) -> List[str]:
    keys = list(PARTIAL_KEYS) + [
        key for key in OPTIONAL_PARTIAL_KEYS if partial.get(key) is not None
    ]
    keys += [key for key in partial if key not in keys and key not in OPTIONAL_PARTIAL_KEYS]
    lines = ["    {"]
    for i, key in enumerate(keys):
        comma = "," if i < len(keys) - 1 else ""
        lines.append(f"      {escape_string(key)}: {format_value(partial.get(key))}{comma}")
    lines.append("    }")
    return lines


def _render_list(items: List[Any]) -> str:
    if not items:
        return "[]"
    lines = ["["]
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise TypeError("Only lists of objects are supported")
        block = _render_partial(item)
        if i < len(items) - 1:
            block[-1] += ","
        lines.extend(block)
    lines.append("  ]")
    return "\n".join(lines)


def render_web_json(document: Dict[str, JSONValue]) -> str:
    """
    Render a document with the web layout.

    Top-level keys are written in insertion order, each on its own line with
    two spaces of indentation; lists hold partial objects indented by four
    spaces. There is no trailing newline. Rendering a parsed export again
    yields the same bytes.
    """
    lines = ["{"]
    keys = list(document)
    for i, key in enumerate(keys):
        value = document[key]
        rendered = _render_list(value) if isinstance(value, list) else format_value(value)
        comma = "," if i < len(keys) - 1 else ""
        lines.append(f"  {escape_string(key)}: {rendered}{comma}")
    lines.append("}")
    return "\n".join(lines)


def export_activity_as_web_json(activity: Activity) -> str:
    """Export one activity as the web JSON document."""
    return render_web_json(build_web_document(activity))


# =============================================================================
# Files
# =============================================================================

def export_filename(activity: Activity) -> str:
    """``<sanitized-name>_<id>.json`` with the name cleaned and cut to 50 chars."""
    name = FILENAME_FORBIDDEN.sub("", activity.name or "").strip()[:MAX_FILENAME_LENGTH]
    return f"{name}_{activity.id}.json"


def write_export(activity: Activity, directory: Path) -> Path:
    """
    Write the export of an activity into ``directory``.

    Raises:
        ExportError: If the directory or the file cannot be written
    """
    path = Path(directory) / export_filename(activity)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(export_activity_as_web_json(activity), encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Could not write export: {e}", path=str(path)) from e
    logger.info(f"Exported activity {activity.id} to {path}")
    return path
