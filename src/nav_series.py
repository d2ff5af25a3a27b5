"""
Normalization of per-fund historical NAV payloads into an ordered NAV series.
"""
import logging
from typing import Any, Iterable, List, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

SERIES_COLUMNS = ["date", "nav", "change_percent"]

# ISO is tried first, then AMFI's DD-MMM-YYYY, then DD-MM-YYYY
_FALLBACK_DATE_FORMATS = ("%d-%b-%Y", "%d-%m-%Y")


def parse_nav_dates(values: Any) -> pd.Series:
    """Parse NAV date strings (ISO or AMFI style) to naive timestamps; NaT when unparseable."""
    series = pd.Series(values)
    if pd.api.types.is_datetime64_any_dtype(series):
        if series.dt.tz is not None:
            return series.dt.tz_convert("UTC").dt.tz_localize(None)
        return series

    text = series.astype(str).str.strip()
    parsed = pd.to_datetime(text, format="ISO8601", errors="coerce", utc=True)
    for fmt in _FALLBACK_DATE_FORMATS:
        if not parsed.isna().any():
            break
        parsed = parsed.fillna(pd.to_datetime(text, format=fmt, errors="coerce", utc=True))
    return parsed.dt.tz_localize(None)


def _history_pairs(historical: Iterable[Any]) -> List[Tuple[Any, Any]]:
    pairs = []
    for entry in historical or []:
        if isinstance(entry, dict):
            pairs.append((entry.get("date"), entry.get("nav")))
        elif isinstance(entry, (list, tuple)) and len(entry) >= 2:
            pairs.append((entry[0], entry[1]))
    return pairs


def empty_series() -> pd.DataFrame:
    return pd.DataFrame({
        "date": pd.Series(dtype=object),
        "nav": pd.Series(dtype=float),
        "change_percent": pd.Series(dtype=float),
    })


def normalize_nav_history(historical: Iterable[Any]) -> pd.DataFrame:
    """
    Convert a historical NAV array into a NAV series.

    Args:
        historical: Sequence of [date, nav] pairs (or {"date", "nav"} mappings)

    Returns:
        pd.DataFrame: Columns [date, nav, change_percent], ascending by date,
                      one row per date. change_percent is the day-over-day
                      percentage change, 0 for the first point.
    """
    pairs = _history_pairs(historical)
    if not pairs:
        return empty_series()

    frame = pd.DataFrame(pairs, columns=["date", "nav"])
    frame["date"] = frame["date"].astype(str).str.strip()
    frame["nav"] = pd.to_numeric(frame["nav"], errors="coerce")
    frame["_ts"] = parse_nav_dates(frame["date"])
    frame = frame[frame["_ts"].notna() & np.isfinite(frame["nav"])]

    dropped = len(pairs) - len(frame)
    if dropped:
        logger.warning(f"Dropped {dropped} NAV points with unparseable date or value")

    if not frame["_ts"].is_monotonic_increasing:
        logger.warning("NAV history not in ascending date order; sorting")
    frame = frame.sort_values("_ts", kind="mergesort")
    frame = frame.drop_duplicates(subset=["_ts"], keep="last")

    previous = frame["nav"].shift(1)
    change = (frame["nav"] - previous) / previous * 100
    change = change.replace([np.inf, -np.inf], np.nan).fillna(0.0).round(4)
    frame["change_percent"] = change

    return frame[SERIES_COLUMNS].reset_index(drop=True)
