"""
NAV Metrics Engine

Computes trailing-window performance and risk statistics for one fund from
its NAV series:

  - total return and CAGR over 1y / 3y / 5y
  - annualised volatility of daily returns (1y)
  - maximum drawdown (1y)
  - Sharpe ratio against a fixed risk-free rate (1y)

Windows are calendar based: the 3y window holds every point dated on or
after the latest date minus three calendar years. Long windows are only
reported when they hold proportionally more points than the 1y window, so a
fund with 14 months of history does not get a "3-year return".

All percentages are expressed in percent (12.5 == 12.5%). Insufficient data
is never an error: 1y figures fall back to 0, 3y/5y figures and the Sharpe
ratio fall back to None.
"""
import logging
from datetime import date
from typing import Any, Optional

import numpy as np
import pandas as pd

from nav_models import CalculatedMetrics
from nav_series import parse_nav_dates

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
RISK_FREE_RATE = 7.0           # annual, percent (approximate Indian risk-free yield)
TRADING_DAYS_PER_YEAR = 252

MIN_POINTS_RETURN = 2
MIN_POINTS_VOLATILITY = 30
MIN_POINTS_FRESH = 50
MAX_STALENESS_DAYS = 7

# Minimum window size, as a multiple of the 1y window's point count
SUFFICIENCY_MULTIPLIER = {3: 2, 5: 4}


# ===================================================================
# Input Cleaning
# ===================================================================

def to_nav_frame(nav_data: Any) -> pd.DataFrame:
    """
    Coerce NAV input into a clean frame with columns [date, nav, ts].

    Accepts a DataFrame with date/nav columns, or any iterable of
    (date, nav) pairs or {"date", "nav"} mappings. Rows with unparseable
    dates or non-positive NAVs are dropped; duplicate dates keep the last
    value; the result is sorted ascending by date.
    """
    if isinstance(nav_data, pd.DataFrame):
        frame = nav_data.loc[:, ["date", "nav"]].copy() if len(nav_data) else pd.DataFrame(columns=["date", "nav"])
    else:
        rows = []
        for point in nav_data or []:
            if isinstance(point, dict):
                rows.append((point.get("date"), point.get("nav")))
            elif isinstance(point, (list, tuple)) and len(point) >= 2:
                rows.append((point[0], point[1]))
            elif hasattr(point, "date") and hasattr(point, "nav"):
                rows.append((point.date, point.nav))
        frame = pd.DataFrame(rows, columns=["date", "nav"])

    if frame.empty:
        return pd.DataFrame(columns=["date", "nav", "ts"])

    frame["nav"] = pd.to_numeric(frame["nav"], errors="coerce")
    frame["ts"] = parse_nav_dates(frame["date"]).values
    received = len(frame)
    frame = frame[frame["ts"].notna() & np.isfinite(frame["nav"]) & (frame["nav"] > 0)]
    if len(frame) < received:
        logger.warning(
            f"Dropped {received - len(frame)} of {received} NAV points with "
            "unparseable date or non-positive value"
        )
    frame = frame.sort_values("ts", kind="mergesort")
    frame = frame.drop_duplicates(subset=["ts"], keep="last")
    return frame.reset_index(drop=True)


# ===================================================================
# Window & Return Helpers
# ===================================================================

def trailing_window(nav: pd.Series, years: int) -> pd.Series:
    """Points dated on or after the latest date minus `years` calendar years."""
    if nav.empty:
        return nav
    start = nav.index[-1] - pd.DateOffset(years=years)
    return nav[nav.index >= start]


def total_return(start_nav: float, end_nav: float) -> float:
    return float((end_nav - start_nav) / start_nav * 100.0)


def cagr(start_nav: float, end_nav: float, years: float) -> float:
    return float(((end_nav / start_nav) ** (1.0 / years) - 1.0) * 100.0)


def annualised_volatility(nav_window: pd.Series) -> float:
    """Sample std of daily simple returns, annualised over 252 trading days."""
    if len(nav_window) < MIN_POINTS_VOLATILITY:
        return 0.0
    rets = nav_window.pct_change().dropna()
    vol = rets.std(ddof=1)
    if pd.isna(vol):
        return 0.0
    return float(vol * np.sqrt(TRADING_DAYS_PER_YEAR) * 100.0)


def max_drawdown(nav_window: pd.Series) -> float:
    """Largest peak-to-trough decline, as a non-negative percentage."""
    if len(nav_window) < MIN_POINTS_RETURN:
        return 0.0
    peak = nav_window.cummax()
    drawdown = (peak - nav_window) / peak * 100.0
    return float(max(drawdown.max(), 0.0))


def sharpe_ratio(annualised_return: float, volatility: float,
                 risk_free_rate: float = RISK_FREE_RATE) -> Optional[float]:
    if volatility == 0:
        return None
    return float((annualised_return - risk_free_rate) / volatility)


def has_enough_history(window: pd.Series, window_1y: pd.Series, years: int) -> bool:
    multiplier = SUFFICIENCY_MULTIPLIER[years]
    return len(window) >= MIN_POINTS_RETURN and len(window) >= len(window_1y) * multiplier


# ===================================================================
# Public API
# ===================================================================

def empty_metrics(fund_id: str, fund_name: str) -> CalculatedMetrics:
    return CalculatedMetrics(
        fund_id=fund_id,
        fund_name=fund_name,
        total_return_1y=0.0,
        total_return_3y=None,
        total_return_5y=None,
        annualized_return_1y=0.0,
        annualized_return_3y=None,
        annualized_return_5y=None,
        volatility_1y=0.0,
        max_drawdown_1y=0.0,
        sharpe_ratio_1y=None,
        current_nav=0.0,
        latest_date=date.today().isoformat(),
    )


def compute_metrics(
    fund_id: str,
    fund_name: str,
    nav_data: Any,
    risk_free_rate: float = RISK_FREE_RATE,
) -> CalculatedMetrics:
    """
    Compute CalculatedMetrics for one fund.

    Args:
        fund_id (str): Fund identifier, usually the ISIN
        fund_name (str): Display name
        nav_data: NAV series (DataFrame with date/nav columns, or (date, nav) pairs)
        risk_free_rate (float): Annual risk-free rate in percent. Default: 7.0

    Returns:
        CalculatedMetrics: Never raises for well-shaped input; an empty series
                           yields zero/None figures.

    Example:
        >>> m = compute_metrics("INF000000001", "Demo", [("2023-01-01", 100), ("2024-01-01", 200)])
        >>> m.total_return_1y
        100.0
    """
    frame = to_nav_frame(nav_data)
    if frame.empty:
        return empty_metrics(fund_id, fund_name)

    nav = pd.Series(frame["nav"].values, index=pd.DatetimeIndex(frame["ts"]))
    current_nav = float(nav.iloc[-1])
    latest_date = str(frame["date"].iloc[-1])

    nav_1y = trailing_window(nav, 1)
    nav_3y = trailing_window(nav, 3)
    nav_5y = trailing_window(nav, 5)

    if len(nav_1y) >= MIN_POINTS_RETURN:
        total_return_1y = total_return(nav_1y.iloc[0], current_nav)
        annualized_return_1y = cagr(nav_1y.iloc[0], current_nav, 1)
    else:
        total_return_1y = 0.0
        annualized_return_1y = 0.0

    volatility_1y = annualised_volatility(nav_1y)
    max_drawdown_1y = max_drawdown(nav_1y)
    sharpe_ratio_1y = sharpe_ratio(annualized_return_1y, volatility_1y, risk_free_rate)

    long_window = {}
    for years, window in ((3, nav_3y), (5, nav_5y)):
        if has_enough_history(window, nav_1y, years):
            long_window[years] = (
                total_return(window.iloc[0], current_nav),
                cagr(window.iloc[0], current_nav, years),
            )
        else:
            long_window[years] = (None, None)

    logger.debug(
        f"{fund_id}: {len(nav)} points, 1y={len(nav_1y)} 3y={len(nav_3y)} 5y={len(nav_5y)}"
    )

    return CalculatedMetrics(
        fund_id=fund_id,
        fund_name=fund_name,
        total_return_1y=total_return_1y,
        total_return_3y=long_window[3][0],
        total_return_5y=long_window[5][0],
        annualized_return_1y=annualized_return_1y,
        annualized_return_3y=long_window[3][1],
        annualized_return_5y=long_window[5][1],
        volatility_1y=volatility_1y,
        max_drawdown_1y=max_drawdown_1y,
        sharpe_ratio_1y=sharpe_ratio_1y,
        current_nav=current_nav,
        latest_date=latest_date,
    )


def is_data_fresh(nav_data: Any, now: Optional[pd.Timestamp] = None) -> bool:
    """
    True when the series has at least 50 points and its latest date is no
    more than 7 days before `now`. Callers use this to decide whether the
    long-window figures are worth showing.
    """
    frame = to_nav_frame(nav_data)
    if len(frame) < MIN_POINTS_FRESH:
        return False
    now = pd.Timestamp(now) if now is not None else pd.Timestamp.now()
    if now.tzinfo is not None:
        now = now.tz_convert("UTC").tz_localize(None)
    latest = frame["ts"].iloc[-1]
    days_since_latest = (now - latest).total_seconds() / 86400.0
    return days_since_latest <= MAX_STALENESS_DAYS
