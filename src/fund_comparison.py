"""
Side-by-side comparison of two funds: metrics, freshness and chart data.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

import pandas as pd

from nav_metrics import compute_metrics, is_data_fresh
from nav_models import CalculatedMetrics
from nav_series import normalize_nav_history, parse_nav_dates

logger = logging.getLogger(__name__)

TIMEFRAME_MONTHS = {"1Y": 12, "3Y": 36, "5Y": 60}

# (field, label, higher_is_better)
METRIC_ROWS: List[Tuple[str, str, bool]] = [
    ("current_nav", "Current NAV", True),
    ("total_return_1y", "1Y Return (%)", True),
    ("annualized_return_3y", "3Y CAGR (%)", True),
    ("annualized_return_5y", "5Y CAGR (%)", True),
    ("volatility_1y", "Volatility 1Y (%)", False),
    ("max_drawdown_1y", "Max Drawdown 1Y (%)", False),
    ("sharpe_ratio_1y", "Sharpe Ratio 1Y", True),
]


@dataclass(frozen=True)
class FundSnapshot:
    isin: str
    name: str
    series: pd.DataFrame
    metrics: CalculatedMetrics
    is_fresh: bool


@dataclass(frozen=True)
class FundComparison:
    fund_a: FundSnapshot
    fund_b: FundSnapshot
    chart: pd.DataFrame
    timeframe: str


def timeframe_start(timeframe: str, now: Optional[pd.Timestamp] = None) -> pd.Timestamp:
    """First day of the month 12/36/60 months before `now`."""
    if timeframe not in TIMEFRAME_MONTHS:
        raise ValueError(f"Unknown timeframe {timeframe!r}; expected one of {sorted(TIMEFRAME_MONTHS)}")
    now = pd.Timestamp(now) if now is not None else pd.Timestamp.now()
    first_of_month = pd.Timestamp(year=now.year, month=now.month, day=1)
    return first_of_month - pd.DateOffset(months=TIMEFRAME_MONTHS[timeframe])


def build_comparison_chart(
    series_a: pd.DataFrame,
    series_b: pd.DataFrame,
    timeframe: str = "1Y",
    now: Optional[pd.Timestamp] = None,
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None,
) -> pd.DataFrame:
    """
    Align two NAV series on common dates and rebase both to 100.

    Args:
        series_a, series_b (pd.DataFrame): NAV series with date/nav columns
        timeframe (str): '1Y', '3Y', '5Y' or 'custom'
        now: Reference time for preset timeframes. Default: now
        start, end: Bounds for the 'custom' timeframe

    Returns:
        pd.DataFrame: Columns [date, nav_a, nav_b, normalized_a, normalized_b]
    """
    columns = ["date", "nav_a", "nav_b", "normalized_a", "normalized_b"]
    if series_a.empty or series_b.empty:
        return pd.DataFrame(columns=columns)

    if timeframe == "custom":
        lower = pd.Timestamp(start) if start is not None else pd.Timestamp.min
        upper = pd.Timestamp(end) if end is not None else pd.Timestamp.max
    else:
        lower = timeframe_start(timeframe, now)
        upper = pd.Timestamp(now) if now is not None else pd.Timestamp.now()

    a = series_a[["date", "nav"]].assign(ts=parse_nav_dates(series_a["date"]).values)
    b = series_b[["date", "nav"]].assign(ts=parse_nav_dates(series_b["date"]).values)
    merged = a.merge(b[["ts", "nav"]], on="ts", suffixes=("_a", "_b"))
    merged = merged[(merged["ts"] >= lower) & (merged["ts"] <= upper)]
    merged = merged.sort_values("ts").reset_index(drop=True)
    if merged.empty:
        return pd.DataFrame(columns=columns)

    merged["normalized_a"] = merged["nav_a"] / merged["nav_a"].iloc[0] * 100.0
    merged["normalized_b"] = merged["nav_b"] / merged["nav_b"].iloc[0] * 100.0
    return merged[columns]


def better_side(value_a: Optional[float], value_b: Optional[float], higher_is_better: bool) -> str:
    if value_a is None or value_b is None or value_a == value_b:
        return ""
    if higher_is_better:
        return "A" if value_a > value_b else "B"
    return "A" if value_a < value_b else "B"


def metrics_table(metrics_a: CalculatedMetrics, metrics_b: CalculatedMetrics) -> pd.DataFrame:
    """One row per metric with both values and the better side ('A', 'B' or '')."""
    rows = []
    for field_name, label, higher_is_better in METRIC_ROWS:
        value_a = getattr(metrics_a, field_name)
        value_b = getattr(metrics_b, field_name)
        rows.append({
            "metric": label,
            "fund_a": value_a,
            "fund_b": value_b,
            "better": better_side(value_a, value_b, higher_is_better),
        })
    return pd.DataFrame(rows, columns=["metric", "fund_a", "fund_b", "better"])


def _snapshot(provider, isin: str, now: Optional[pd.Timestamp]) -> FundSnapshot:
    history = provider.fetch_nav_history(isin)
    series = normalize_nav_history(history.historical)
    name = history.name or isin
    return FundSnapshot(
        isin=history.isin,
        name=name,
        series=series,
        metrics=compute_metrics(history.isin, name, series),
        is_fresh=is_data_fresh(series, now=now),
    )


def compare_funds(
    provider,
    isin_a: str,
    isin_b: str,
    timeframe: str = "1Y",
    now: Optional[pd.Timestamp] = None,
) -> FundComparison:
    """
    Fetch two funds concurrently and compare them.

    Args:
        provider (MfDataProvider): Source of NAV history
        isin_a, isin_b (str): Fund ISINs
        timeframe (str): Chart timeframe ('1Y', '3Y', '5Y'). Default: '1Y'
        now: Reference time for freshness and the chart window

    Returns:
        FundComparison

    Raises:
        ValidationError, UpstreamError, APIError: Propagated from the provider
    """
    logger.info(f"Comparing {isin_a} vs {isin_b} ({timeframe})")
    with ThreadPoolExecutor(max_workers=2) as executor:
        future_a = executor.submit(_snapshot, provider, isin_a, now)
        future_b = executor.submit(_snapshot, provider, isin_b, now)
        fund_a = future_a.result()
        fund_b = future_b.result()

    chart = build_comparison_chart(fund_a.series, fund_b.series, timeframe, now=now)
    return FundComparison(fund_a=fund_a, fund_b=fund_b, chart=chart, timeframe=timeframe)
