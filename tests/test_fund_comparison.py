"""
Tests for fund comparison: timeframes, chart alignment, metrics table.

Run with: pytest tests/test_fund_comparison.py -v
"""
from dataclasses import replace

import pandas as pd
import pytest

from fund_comparison import (
    better_side,
    build_comparison_chart,
    compare_funds,
    metrics_table,
    timeframe_start,
)
from mf_data_provider import ValidationError
from nav_metrics import empty_metrics
from nav_models import NavHistory

NOW = pd.Timestamp("2026-10-19")


def series(points):
    return pd.DataFrame({"date": [d for d, _ in points], "nav": [n for _, n in points]})


class FakeProvider:
    """Serves canned histories keyed by ISIN."""

    def __init__(self, histories):
        self.histories = histories
        self.requested = []

    def fetch_nav_history(self, isin):
        self.requested.append(isin)
        if isin not in self.histories:
            raise ValidationError(f"Invalid ISIN format: {isin!r}")
        return self.histories[isin]


def make_history(isin, name, days, growth):
    dates = pd.date_range(end=NOW - pd.Timedelta(days=1), periods=days, freq="D")
    return NavHistory(
        isin=isin,
        name=name,
        latest_nav=None,
        latest_date=None,
        historical=[[d.strftime("%Y-%m-%d"), 10.0 * growth ** i] for i, d in enumerate(dates)],
    )


# =============================================================================
# TIMEFRAMES
# =============================================================================

class TestTimeframe:

    @pytest.mark.parametrize("timeframe,expected", [
        ("1Y", "2025-10-01"),
        ("3Y", "2023-10-01"),
        ("5Y", "2021-10-01"),
    ])
    def test_start_is_first_of_month(self, timeframe, expected):
        assert timeframe_start(timeframe, now=NOW) == pd.Timestamp(expected)

    def test_unknown_timeframe(self):
        with pytest.raises(ValueError):
            timeframe_start("2Y", now=NOW)


# =============================================================================
# CHART
# =============================================================================

class TestChart:

    def test_common_dates_rebased_to_100(self):
        a = series([("2025-09-15", 5.0), ("2025-10-01", 10.0), ("2025-10-02", 11.0), ("2025-10-03", 12.0)])
        b = series([("2025-10-01", 20.0), ("2025-10-03", 30.0), ("2025-10-04", 40.0)])

        chart = build_comparison_chart(a, b, "1Y", now=NOW)

        assert list(chart.columns) == ["date", "nav_a", "nav_b", "normalized_a", "normalized_b"]
        assert list(chart["date"]) == ["2025-10-01", "2025-10-03"]
        assert list(chart["normalized_a"]) == pytest.approx([100.0, 120.0])
        assert list(chart["normalized_b"]) == pytest.approx([100.0, 150.0])

    def test_custom_range(self):
        a = series([("2024-01-01", 1.0), ("2024-02-01", 2.0), ("2024-03-01", 4.0)])
        b = series([("2024-01-01", 1.0), ("2024-02-01", 1.5), ("2024-03-01", 3.0)])

        chart = build_comparison_chart(a, b, "custom", start="2024-02-01", end="2024-03-01")

        assert list(chart["date"]) == ["2024-02-01", "2024-03-01"]
        assert list(chart["normalized_b"]) == pytest.approx([100.0, 200.0])

    def test_no_overlap(self):
        a = series([("2026-01-01", 1.0)])
        b = series([("2026-01-02", 1.0)])
        assert build_comparison_chart(a, b, "1Y", now=NOW).empty

    def test_empty_input(self):
        empty = series([])
        assert build_comparison_chart(empty, series([("2026-01-01", 1.0)]), "1Y", now=NOW).empty


# =============================================================================
# METRICS TABLE
# =============================================================================

class TestMetricsTable:

    def test_better_side(self):
        assert better_side(10.0, 5.0, True) == "A"
        assert better_side(10.0, 5.0, False) == "B"
        assert better_side(None, 5.0, True) == ""
        assert better_side(3.0, 3.0, True) == ""

    def test_lower_volatility_wins(self):
        a = replace(empty_metrics("A", "Fund A"), volatility_1y=12.0, total_return_1y=8.0)
        b = replace(empty_metrics("B", "Fund B"), volatility_1y=15.0, total_return_1y=9.0)

        table = metrics_table(a, b).set_index("metric")

        assert table.loc["Volatility 1Y (%)", "better"] == "A"
        assert table.loc["1Y Return (%)", "better"] == "B"
        assert table.loc["3Y CAGR (%)", "better"] == ""


# =============================================================================
# END TO END
# =============================================================================

class TestCompareFunds:

    def test_compare(self):
        provider = FakeProvider({
            "INF000000001": make_history("INF000000001", "Alpha Nifty 50 Index Fund", 400, 1.0005),
            "INF000000002": make_history("INF000000002", "Beta Sensex Index Fund", 30, 1.001),
        })

        result = compare_funds(provider, "INF000000001", "INF000000002", "1Y", now=NOW)

        assert sorted(provider.requested) == ["INF000000001", "INF000000002"]
        assert result.fund_a.name == "Alpha Nifty 50 Index Fund"
        assert result.fund_a.metrics.fund_id == "INF000000001"
        assert result.fund_a.is_fresh is True
        assert result.fund_b.is_fresh is False
        assert len(result.chart) == 30
        assert result.chart["normalized_a"].iloc[0] == pytest.approx(100.0)

    def test_provider_errors_propagate(self):
        provider = FakeProvider({"INF000000001": make_history("INF000000001", "Alpha", 10, 1.0)})
        with pytest.raises(ValidationError):
            compare_funds(provider, "INF000000001", "bad", now=NOW)
