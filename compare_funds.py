#!/usr/bin/env python3
"""
Compare two funds by ISIN and print a metrics report.

Usage:
    python compare_funds.py INF194KB1DP9 INF109K012R6 [--timeframe 3Y]
"""
import argparse
import logging
import sys
from pathlib import Path

# Run from project root
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

import pandas as pd

from fund_comparison import TIMEFRAME_MONTHS, compare_funds, metrics_table
from mf_data_provider import MfDataProvider, MfDataProviderError, UpstreamError, ValidationError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_value(value) -> str:
    if value is None or pd.isna(value):
        return "N/A (insufficient history)"
    return f"{value:.2f}"


def print_report(comparison) -> None:
    a, b = comparison.fund_a, comparison.fund_b

    print("\n" + "=" * 70)
    print("FUND COMPARISON")
    print("=" * 70)
    for label, snap in (("A", a), ("B", b)):
        print(f"\n  {label}: {snap.name} ({snap.isin})")
        print(f"     NAV points: {len(snap.series)}  latest: {snap.metrics.latest_date}")
        if not snap.is_fresh:
            print("     Warning: data is sparse or stale; long-window figures may be unreliable")

    table = metrics_table(a.metrics, b.metrics)
    table["fund_a"] = table["fund_a"].apply(format_value)
    table["fund_b"] = table["fund_b"].apply(format_value)

    print("\n" + "=" * 70)
    print("METRICS")
    print("=" * 70)
    print(table.to_string(index=False))

    chart = comparison.chart
    if not chart.empty:
        last = chart.iloc[-1]
        print("\n" + "=" * 70)
        print(f"GROWTH OF 100 ({comparison.timeframe}, {len(chart)} common dates)")
        print("=" * 70)
        print(f"  A: {last['normalized_a']:.2f}   B: {last['normalized_b']:.2f}")
    print("=" * 70 + "\n")


def main() -> int:
    parser = argparse.ArgumentParser(description="Compare two mutual funds by ISIN")
    parser.add_argument("isin_a")
    parser.add_argument("isin_b")
    parser.add_argument("--timeframe", choices=sorted(TIMEFRAME_MONTHS), default="1Y")
    args = parser.parse_args()

    try:
        comparison = compare_funds(MfDataProvider(), args.isin_a, args.isin_b, args.timeframe)
    except ValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2
    except UpstreamError as e:
        print(f"NAV API returned HTTP {e.status_code}: {e.body}", file=sys.stderr)
        return 1
    except MfDataProviderError as e:
        logger.error(f"Comparison failed: {e}")
        return 1

    print_report(comparison)
    return 0


if __name__ == "__main__":
    sys.exit(main())
