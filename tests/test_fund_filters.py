"""
Tests for index-fund classification and deduplication.

Run with: pytest tests/test_fund_filters.py -v
"""
import pytest

from fund_filters import (
    dedupe_schemes,
    identity_key,
    is_index_like,
    select_index_funds,
    to_index_fund_record,
)
from nav_models import RawSchemeRecord


def make_row(code, name, isin_growth=None, isin_reinvestment=None, nav=10.0, amc=None):
    return RawSchemeRecord(
        scheme_code=code,
        scheme_name=name,
        nav=nav,
        nav_date="18-Oct-2026",
        isin_growth=isin_growth,
        isin_reinvestment=isin_reinvestment,
        amc=amc,
    )


# =============================================================================
# CLASSIFIER
# =============================================================================

INDEX_LIKE_SCENARIOS = [
    ("UTI NIFTY 50 INDEX FUND", True),
    ("uti nifty 50 index fund", True),
    ("ICICI PRUDENTIAL BLUECHIP FUND", False),
    ("SBI SENSEX ETF", True),
    ("Motilal Oswal NASDAQ 100 ETF", True),
    ("Some Fund tracking BSE 500", True),
    ("Nippon India Benchmark Fund", True),
    ("HDFC Flexi Cap Fund", False),
    ("", False),
]


@pytest.mark.parametrize("name,expected", INDEX_LIKE_SCENARIOS)
def test_is_index_like(name, expected):
    assert is_index_like(name) is expected


def test_substring_match_accepts_broad_hits():
    # "nse" inside another word still counts
    assert is_index_like("Immense Growth Fund") is True


# =============================================================================
# DEDUPLICATION
# =============================================================================

class TestDedupe:

    def test_identity_key_prefers_growth_isin(self):
        assert identity_key(make_row("1", "A", "INF1", "INF2")) == "INF1"
        assert identity_key(make_row("1", "A", None, "INF2")) == "INF2"
        assert identity_key(make_row("1", "A")) == "1:A"

    def test_same_isin_different_codes_keeps_first(self):
        first = make_row("100", "Alpha Nifty Index Fund", "INF000000001", nav=11.0)
        second = make_row("200", "Alpha Nifty Index Fund (dup)", "INF000000001", nav=12.0)
        result = dedupe_schemes([first, second])
        assert result == [first]

    def test_order_is_preserved(self):
        rows = [
            make_row("3", "C", "INF3"),
            make_row("1", "A", "INF1"),
            make_row("3", "C again", "INF3"),
            make_row("2", "B"),
        ]
        assert [r.scheme_code for r in dedupe_schemes(rows)] == ["3", "1", "2"]

    def test_rows_without_isin_dedupe_on_code_and_name(self):
        rows = [make_row("1", "A"), make_row("1", "A"), make_row("1", "B")]
        assert len(dedupe_schemes(rows)) == 2


# =============================================================================
# PROJECTION
# =============================================================================

class TestSelectIndexFunds:

    def test_projection_fields(self):
        record = to_index_fund_record(make_row("1", "X Nifty ETF", None, "INF9", nav=5.5, amc="X Mutual Fund"))
        assert record.to_dict() == {
            "schemeCode": "1",
            "schemeName": "X Nifty ETF",
            "isin": "INF9",
            "nav": 5.5,
            "date": "18-Oct-2026",
            "amc": "X Mutual Fund",
        }

    def test_filters_then_dedupes(self):
        rows = [
            make_row("1", "UTI Nifty 50 Index Fund - Growth", "INF000000001"),
            make_row("2", "ICICI Bluechip Fund", "INF000000002"),
            make_row("3", "UTI Nifty 50 Index Fund - Growth (Regular)", "INF000000001"),
            make_row("4", "SBI Sensex ETF"),
        ]
        funds = select_index_funds(rows)
        assert [f.scheme_code for f in funds] == ["1", "4"]
        assert funds[1].isin is None
        assert funds[1].identity_key == "4:SBI Sensex ETF"
