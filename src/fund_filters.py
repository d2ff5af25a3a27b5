"""
Index-fund selection over parsed AMFI rows: classify, deduplicate, project.
"""
from typing import Dict, Iterable, List

from nav_models import IndexFundRecord, RawSchemeRecord

# Plain substring match, no word boundaries
INDEX_KEYWORDS = ("index", "nifty", "sensex", "etf", "benchmark", "nse", "bse")


def is_index_like(name: str) -> bool:
    n = (name or "").lower()
    return any(keyword in n for keyword in INDEX_KEYWORDS)


def identity_key(record: RawSchemeRecord) -> str:
    """ISIN when present, otherwise scheme code and name."""
    return record.isin or f"{record.scheme_code}:{record.scheme_name}"


def dedupe_schemes(records: Iterable[RawSchemeRecord]) -> List[RawSchemeRecord]:
    """Keep the first record seen for each identity key, preserving order."""
    unique: Dict[str, RawSchemeRecord] = {}
    for record in records:
        key = identity_key(record)
        if key not in unique:
            unique[key] = record
    return list(unique.values())


def to_index_fund_record(record: RawSchemeRecord) -> IndexFundRecord:
    return IndexFundRecord(
        scheme_code=record.scheme_code,
        scheme_name=record.scheme_name,
        isin=record.isin,
        nav=record.nav,
        date=record.nav_date,
        amc=record.amc or None,
    )


def select_index_funds(records: Iterable[RawSchemeRecord]) -> List[IndexFundRecord]:
    """Filter to index-like schemes, deduplicate, and project to the public shape."""
    candidates = (r for r in records if r.scheme_name and is_index_like(r.scheme_name))
    return [to_index_fund_record(r) for r in dedupe_schemes(candidates)]
