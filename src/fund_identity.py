"""
Best-effort fund house and category labels inferred from scheme names.

AMFI scheme names carry the AMC, the tracked index and the plan as free
text. The rules below are evaluated in order and the first match wins;
anything unmatched falls back to a default label. These labels are for
display and grouping only, not authoritative metadata.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from nav_models import IndexFundRecord

UNKNOWN_FUND_HOUSE = "Unknown"


@dataclass(frozen=True)
class FundCategory:
    category_id: str
    category_name: str
    sub_category: str
    benchmark_index: str


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda name: any(needle in name for needle in needles)


def _word(word: str) -> Callable[[str], bool]:
    pattern = re.compile(rf"\b{re.escape(word)}\b")
    return lambda name: bool(pattern.search(name))


FUND_HOUSE_RULES: Sequence[Tuple[Callable[[str], bool], str]] = (
    (_contains("ICICI"), "ICICI Prudential Mutual Fund"),
    (_contains("SBI"), "SBI Mutual Fund"),
    (_contains("AXIS"), "Axis Mutual Fund"),
    (_contains("HDFC"), "HDFC Mutual Fund"),
    (_word("UTI"), "UTI Mutual Fund"),
    (_contains("D S P", "DSP"), "DSP Mutual Fund"),
    (_contains("NIPPON"), "Nippon India Mutual Fund"),
    (_contains("BANDHAN"), "Bandhan Mutual Fund"),
    (_contains("MOTILAL"), "Motilal Oswal Mutual Fund"),
    (_contains("KOTAK"), "Kotak Mahindra Mutual Fund"),
    (_contains("TATA"), "Tata Mutual Fund"),
    (_contains("ADITYA BIRLA"), "Aditya Birla Sun Life Mutual Fund"),
    (_contains("MIRAE"), "Mirae Asset Mutual Fund"),
    (_word("NAVI"), "Navi Mutual Fund"),
    (_contains("ZERODHA"), "Zerodha Mutual Fund"),
)

# Order matters: "NIFTY NEXT 50" must be checked before "NIFTY 50"
CATEGORY_RULES: Sequence[Tuple[Callable[[str], bool], FundCategory]] = (
    (_contains("NEXT 50"),
     FundCategory("large-cap", "Large Cap", "Index Fund", "NIFTY NEXT 50")),
    (_contains("NIFTY 50", "NIFTY INDEX"),
     FundCategory("large-cap", "Large Cap", "Index Fund", "NIFTY 50")),
    (_contains("SENSEX"),
     FundCategory("large-cap", "Large Cap", "Index Fund", "S&P BSE Sensex")),
    (_contains("MIDCAP 150"),
     FundCategory("mid-cap", "Mid Cap", "Index Fund", "NIFTY MIDCAP 150")),
    (_contains("SMALLCAP 250"),
     FundCategory("small-cap", "Small Cap", "Index Fund", "NIFTY SMALLCAP 250")),
    (_contains("BANK"),
     FundCategory("banking", "Banking & Financial", "Index Fund", "NIFTY BANK")),
    (_word("IT"),
     FundCategory("technology", "Technology", "Index Fund", "NIFTY IT")),
    (_contains("PHARMA"),
     FundCategory("pharma", "Pharmaceutical", "Index Fund", "NIFTY PHARMA")),
)

DEFAULT_CATEGORY = FundCategory("equity", "Equity", "Index/ETF", "NIFTY 50")

RISK_RATINGS = {
    "small cap": "Very High",
    "mid cap": "High",
    "pharmaceutical": "High",
    "large cap": "Moderate",
    "banking & financial": "Moderate",
    "technology": "Moderate",
}


def guess_fund_house(name: str, amc: Optional[str] = None) -> str:
    """Fund house label for a scheme; an AMC from the feed takes precedence."""
    if amc:
        return amc
    upper = (name or "").upper()
    for matches, label in FUND_HOUSE_RULES:
        if matches(upper):
            return label
    return UNKNOWN_FUND_HOUSE


def categorize_scheme(name: str) -> FundCategory:
    upper = (name or "").upper()
    for matches, category in CATEGORY_RULES:
        if matches(upper):
            return category
    return DEFAULT_CATEGORY


def risk_rating(category_name: str) -> str:
    return RISK_RATINGS.get((category_name or "").lower(), "Moderate")


def fund_slug(isin: Optional[str], scheme_code: str, scheme_name: str) -> str:
    base = isin or f"{scheme_code}-{scheme_name}"
    return re.sub(r"[^a-z0-9]+", "-", base.lower()).strip("-")


def annotate_index_fund(record: IndexFundRecord) -> Dict[str, Any]:
    """Public record plus inferred fund house, category and risk labels."""
    category = categorize_scheme(record.scheme_name)
    annotated = record.to_dict()
    annotated.update({
        "id": fund_slug(record.isin, record.scheme_code, record.scheme_name),
        "fundHouse": guess_fund_house(record.scheme_name, record.amc),
        "categoryId": category.category_id,
        "categoryName": category.category_name,
        "subCategory": category.sub_category,
        "benchmarkIndex": category.benchmark_index,
        "riskRating": risk_rating(category.category_name),
    })
    return annotated
