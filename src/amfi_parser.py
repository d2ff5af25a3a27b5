"""
AMFI NAV text parser.

AMFI publishes its daily NAV dump (NAVAll.txt) and its historical NAV report
as semicolon-delimited text with a header row, blank lines and section
headings interspersed between the data rows. The column order differs
between variants, so when a header row is present the columns are mapped by
name; otherwise a positional layout is assumed.

Malformed rows are skipped, never raised.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from nav_models import RawSchemeRecord

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r"scheme code\s*;", re.IGNORECASE)
ISIN_LIKE_NAME = re.compile(r"^IN[A-Z0-9]{10}$", re.IGNORECASE)
SCHEME_CATEGORY_PATTERN = re.compile(r"schemes?\s*\(", re.IGNORECASE)

MIN_FIELDS = 6


@dataclass(frozen=True)
class ColumnLayout:
    """Field positions for one feed variant. Optional columns may be None."""

    scheme_code: int = 0
    scheme_name: int = 1
    isin_growth: int = 2
    isin_reinvestment: int = 3
    nav: int = 4
    nav_date: int = 5
    rta: Optional[int] = 6
    rta_code: Optional[int] = 7
    amc: Optional[int] = 8


DEFAULT_LAYOUT = ColumnLayout()


def _match_column(name: str) -> Optional[str]:
    if "scheme code" in name:
        return "scheme_code"
    if "scheme name" in name:
        return "scheme_name"
    if "isin" in name and "reinvest" in name:
        return "isin_reinvestment"
    if "isin" in name and ("growth" in name or "payout" in name):
        return "isin_growth"
    if "net asset value" in name or name == "nav":
        return "nav"
    if name == "date" or name == "nav date":
        return "nav_date"
    if "rta code" in name:
        return "rta_code"
    if name == "rta":
        return "rta"
    if name == "amc" or "fund house" in name:
        return "amc"
    return None


def layout_from_header(header: str) -> ColumnLayout:
    """
    Map header column names to positions.

    Falls back to DEFAULT_LAYOUT when any of the six mandatory columns
    cannot be located, so an unfamiliar header never breaks parsing.
    """
    positions: Dict[str, int] = {}
    for index, column in enumerate(header.split(";")):
        field_name = _match_column(column.strip().lower())
        if field_name and field_name not in positions:
            positions[field_name] = index

    mandatory = ("scheme_code", "scheme_name", "isin_growth",
                 "isin_reinvestment", "nav", "nav_date")
    missing = [name for name in mandatory if name not in positions]
    if missing:
        logger.debug(f"Header missing columns {missing}; using default layout")
        return DEFAULT_LAYOUT

    return ColumnLayout(
        scheme_code=positions["scheme_code"],
        scheme_name=positions["scheme_name"],
        isin_growth=positions["isin_growth"],
        isin_reinvestment=positions["isin_reinvestment"],
        nav=positions["nav"],
        nav_date=positions["nav_date"],
        rta=positions.get("rta"),
        rta_code=positions.get("rta_code"),
        amc=positions.get("amc"),
    )


def _field(parts: Sequence[str], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(parts):
        return None
    value = parts[index].strip()
    return value or None


def _isin_field(parts: Sequence[str], index: Optional[int]) -> Optional[str]:
    value = _field(parts, index)
    # AMFI uses "-" for a missing ISIN
    if value is None or value.strip("-") == "":
        return None
    return value


def parse_nav_value(raw: Optional[str]) -> Optional[float]:
    """Parse a NAV string; None unless it is a finite decimal."""
    if not raw:
        return None
    try:
        value = float(raw.replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_line(
    line: str,
    layout: ColumnLayout = DEFAULT_LAYOUT,
    amc: Optional[str] = None,
    scheme_category: Optional[str] = None,
) -> Optional[RawSchemeRecord]:
    """Interpret one data line, or return None when it is not a valid record."""
    parts = line.split(";")
    if len(parts) < MIN_FIELDS:
        return None

    nav = parse_nav_value(_field(parts, layout.nav))
    if nav is None:
        return None

    scheme_name = _field(parts, layout.scheme_name)
    # An ISIN in the name column means the columns are shifted
    if not scheme_name or ISIN_LIKE_NAME.match(scheme_name):
        return None

    return RawSchemeRecord(
        scheme_code=_field(parts, layout.scheme_code) or "",
        scheme_name=scheme_name,
        nav=nav,
        nav_date=_field(parts, layout.nav_date) or "",
        isin_growth=_isin_field(parts, layout.isin_growth),
        isin_reinvestment=_isin_field(parts, layout.isin_reinvestment),
        amc=_field(parts, layout.amc) or amc,
        rta=_field(parts, layout.rta),
        rta_code=_field(parts, layout.rta_code),
        scheme_category=scheme_category,
    )


def find_header(lines: Sequence[str]) -> int:
    """Index of the header line, or -1 when the payload has none."""
    for index, line in enumerate(lines):
        if HEADER_PATTERN.search(line):
            return index
    return -1


def parse_amfi_nav_text(text: str) -> List[RawSchemeRecord]:
    """
    Parse a full AMFI payload into scheme records, in file order.

    Args:
        text (str): Raw NAVAll.txt (or NAV history report) content

    Returns:
        list: RawSchemeRecord for every valid data line
    """
    lines = [line for line in re.split(r"\r?\n", text or "") if line.strip()]
    header_index = find_header(lines)
    if header_index >= 0:
        layout = layout_from_header(lines[header_index])
        data_lines = lines[header_index + 1:]
    else:
        logger.warning("AMFI header not found; treating every line as data")
        layout = DEFAULT_LAYOUT
        data_lines = lines

    rows: List[RawSchemeRecord] = []
    skipped = 0
    current_amc: Optional[str] = None
    current_category: Optional[str] = None

    for line in data_lines:
        if ";" not in line:
            heading = line.strip()
            if heading.lower().endswith("mutual fund"):
                current_amc = heading
            elif SCHEME_CATEGORY_PATTERN.search(heading):
                current_category = heading
            continue

        record = parse_line(line, layout, amc=current_amc, scheme_category=current_category)
        if record is None:
            skipped += 1
            continue
        rows.append(record)

    logger.info(f"Parsed {len(rows)} AMFI rows (skipped {skipped} invalid)")
    return rows
