"""
Write and read the offline index-fund list: {generatedAt, count, funds}.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from fund_identity import annotate_index_fund
from nav_models import IndexFundRecord

logger = logging.getLogger(__name__)


def write_fund_list(
    path: Path,
    funds: Iterable[IndexFundRecord],
    source: Optional[str] = None,
    annotate: bool = False,
) -> Path:
    """
    Write the fund list as JSON, creating parent directories. Returns path.

    With annotate=True each fund also carries the inferred fund house,
    category and risk labels.
    """
    path = Path(path)
    records = [annotate_index_fund(fund) if annotate else fund.to_dict() for fund in funds]
    payload = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "count": len(records),
        "funds": records,
    }
    if source:
        payload["source"] = source
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def load_fund_list(path: Path) -> List[IndexFundRecord]:
    """Read a fund list written by write_fund_list. Missing file -> FileNotFoundError."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [IndexFundRecord.from_dict(item) for item in data.get("funds", [])]


def previous_fund_count(path: Path) -> Optional[int]:
    """Fund count of an existing snapshot; None when missing or unreadable."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        return len(load_fund_list(path))
    except (ValueError, AttributeError, TypeError) as e:
        logger.warning(f"Ignoring unreadable fund list at {path}: {e}")
        return None
