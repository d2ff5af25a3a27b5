"""
Data model for the NAV pipeline.

Records are frozen dataclasses: a fetch cycle produces new ones and caches
replace them wholesale rather than mutating them.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class RawSchemeRecord:
    """One decoded line of the AMFI bulk feed."""

    scheme_code: str
    scheme_name: str
    nav: float
    nav_date: str
    isin_growth: Optional[str] = None
    isin_reinvestment: Optional[str] = None
    amc: Optional[str] = None
    rta: Optional[str] = None
    rta_code: Optional[str] = None
    scheme_category: Optional[str] = None

    @property
    def isin(self) -> Optional[str]:
        return self.isin_growth or self.isin_reinvestment or None


@dataclass(frozen=True)
class IndexFundRecord:
    """Public projection of a deduplicated index-like scheme."""

    scheme_code: str
    scheme_name: str
    isin: Optional[str]
    nav: float
    date: str
    amc: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return self.isin or f"{self.scheme_code}:{self.scheme_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemeCode": self.scheme_code,
            "schemeName": self.scheme_name,
            "isin": self.isin,
            "nav": self.nav,
            "date": self.date,
            "amc": self.amc,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexFundRecord":
        return cls(
            scheme_code=str(data.get("schemeCode") or ""),
            scheme_name=str(data.get("schemeName") or ""),
            isin=data.get("isin") or None,
            nav=float(data.get("nav") or 0),
            date=str(data.get("date") or ""),
            amc=data.get("amc") or None,
        )


@dataclass(frozen=True)
class NavHistory:
    """Historical NAV payload for one fund, as served by the per-fund API."""

    isin: str
    name: str
    latest_nav: Optional[float]
    latest_date: Optional[str]
    historical: List[Tuple[str, float]] = field(default_factory=list)


@dataclass(frozen=True)
class CalculatedMetrics:
    """
    Metrics snapshot for one fund at one latest_date.

    None on a 3y/5y field or on the Sharpe ratio means "not computable",
    which is distinct from a computed zero.
    """

    fund_id: str
    fund_name: str
    total_return_1y: float
    total_return_3y: Optional[float]
    total_return_5y: Optional[float]
    annualized_return_1y: float
    annualized_return_3y: Optional[float]
    annualized_return_5y: Optional[float]
    volatility_1y: float
    max_drawdown_1y: float
    sharpe_ratio_1y: Optional[float]
    current_nav: float
    latest_date: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
