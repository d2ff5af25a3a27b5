"""
Runtime configuration for the NAV pipeline.
Values come from the environment, optionally seeded from a .env file at the project root.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = ROOT_DIR / "data"

AMFI_NAV_ALL_URL = "https://www.amfiindia.com/spages/NAVAll.txt"
AMFI_FALLBACK_URLS = (
    "http://www.amfiindia.com/spages/NAVAll.txt",
    "https://www.amfiindia.com/spages/NAVAll.txt",
)
NAV_HISTORY_URL = "https://mf.captnemo.in/nav/{isin}"
AMFI_HISTORY_URL = "https://portal.amfiindia.com/DownloadNAVHistoryReport_Po.aspx"
USER_AGENT = "indiaindexfunds/1.0 (+https://github.com/divitkashyap/indiaindexfunds)"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load .env from project root if present. Existing variables win."""
    load_dotenv(env_path or ROOT_DIR / ".env", override=False)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    amfi_nav_url: str = AMFI_NAV_ALL_URL
    fallback_urls: Tuple[str, ...] = AMFI_FALLBACK_URLS
    nav_history_url: str = NAV_HISTORY_URL
    amfi_history_url: str = AMFI_HISTORY_URL
    user_agent: str = USER_AGENT
    fetch_timeout: float = 10.0
    cache_ttl_seconds: float = 60 * 60
    max_attempts: int = 3
    backoff_base_seconds: float = 1.5
    min_payload_bytes: int = 1000
    local_nav_file: Optional[Path] = None
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "INFO"

    @property
    def candidate_urls(self) -> Tuple[str, ...]:
        """Primary URL followed by the fallbacks, without repeats."""
        seen = []
        for url in (self.amfi_nav_url,) + tuple(self.fallback_urls):
            if url and url not in seen:
                seen.append(url)
        return tuple(seen)

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        if load_dotenv_file:
            load_env()
        data_dir = Path(os.environ.get("NAV_DATA_DIR") or DEFAULT_DATA_DIR)
        local_file = os.environ.get("NAV_LOCAL_FILE")
        return cls(
            amfi_nav_url=os.environ.get("AMFI_NAV_URL") or AMFI_NAV_ALL_URL,
            nav_history_url=os.environ.get("NAV_HISTORY_URL") or NAV_HISTORY_URL,
            amfi_history_url=os.environ.get("AMFI_HISTORY_URL") or AMFI_HISTORY_URL,
            fetch_timeout=_env_float("NAV_FETCH_TIMEOUT", 10.0),
            cache_ttl_seconds=_env_float("NAV_CACHE_TTL_SECONDS", 60 * 60),
            max_attempts=max(1, _env_int("NAV_FETCH_ATTEMPTS", 3)),
            local_nav_file=Path(local_file) if local_file else data_dir / "NAVAll.txt",
            data_dir=data_dir,
            log_level=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
        )
