"""
Mutual Fund NAV Data Provider

Fetches Indian mutual fund NAV data from AMFI's daily NAVAll.txt dump and
from the per-fund historical NAV API, with caching, URL fallback and retry.
This is the entry point the web/API layer talks to.
"""

import logging
import re
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import quote

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from amfi_parser import parse_amfi_nav_text
from fund_filters import select_index_funds
from nav_models import IndexFundRecord, NavHistory, RawSchemeRecord
from nav_series import normalize_nav_history
from nav_settings import Settings
from ttl_cache import TTLCache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ISIN_PATTERN = re.compile(r"^IN[A-Z0-9]{9,12}$", re.IGNORECASE)
AMFI_DATE_PATTERN = re.compile(r"^\d{2}-[A-Za-z]{3}-\d{4}$")


class MfDataProviderError(Exception):
    """Base exception for MfDataProvider errors"""
    pass


class APIError(MfDataProviderError):
    """Raised when API calls fail"""
    pass


class FeedUnavailableError(APIError):
    """Raised when the AMFI bulk feed could not be fetched from any source"""
    pass


class UpstreamError(APIError):
    """Raised when the upstream API answers with a non-success status.

    The upstream status code and body are preserved verbatim so callers can
    pass them through unchanged.
    """

    def __init__(self, status_code: int, body: str, content_type: str = ""):
        super().__init__(f"Upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body
        self.content_type = content_type


class ValidationError(MfDataProviderError, ValueError):
    """Raised for malformed input, before any network call is made"""
    pass


def validate_isin(isin: str) -> str:
    """Return the stripped identifier, or raise ValidationError for a malformed one."""
    candidate = (isin or "").strip()
    if not ISIN_PATTERN.match(candidate):
        raise ValidationError(f"Invalid ISIN format: {isin!r}")
    return candidate


class MfDataProvider:
    """
    Data provider for AMFI scheme lists and per-fund NAV history.

    Features:
    - Bulk NAVAll.txt fetch with multi-URL fallback, linear backoff and
      payload sanity checks
    - One-hour in-memory cache, replaced wholesale on refresh
    - At most one bulk fetch in flight at a time
    - Optional local NAVAll.txt override for offline use
    - Per-fund historical NAV fetch with ISIN validation

    Attributes:
        settings (Settings): Endpoints, timeouts and cache configuration
        session (requests.Session): Configured session
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        timer: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the MfDataProvider.

        Args:
            settings (Settings, optional): Configuration. If None, read from the environment.
            session (requests.Session, optional): HTTP session. If None, one is created.
            clock (callable): Time source for the cache. Default: time.time
            sleep (callable): Used for backoff between attempts. Default: time.sleep
            timer (callable): Monotonic time source for per-request deadlines. Default: time.monotonic

        Example:
            >>> provider = MfDataProvider()
            >>> funds = provider.get_index_funds()
        """
        self.settings = settings or Settings.from_env()
        self.session = session or self._create_session()
        self._sleep = sleep
        self._timer = timer
        self._scheme_cache = TTLCache(self.settings.cache_ttl_seconds, clock=clock)
        self._index_fund_cache = TTLCache(self.settings.cache_ttl_seconds, clock=clock)
        self._fetch_lock = threading.Lock()

        logger.setLevel(self.settings.log_level)
        logger.info(f"MfDataProvider initialized with primary feed: {self.settings.amfi_nav_url}")

    def _create_session(self) -> requests.Session:
        """
        Create a requests session.

        Retries are disabled at the adapter level: one logical request is one
        connection attempt, and the URL fallback loop owns all retrying.

        Returns:
            requests.Session: Configured session object
        """
        session = requests.Session()
        retry_strategy = Retry(total=0, connect=0, read=0, status=0, redirect=False)
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"User-Agent": self.settings.user_agent})
        return session

    def _headers(self) -> dict:
        return {"User-Agent": self.settings.user_agent}

    # ==================== Bulk AMFI feed ====================

    def _read_local_override(self) -> Optional[str]:
        path = self.settings.local_nav_file
        if not path:
            return None
        path = Path(path)
        if not path.is_file() or path.stat().st_size <= self.settings.min_payload_bytes:
            return None
        logger.info(f"Using local NAVAll.txt at {path}")
        return path.read_text(encoding="utf-8", errors="replace")

    def _read_body(self, response: requests.Response, deadline: float) -> bytes:
        """
        Read a streamed response body, giving up once `deadline` passes.

        The socket timeout bounds each read; the deadline bounds the whole
        request, connection included.

        Raises:
            requests.exceptions.Timeout: If the deadline passes mid-body
        """
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=64 * 1024):
                chunks.append(chunk)
                if self._timer() > deadline:
                    raise requests.exceptions.Timeout(
                        f"Body not received within {self.settings.fetch_timeout}s"
                    )
        finally:
            response.close()
        return b"".join(chunks)

    def _download_nav_all(self) -> str:
        """
        Download NAVAll.txt, trying every candidate URL per attempt.

        Returns:
            str: Payload text

        Raises:
            FeedUnavailableError: If every attempt on every URL fails
        """
        urls = self.settings.candidate_urls
        max_attempts = self.settings.max_attempts

        for attempt in range(1, max_attempts + 1):
            for url in urls:
                logger.info(f"Fetching AMFI NAVAll.txt (attempt {attempt}/{max_attempts}) from {url}")
                deadline = self._timer() + self.settings.fetch_timeout
                try:
                    response = self.session.get(
                        url, headers=self._headers(), timeout=self.settings.fetch_timeout, stream=True
                    )
                    if not response.ok:
                        logger.warning(f"AMFI fetch non-OK status {response.status_code} from {url}")
                        response.close()
                        continue
                    body = self._read_body(response, deadline)
                except requests.exceptions.RequestException as e:
                    logger.warning(f"AMFI fetch error from {url}: {str(e)}")
                    continue

                if len(body) < self.settings.min_payload_bytes:
                    logger.warning(f"AMFI fetch returned too small payload ({len(body)} bytes) from {url}")
                    continue

                return body.decode("utf-8", errors="replace")

            if attempt < max_attempts:
                wait = self.settings.backoff_base_seconds * attempt
                logger.info(f"All AMFI URLs failed; retrying in {wait:.1f}s")
                self._sleep(wait)

        logger.error(f"All {max_attempts} attempts to fetch AMFI NAVAll.txt failed")
        raise FeedUnavailableError("All attempts to fetch AMFI NAVAll.txt failed")

    def fetch_all_schemes(self, force_refresh: bool = False) -> List[RawSchemeRecord]:
        """
        Fetch every scheme in the AMFI daily dump.

        Args:
            force_refresh (bool): If True, bypass the cache. Default: False

        Returns:
            list: RawSchemeRecord rows in file order

        Raises:
            FeedUnavailableError: If the feed cannot be fetched
        """
        if not force_refresh:
            cached = self._scheme_cache.get()
            if cached is not None:
                return cached

        with self._fetch_lock:
            # Another caller may have refreshed while we waited
            if not force_refresh:
                cached = self._scheme_cache.get()
                if cached is not None:
                    return cached

            text = self._read_local_override()
            if text is None:
                text = self._download_nav_all()

            rows = parse_amfi_nav_text(text)
            self._scheme_cache.store(rows)
            self._index_fund_cache.invalidate()
            logger.info(f"Fetched AMFI list: {len(rows)} rows")
            return rows

    # ==================== Per-fund history ====================

    def fetch_nav_history(self, isin: str) -> NavHistory:
        """
        Fetch the historical NAV series for one fund.

        Args:
            isin (str): Fund ISIN (e.g., 'INF194KB1DP9')

        Returns:
            NavHistory: Parsed payload with [(date, nav), ...] history

        Raises:
            ValidationError: If the ISIN is malformed (no request is made)
            UpstreamError: If the API answers with a non-success status
            APIError: If the request fails or the body is not valid JSON
        """
        isin = validate_isin(isin)
        url = self.settings.nav_history_url.format(isin=quote(isin))
        logger.info(f"Fetching NAV history for {isin}")

        try:
            response = self.session.get(url, headers=self._headers(), timeout=self.settings.fetch_timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed for {url}: {str(e)}")
            raise APIError(f"Failed to fetch NAV for {isin}: {str(e)}") from e

        if not response.ok:
            content_type = response.headers.get("content-type", "")
            logger.warning(f"NAV history for {isin} returned HTTP {response.status_code}")
            raise UpstreamError(response.status_code, response.text, content_type)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON response from {url}")
            raise APIError(f"Invalid JSON response from {url}") from e

        return self._parse_nav_history(data, isin)

    @staticmethod
    def _parse_nav_history(data: dict, isin: str) -> NavHistory:
        if not isinstance(data, dict):
            raise APIError(f"Unexpected NAV payload for {isin}: {type(data).__name__}")

        historical = []
        skipped = 0
        for entry in data.get("historical_nav") or []:
            try:
                point_date, point_nav = entry[0], float(entry[1])
            except (TypeError, ValueError, IndexError, KeyError):
                skipped += 1
                continue
            historical.append((str(point_date), point_nav))
        if skipped:
            logger.warning(f"Skipped {skipped} malformed history entries for {isin}")

        latest_nav = data.get("nav")
        try:
            latest_nav = float(latest_nav) if latest_nav is not None else None
        except (TypeError, ValueError):
            latest_nav = None

        return NavHistory(
            isin=data.get("ISIN") or data.get("isin") or isin,
            name=data.get("name") or "",
            latest_nav=latest_nav,
            latest_date=data.get("date"),
            historical=historical,
        )

    def fetch_amfi_history(self, from_date: str, to_date: str) -> List[RawSchemeRecord]:
        """
        Fetch AMFI's historical NAV report for a date range.

        Args:
            from_date (str): Start date, DD-MMM-YYYY (e.g., '01-Jan-2024')
            to_date (str): End date, DD-MMM-YYYY

        Returns:
            list: RawSchemeRecord rows for every scheme and date in the range

        Raises:
            ValidationError: If a date is missing or malformed
            UpstreamError: If AMFI answers with a non-success status
            APIError: If the request fails
        """
        for label, value in (("from_date", from_date), ("to_date", to_date)):
            if not value or not AMFI_DATE_PATTERN.match(value.strip()):
                raise ValidationError(f"{label} is required (DD-MMM-YYYY), got {value!r}")

        params = {"frmdt": from_date.strip(), "todt": to_date.strip()}
        url = self.settings.amfi_history_url
        logger.info(f"Fetching AMFI NAV history {params['frmdt']} .. {params['todt']}")

        try:
            response = self.session.get(
                url, params=params, headers=self._headers(), timeout=self.settings.fetch_timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed for {url}: {str(e)}")
            raise APIError(f"Failed to fetch AMFI history: {str(e)}") from e

        if not response.ok:
            raise UpstreamError(response.status_code, response.text,
                                response.headers.get("content-type", ""))

        return parse_amfi_nav_text(response.content.decode("utf-8", errors="replace"))

    # ==================== Public API Methods ====================

    def get_index_funds(self, force_refresh: bool = False) -> List[IndexFundRecord]:
        """
        Get the deduplicated list of index-like funds from the AMFI dump.

        Returns:
            list: IndexFundRecord, one per ISIN (or scheme code and name)

        Raises:
            FeedUnavailableError: If the feed cannot be fetched

        Example:
            >>> provider = MfDataProvider()
            >>> funds = provider.get_index_funds()
            >>> funds[0].to_dict()
        """
        if not force_refresh:
            cached = self._index_fund_cache.get()
            if cached is not None:
                return cached

        rows = self.fetch_all_schemes(force_refresh=force_refresh)
        funds = select_index_funds(rows)
        logger.info(f"Selected {len(funds)} index funds from {len(rows)} schemes")
        return self._index_fund_cache.store(funds)

    def get_nav_series(self, isin: str) -> pd.DataFrame:
        """
        Get the normalized NAV series for one fund.

        Args:
            isin (str): Fund ISIN

        Returns:
            pd.DataFrame: Columns [date, nav, change_percent], ascending by date

        Raises:
            ValidationError: If the ISIN is malformed
            UpstreamError: If the API answers with a non-success status
        """
        history = self.fetch_nav_history(isin)
        return normalize_nav_history(history.historical)

    def invalidate(self) -> None:
        """Drop all cached data; the next call fetches again."""
        self._scheme_cache.invalidate()
        self._index_fund_cache.invalidate()

    def refresh(self) -> List[IndexFundRecord]:
        """Force a refetch of the bulk feed and rebuild the index fund list."""
        return self.get_index_funds(force_refresh=True)
