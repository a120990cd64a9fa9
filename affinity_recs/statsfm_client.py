"""
Stats.fm API Client
===================

Handles all interactions with the stats.fm ranking service:
- Session setup, authentication header and retries on 429/5xx
- Paginated top-list retrieval (genres, artists, albums, tracks)
- Parallel construction of a user's ranking profile
- Request throttling shared across threads
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Dict, Optional, Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    STATSFM_API_URL,
    STATSFM_API_KEY,
    STATSFM_TIMEOUT_SECONDS,
    USER_AGENT,
    CATEGORIES,
    DEFAULT_FETCH_CONFIG,
    FetchConfig,
)
from .errors import ServiceError
from .profiles import RankedList, UserRankingProfile, extract_ids, validate_category

logger = logging.getLogger(__name__)


class StatsfmClient:
    """
    Wrapper around a requests session with throttling and pagination.

    Attributes:
        session: HTTP session used for every request
        fetch_config: Pagination limits
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        fetch_config: FetchConfig = DEFAULT_FETCH_CONFIG,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, defaults to STATSFM_API_URL
            api_key: Optional API key sent as Authorization header
            timeout: Per-request timeout in seconds
            fetch_config: Page size and stopping limits
            session: Pre-built session, used as is (tests pass a fake one)
        """
        self.base_url = (base_url or STATSFM_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else STATSFM_TIMEOUT_SECONDS
        self.fetch_config = fetch_config

        if session is None:
            session = requests.Session()
            self._mount_retries(session)
        self.session = session
        self.session.headers.update({"User-Agent": USER_AGENT})
        api_key = api_key or STATSFM_API_KEY
        if api_key:
            self.session.headers.update({"Authorization": api_key})

        # Request throttling, shared by the category fetch threads
        self._throttle_lock = threading.Lock()
        self._last_request_time = 0.0
        self._min_request_interval = fetch_config.min_request_interval

    def _mount_retries(self, session: requests.Session):
        """Retry rate-limited and 5xx GETs, honouring Retry-After."""
        config = self.fetch_config
        retry = Retry(
            total=config.max_retries,
            connect=None,
            read=False,
            status_forcelist=config.retry_statuses,
            backoff_factor=config.retry_backoff,
            respect_retry_after_header=True,
            allowed_methods=["GET"],
            # Hand the last response back so raise_for_status keeps its status code
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

    def _throttle(self):
        """Ensure minimum time between requests."""
        with self._throttle_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self._min_request_interval:
                time.sleep(self._min_request_interval - elapsed)
            self._last_request_time = time.monotonic()

    def _get(self, path: str, params: Dict[str, Any]) -> Dict:
        """GET a JSON object, converting every failure into ServiceError."""
        url = f"{self.base_url}{path}"
        self._throttle()
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ServiceError(f"{url} returned HTTP {status}", status_code=status, url=url) from e
        except requests.RequestException as e:
            raise ServiceError(f"Request to {url} failed: {e}", url=url) from e
        except ValueError as e:
            raise ServiceError(f"{url} returned invalid JSON", url=url) from e

        if not isinstance(payload, dict):
            raise ServiceError(f"{url} returned {type(payload).__name__}, expected object", url=url)
        return payload

    # =========================================================================
    # TOP LISTS
    # =========================================================================

    def get_top_page(
        self,
        user_id: str,
        category: str,
        range_value: str,
        limit: int,
        offset: int,
    ) -> List[Dict]:
        """
        Fetch a single page of a user's top items.

        Args:
            user_id: stats.fm user ID
            category: genres, artists, albums or tracks
            range_value: Service range value (weeks, months, lifetime, today)
            limit: Page size
            offset: Index of the first item of the page

        Returns:
            Raw item dictionaries of that page
        """
        params = {
            "limit": limit,
            "offset": offset,
            "orderBy": self.fetch_config.order_by,
            "range": range_value,
        }
        logger.debug("GET top %s for %s (offset=%d, limit=%d)", category, user_id, offset, limit)
        payload = self._get(f"/users/{user_id}/top/{category}", params)

        items = payload.get("items")
        if not isinstance(items, list):
            raise ServiceError(f"Top {category} response for {user_id} has no items list")
        return items

    def fetch_top(
        self,
        user_id: str,
        category: str,
        range_value: str,
        limit: Optional[int] = None,
        max_items: Optional[int] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> RankedList:
        """
        Fetch a user's ranked list for one category, following pagination.

        Pages are requested at offsets 0, limit, 2*limit, ... until a page
        comes back empty, the offset reaches the service cap, or max_items
        identifiers have been collected.

        Args:
            user_id: stats.fm user ID
            category: genres, artists, albums or tracks
            range_value: Service range value
            limit: Page size (defaults to fetch_config.page_size)
            max_items: Upper bound on the list length
            stop_event: When set, no further page is requested and the
                list collected so far is returned

        Returns:
            RankedList with rank 0 first
        """
        validate_category(category)
        limit = limit or self.fetch_config.page_size
        max_items = max_items or self.fetch_config.max_items
        if limit <= 0 or max_items <= 0:
            raise ValueError("limit and max_items must be positive")

        offset = 0
        ids: List[str] = []
        while stop_event is None or not stop_event.is_set():
            items = self.get_top_page(user_id, category, range_value, limit, offset)
            ids.extend(extract_ids(category, items))
            offset += limit

            if not items or offset >= self.fetch_config.offset_cap or len(ids) >= max_items:
                break

        return tuple(ids[:max_items])

    def fetch_profile(
        self,
        user_id: str,
        range_value: str,
        categories: Optional[List[str]] = None,
    ) -> UserRankingProfile:
        """
        Fetch every category for a user in parallel.

        The first failing category aborts the profile: fetches that have not
        started are cancelled, running ones stop before their next page, and
        the error is raised once they have wound down.

        Args:
            user_id: stats.fm user ID
            range_value: Service range value
            categories: Categories to fetch (all four by default)

        Returns:
            UserRankingProfile for the user
        """
        categories = list(categories or CATEGORIES)
        stop = threading.Event()
        lists: Dict[str, RankedList] = {}

        with ThreadPoolExecutor(max_workers=len(categories)) as pool:
            futures = {
                pool.submit(self.fetch_top, user_id, category, range_value, stop_event=stop): category
                for category in categories
            }
            try:
                for future in as_completed(futures):
                    lists[futures[future]] = future.result()
            except Exception as e:
                stop.set()
                for pending in futures:
                    pending.cancel()
                logger.debug("Aborting profile fetch for %s: %s", user_id, e)
                raise

        profile = UserRankingProfile(
            user_id=user_id,
            range=range_value,
            lists={category: lists[category] for category in categories},
        )
        logger.info("Fetched profile for %s (%s): %s", user_id, range_value, profile.sizes())
        return profile
