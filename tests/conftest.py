"""
Shared fakes for the test suite.

No test talks to the network: the HTTP layer gets a fake session and the
aggregator gets a fake client that serves canned ranking profiles.
"""

from typing import Callable, Dict, Iterable, List, Optional

import pytest
import requests

from affinity_recs.config import CATEGORIES, FetchConfig
from affinity_recs.errors import ServiceError
from affinity_recs.profiles import UserRankingProfile
from affinity_recs.statsfm_client import StatsfmClient


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code: int = 200, invalid_json: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Records every GET and answers it with `handler(url, params)`."""

    def __init__(self, handler: Callable[[str, Dict], FakeResponse]):
        self.handler = handler
        self.headers: Dict[str, str] = {}
        self.calls: List[tuple] = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), timeout))
        return self.handler(url, params or {})


def make_items(category: str, ids: Iterable) -> List[Dict]:
    """Build raw top-list items the way the service shapes them."""
    if category == "genres":
        return [{"position": i + 1, "genre": {"tag": tag}} for i, tag in enumerate(ids)]
    key = category[:-1]
    return [{"position": i + 1, key: {"id": item_id, "name": f"{key} {item_id}"}} for i, item_id in enumerate(ids)]


class FakeStatsfmClient:
    """Serves canned profiles; users listed in `failing` raise ServiceError."""

    def __init__(self, profiles: Dict[str, Dict[str, List[str]]], failing: Iterable[str] = ()):
        self.profiles = profiles
        self.failing = set(failing)
        self.calls: List[str] = []

    def fetch_profile(self, user_id: str, range_value: str,
                      categories: Optional[List[str]] = None) -> UserRankingProfile:
        self.calls.append(user_id)
        if user_id in self.failing:
            raise ServiceError(f"/users/{user_id}/top/tracks returned HTTP 500", status_code=500)
        lists = self.profiles.get(user_id, {})
        return UserRankingProfile(
            user_id=user_id,
            range=range_value,
            lists={c: lists.get(c, []) for c in (categories or CATEGORIES)},
        )


@pytest.fixture
def fast_fetch_config() -> FetchConfig:
    return FetchConfig(min_request_interval=0.0)


@pytest.fixture
def make_client(fast_fetch_config):
    """Factory for a StatsfmClient wired to a FakeSession."""
    def factory(handler, fetch_config: Optional[FetchConfig] = None, **kwargs):
        session = FakeSession(handler)
        client = StatsfmClient(
            base_url="https://api.test/v1",
            fetch_config=fetch_config or fast_fetch_config,
            session=session,
            **kwargs,
        )
        return client, session
    return factory


@pytest.fixture
def sample_profiles() -> Dict[str, Dict[str, List[str]]]:
    return {
        "target": {
            "genres": ["pop", "rock", "indie", "jazz"],
            "artists": ["1", "2", "3", "4"],
            "albums": ["10", "20", "30", "40"],
            "tracks": ["100", "200", "300", "400"],
        },
        "twin": {
            "genres": ["pop", "rock", "indie", "jazz"],
            "artists": ["1", "2", "3", "4"],
            "albums": ["10", "20", "30", "40"],
            "tracks": ["100", "200", "300", "400"],
        },
        "mirror": {
            "genres": ["jazz", "indie", "rock", "pop"],
            "artists": ["4", "3", "2", "1"],
            "albums": ["40", "30", "20", "10"],
            "tracks": ["400", "300", "200", "100"],
        },
        "stranger": {
            "genres": ["metal", "noise"],
            "artists": ["7", "8"],
            "albums": ["70", "80"],
            "tracks": ["700", "800"],
        },
        "partial": {
            "genres": ["pop", "metal", "rock"],
            "artists": ["1", "9", "2"],
            "albums": ["10", "90"],
            "tracks": ["100", "900", "200", "999", "300"],
        },
    }
