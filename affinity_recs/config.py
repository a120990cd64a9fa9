"""
Configuration and constants for the Affinity Recs scoring core.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

# =============================================================================
# STATS.FM API CONFIGURATION
# =============================================================================
STATSFM_API_URL = os.environ.get("STATSFM_API_URL", "https://api.stats.fm/api/v1")
STATSFM_API_KEY = os.environ.get("STATSFM_API_KEY", "")
STATSFM_TIMEOUT_SECONDS = float(os.environ.get("STATSFM_TIMEOUT_SECONDS", "30"))
USER_AGENT = "affinity-recs/1.0"

# =============================================================================
# CATEGORIES & LOOKBACK RANGES
# =============================================================================
CATEGORIES = ["genres", "artists", "albums", "tracks"]

# Service range value -> display label
RANGE_LABELS = {
    "today": "Today",
    "weeks": "Past 4 Weeks",
    "months": "Past 6 Months",
    "lifetime": "Lifetime",
}

# User-facing choice -> service range value
RANGE_CHOICES = {
    "today": "today",
    "4-weeks": "weeks",
    "6-months": "months",
    "lifetime": "lifetime",
}

DEFAULT_RANGE_CHOICE = "4-weeks"

# =============================================================================
# FETCH CONFIGURATION
# =============================================================================
@dataclass
class FetchConfig:
    """Pagination settings for top-list requests."""
    # Items requested per page
    page_size: int = 500

    # Stop once this many items are accumulated
    max_items: int = 5000

    # The service refuses offsets beyond this
    offset_cap: int = 10000

    # Service-side ordering of top items
    order_by: str = "TIME"

    # Minimum seconds between two HTTP requests from one client
    min_request_interval: float = 0.05

    # Retries per request on rate limiting and server errors, 0 disables
    max_retries: int = 3

    # urllib3 backoff factor between retries, Retry-After wins when sent
    retry_backoff: float = 0.3

    retry_statuses: Tuple[int, ...] = (429, 500, 502, 503, 504)

DEFAULT_FETCH_CONFIG = FetchConfig()

# =============================================================================
# SCORING CONFIGURATION
# =============================================================================
class PacNormalization(str, Enum):
    """Denominator used for the PAC rank-difference factor."""
    # max(len(reference), len(other)) - 1
    LONGEST = "longest"
    # len(reference) - 1, matches the legacy bot output
    REFERENCE = "reference"


@dataclass
class AffinityConfig:
    """Settings for the batch affinity aggregator."""
    # RBO persistence; close to 1 lets the deep tail matter
    rbo_p: float = 0.99

    # Pause between candidates, on top of the client throttle
    candidate_delay_seconds: float = 1.0

    pac_normalization: PacNormalization = PacNormalization.LONGEST

    categories: List[str] = field(default_factory=lambda: list(CATEGORIES))

    def __post_init__(self):
        if not 0 < self.rbo_p < 1:
            raise ValueError(f"rbo_p must be in (0, 1), got {self.rbo_p}")
        if self.candidate_delay_seconds < 0:
            raise ValueError("candidate_delay_seconds must not be negative")
        unknown = [c for c in self.categories if c not in CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown categories: {unknown}")
        self.pac_normalization = PacNormalization(self.pac_normalization)

DEFAULT_AFFINITY_CONFIG = AffinityConfig()

# =============================================================================
# COOLDOWN CONFIGURATION
# =============================================================================
COOLDOWN_SECONDS = int(os.environ.get("AFFINITY_COOLDOWN_SECONDS", "60"))
AFFINITY_COMMAND = "affinity"

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================
OUTPUT_FORMAT = "json"  # json, csv or simple
