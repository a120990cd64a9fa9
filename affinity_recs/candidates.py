"""
Candidate Users
===============

Identity types handed to the aggregator by the invoking layer, and the
eligibility filter applied before any profile is fetched.

Bot and unlinked accounts are removed by the caller; this module only drops
the target itself and users whose privacy settings forbid comparison.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from .errors import PrivacyRestrictedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsUser:
    """A resolved stats.fm identity."""
    user_id: str
    display_name: str
    profile_url: str = ""

    # Precomputed from the user's privacy settings by the caller
    can_compare: bool = True


# Candidates and targets share the same shape
Candidate = StatsUser


def check_target(target: StatsUser) -> None:
    """Raise PrivacyRestrictedError if the target hides their profile."""
    if not target.can_compare:
        raise PrivacyRestrictedError(
            f"{target.display_name}'s privacy settings do not allow profile comparison"
        )


def filter_candidates(target: StatsUser, candidates: Iterable[Candidate]) -> List[Candidate]:
    """
    Keep the candidates that can be compared with the target.

    Drops the target itself, private profiles and repeated user IDs while
    preserving the original order.

    Args:
        target: The user the affinity is computed for
        candidates: Resolved users in the caller's order

    Returns:
        Eligible candidates
    """
    eligible = []
    seen_ids = {target.user_id}
    for candidate in candidates:
        if candidate.user_id in seen_ids:
            logger.info("Skipping %s: same user as target or duplicate", candidate.display_name)
            continue
        if not candidate.can_compare:
            logger.info("Skipping %s: privacy settings", candidate.display_name)
            continue
        seen_ids.add(candidate.user_id)
        eligible.append(candidate)
    return eligible
