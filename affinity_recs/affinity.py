"""
Batch Affinity Aggregator
=========================

Orchestrates the complete affinity pipeline for one request:
1. Check the target's privacy flag and cooldown
2. Filter the candidate population
3. Fetch the target's ranking profile (fatal on failure)
4. For each candidate, one at a time:
   fetch the profile, score every category with PAC and RBO
5. Return the pair results, optionally ranked by overall affinity

Candidates are processed sequentially with a fixed pause between them; the
ranking service is rate limited and must never see the batch in parallel.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional

import numpy as np

from .candidates import Candidate, StatsUser, check_target, filter_candidates
from .config import AFFINITY_COMMAND, AffinityConfig, DEFAULT_AFFINITY_CONFIG
from .errors import (
    CooldownActiveError,
    EmptyCandidateSetError,
    ServiceError,
    TargetProfileError,
)
from .profiles import resolve_range
from .scoring import AffinityScorer, CategoryScore
from .statsfm_client import StatsfmClient
from .utils import CooldownStore

logger = logging.getLogger(__name__)

ProgressHook = Callable[[Candidate, int, int], None]


@dataclass(frozen=True)
class AffinityPairResult:
    """Scores of one candidate against the target."""
    candidate: Candidate
    scores: Mapping[str, CategoryScore]

    # 0 until the batch is ranked
    overall_rank: int = 0

    def __post_init__(self):
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))

    @property
    def mean_rbo(self) -> float:
        return float(np.mean([s.rbo for s in self.scores.values()])) if self.scores else 0.0

    @property
    def mean_pac(self) -> float:
        return float(np.mean([s.pac for s in self.scores.values()])) if self.scores else 0.0

    def to_dict(self) -> Dict:
        return {
            "overall_rank": self.overall_rank,
            "user_id": self.candidate.user_id,
            "display_name": self.candidate.display_name,
            "profile_url": self.candidate.profile_url,
            "pac": {c: s.pac_percent for c, s in self.scores.items()},
            "rbo": {c: s.rbo_percent for c, s in self.scores.items()},
        }


@dataclass
class SkippedCandidate:
    """A candidate left out of the results, with the reason."""
    candidate: Candidate
    reason: str


@dataclass
class AffinityOutput:
    """Complete affinity output for one request."""
    target: StatsUser
    range_value: str
    range_label: str

    # In candidate order
    results: List[AffinityPairResult] = field(default_factory=list)
    skipped: List[SkippedCandidate] = field(default_factory=list)
    cancelled: bool = False

    def ranked(self) -> List[AffinityPairResult]:
        """
        Results sorted by overall affinity, with overall_rank filled in.

        Sort key: mean RBO across categories (descending), then mean PAC
        (descending), then display name.
        """
        ordered = sorted(
            self.results,
            key=lambda r: (-r.mean_rbo, -r.mean_pac, r.candidate.display_name.lower()),
        )
        return [
            AffinityPairResult(candidate=r.candidate, scores=r.scores, overall_rank=rank)
            for rank, r in enumerate(ordered, 1)
        ]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": {
                "user_id": self.target.user_id,
                "display_name": self.target.display_name,
                "profile_url": self.target.profile_url,
            },
            "range": self.range_value,
            "range_label": self.range_label,
            "title": f"{self.target.display_name}'s {self.range_label} Affinities",
            "cancelled": self.cancelled,
            "affinities": [r.to_dict() for r in self.ranked()],
            "skipped": [
                {"user_id": s.candidate.user_id, "display_name": s.candidate.display_name, "reason": s.reason}
                for s in self.skipped
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class AffinityAggregator:
    """
    Computes affinities between a target user and a population of candidates.

    Usage:
        aggregator = AffinityAggregator()
        output = aggregator.run(target, "4-weeks", candidates)
        print(output.to_json())
    """

    def __init__(
        self,
        client: Optional[StatsfmClient] = None,
        config: AffinityConfig = DEFAULT_AFFINITY_CONFIG,
        cooldowns: Optional[CooldownStore] = None,
    ):
        """
        Initialize aggregator.

        Args:
            client: Pre-configured stats.fm client (creates new if None)
            config: Scoring and throttling configuration
            cooldowns: Optional cooldown store shared by the invoking layer
        """
        self.client = client or StatsfmClient()
        self.config = config
        self.scorer = AffinityScorer(config)
        self.cooldowns = cooldowns

    def run(
        self,
        target: StatsUser,
        range_choice: str,
        candidates: Iterable[Candidate],
        scope: str = "global",
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressHook] = None,
    ) -> AffinityOutput:
        """
        Compute affinities of the target against every eligible candidate.

        Args:
            target: User the affinities are computed for
            range_choice: Lookback range ("4-weeks", "6-months", "lifetime", ...)
            candidates: Resolved candidate users, bots and unlinked already removed
            scope: Cooldown scope, e.g. the server the command ran in
            cancel_event: When set, no further candidate is started
            on_progress: Called with (candidate, index, total) before each fetch

        Returns:
            AffinityOutput with results in candidate order

        Raises:
            PrivacyRestrictedError: Target hides their profile
            CooldownActiveError: Target ran the command too recently
            EmptyCandidateSetError: Nobody left to compare with
            TargetProfileError: Target's own profile could not be fetched
        """
        check_target(target)
        self._check_cooldown(target, scope)
        range_value, range_label = resolve_range(range_choice)

        eligible = filter_candidates(target, candidates)
        if not eligible:
            raise EmptyCandidateSetError("No other stats.fm users to compare with")

        logger.info("Computing %s affinities for %s against %d users",
                    range_label, target.display_name, len(eligible))

        try:
            target_profile = self.client.fetch_profile(
                target.user_id, range_value, self.config.categories
            )
        except ServiceError as e:
            raise TargetProfileError(target.user_id, e) from e

        output = AffinityOutput(target=target, range_value=range_value, range_label=range_label)
        if self.cooldowns is not None:
            self.cooldowns.set(AFFINITY_COMMAND, scope, target.user_id)

        for index, candidate in enumerate(eligible):
            if index > 0 and self._pause(cancel_event):
                output.cancelled = True
                break
            if cancel_event is not None and cancel_event.is_set():
                output.cancelled = True
                break

            if on_progress is not None:
                on_progress(candidate, index, len(eligible))

            try:
                profile = self.client.fetch_profile(
                    candidate.user_id, range_value, self.config.categories
                )
            except ServiceError as e:
                logger.warning("Failed to fetch data for %s, skipping: %s", candidate.display_name, e)
                output.skipped.append(SkippedCandidate(candidate=candidate, reason=str(e)))
                continue

            scores = self.scorer.score_profiles(target_profile, profile, label=candidate.display_name)
            output.results.append(AffinityPairResult(candidate=candidate, scores=scores))

        if output.cancelled:
            logger.info("Affinity run cancelled after %d of %d users",
                        len(output.results) + len(output.skipped), len(eligible))
        return output

    def _check_cooldown(self, target: StatsUser, scope: str):
        if self.cooldowns is None:
            return
        remaining = self.cooldowns.remaining(AFFINITY_COMMAND, scope, target.user_id)
        if remaining is not None:
            raise CooldownActiveError(remaining)

    def _pause(self, cancel_event: Optional[threading.Event]) -> bool:
        """Wait the inter-candidate delay. Returns True if cancelled meanwhile."""
        delay = self.config.candidate_delay_seconds
        if delay <= 0:
            return False
        if cancel_event is not None:
            return cancel_event.wait(delay)
        time.sleep(delay)
        return False
