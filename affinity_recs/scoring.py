"""
Affinity Scoring Engine
=======================

Scores how closely two users' ranked lists agree, per category, with two
independent methods:

1. PAC (position-weighted rank distance), reference list iterated
2. RBO (rank-biased overlap), symmetric, see rbo.py

Mathematical Formulation (PAC):
-------------------------------

For the item at rank r of the reference list (length n):

    w_r  = n - r + 1
    f_r  = 1                          if the item is missing from the other list
         = |r - r'| / (N - 1)         otherwise, r' its rank in the other list

    PAC  = 1 - Σ (w_r / Σw) × f_r

N is max(n, len(other)) under LONGEST normalization, n under REFERENCE.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np

from .config import (
    AffinityConfig,
    DEFAULT_AFFINITY_CONFIG,
    PacNormalization,
)
from .profiles import UserRankingProfile
from .rbo import rbo
from .utils import to_percent

logger = logging.getLogger(__name__)

# Raw PAC scores in (-0.005, 0) are rounding noise around a total mismatch
_NEGATIVE_NOISE = -0.005


def pac(
    reference: Sequence[str],
    other: Sequence[str],
    normalization: PacNormalization = PacNormalization.LONGEST,
) -> float:
    """
    Position-weighted similarity of `other` relative to `reference`.

    Args:
        reference: Base ranked list whose ranks are iterated
        other: Ranked list searched for each reference item
        normalization: Denominator policy for the rank difference

    Returns:
        Score in [0, 1]; 0 for an empty reference list
    """
    n = len(reference)
    if n == 0:
        return 0.0

    positions: Dict[str, int] = {}
    for rank, item in enumerate(other):
        positions.setdefault(item, rank)

    ranks = np.arange(n)
    other_ranks = np.array([positions.get(item, -1) for item in reference])
    weights = (n - ranks + 1).astype(float)

    if normalization == PacNormalization.LONGEST:
        span = max(n, len(other)) - 1
    else:
        span = n - 1

    present = other_ranks >= 0
    differences = np.ones(n)
    if span > 0:
        differences[present] = np.abs(ranks[present] - other_ranks[present]) / span
    else:
        # Single-item lists: a present item can only sit at rank 0
        differences[present] = 0.0

    total = float(np.dot(weights, differences) / weights.sum())
    score = 1.0 - total
    if _NEGATIVE_NOISE < score < 0:
        score = 0.0
    return float(np.clip(score, 0.0, 1.0))


@dataclass(frozen=True)
class CategoryScore:
    """PAC and RBO scores of one category, each in [0, 1]."""
    pac: float
    rbo: float

    @property
    def pac_percent(self) -> int:
        return to_percent(self.pac)

    @property
    def rbo_percent(self) -> int:
        return to_percent(self.rbo)


class AffinityScorer:
    """
    Computes both similarity methods for every configured category.
    """

    def __init__(self, config: AffinityConfig = DEFAULT_AFFINITY_CONFIG):
        self.config = config

    def score_profiles(
        self,
        target: UserRankingProfile,
        candidate: UserRankingProfile,
        label: Optional[str] = None,
    ) -> Dict[str, CategoryScore]:
        """
        Score a candidate profile against the target profile.

        Args:
            target: Profile used as the PAC reference
            candidate: Profile being compared
            label: Name used in log lines (defaults to the candidate's user ID)

        Returns:
            Mapping of category to CategoryScore
        """
        label = label or candidate.user_id
        scores = {}
        for category in self.config.categories:
            target_list = target.get(category)
            candidate_list = candidate.get(category)

            pac_value = pac(target_list, candidate_list, self.config.pac_normalization)
            rbo_value = rbo(self.config.rbo_p, target_list, candidate_list)

            logger.info("%s %s: pac=%.4f rbo=%.4f", label, category, pac_value, rbo_value)
            scores[category] = CategoryScore(pac=pac_value, rbo=rbo_value)
        return scores
