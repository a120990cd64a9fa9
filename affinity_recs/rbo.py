"""
Rank-Biased Overlap
===================

Incremental RBO estimator for two ranked lists of possibly unequal length.

Webber, Moffat and Zobel, "A Similarity Measure for Indefinite Rankings",
ACM TOIS 28.4 (2010). Implements the extrapolated estimate (RBO_ext) for
uneven lists in a single pass:

    rbo = sum_d (X_d / d) * (1-p) * p^(d-1)            observed prefix
        + ((X_l - X_s) / l + X_s / s) * p^l            extrapolated tail

where X_d is the overlap at depth d, s the length of the shorter list and l
the length of the longer one.
"""

import math
from typing import Dict, Hashable, Sequence


def calc_weight(p: float, d: int) -> float:
    """
    Share of the total RBO weight carried by the first d ranks.

    Useful for choosing p: with p=0.9 the top 10 ranks carry ~86% of the weight,
    with p=0.99 the top 100 ranks carry ~86%.
    """
    _check_p(p)
    if d < 1:
        raise ValueError("d must be at least 1")
    summa = sum(p ** i / i for i in range(1, d))
    return 1 - p ** (d - 1) + ((1 - p) / p) * d * (math.log(1 / (1 - p)) - summa)


def _check_p(p: float):
    if not 0 < p < 1:
        raise ValueError(f"p must be in (0, 1), got {p}")


class RankBiasedOverlap:
    """
    Single-use accumulator for one RBO computation.

    Feed aligned pairs with update() while both lists have elements, call
    end_short() when the shorter list runs out, then feed the rest of the
    longer list with update_uneven(). extrapolated() gives the final score.
    Use rbo() for the usual one-shot call.
    """

    def __init__(self, p: float):
        _check_p(p)
        self.p = p
        self.rbo = 0.0
        self.depth = 0
        self.overlap = 0
        self.short_depth = -1
        self.short_overlap = -1
        self.weight = (1 - p) / p
        # True = seen once, not yet matched; False = already matched
        self.seen: Dict[Hashable, bool] = {}

    def _mark(self, element: Hashable):
        if self.seen.get(element):
            self.overlap += 1
            self.seen[element] = False
        elif element not in self.seen:
            self.seen[element] = True

    def _advance(self):
        self.depth += 1
        self.weight *= self.p
        self.rbo += (self.overlap / self.depth) * self.weight

    def update(self, e1: Hashable, e2: Hashable):
        """Consume the elements at the next rank of both lists."""
        if self.short_depth != -1:
            raise RuntimeError("update() called after end_short()")
        if e1 == e2:
            self.overlap += 1
        else:
            self._mark(e1)
            self._mark(e2)
        self._advance()

    def end_short(self):
        """Checkpoint the state at the end of the shorter list."""
        self.short_depth = self.depth
        self.short_overlap = self.overlap

    def update_uneven(self, element: Hashable):
        """Consume the next element of the longer list only."""
        if self.short_depth == -1:
            raise RuntimeError("update_uneven() called before end_short()")
        if self.seen.get(element):
            self.overlap += 1
            self.seen[element] = False
        self._advance()
        self.rbo += (
            (self.short_overlap * (self.depth - self.short_depth))
            / (self.depth * self.short_depth)
        ) * self.weight

    def extrapolated(self) -> float:
        if self.short_depth == -1:
            self.end_short()
        if self.short_depth == 0:
            return 0.0
        pl = self.p ** self.depth
        score = self.rbo + (
            (self.overlap - self.short_overlap) / self.depth
            + self.short_overlap / self.short_depth
        ) * pl
        # Float noise can push identical lists a hair above 1
        return min(max(score, 0.0), 1.0)


def rbo(p: float, list_a: Sequence[Hashable], list_b: Sequence[Hashable]) -> float:
    """
    Extrapolated RBO of two ranked lists.

    Args:
        p: Persistence in (0, 1); small p favours the top ranks, p near 1
           spreads weight deep into the lists
        list_a: Ranked list, best first
        list_b: Ranked list, best first

    Returns:
        Similarity in [0, 1]; 0 when either list is empty
    """
    _check_p(p)
    short, long = (list_a, list_b) if len(list_a) <= len(list_b) else (list_b, list_a)
    if not short:
        return 0.0

    state = RankBiasedOverlap(p)
    for e1, e2 in zip(short, long):
        state.update(e1, e2)
    state.end_short()
    for element in long[len(short):]:
        state.update_uneven(element)
    return state.extrapolated()
