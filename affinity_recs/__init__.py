"""
Affinity Recs - Music Taste Affinity Between Users
==================================================

Compares users' ranked listening preferences (genres, artists, albums,
tracks) pulled from stats.fm and ranks a population of users by how closely
their taste matches a target user.

Modules:
    - config: Configuration and constants
    - errors: Exception hierarchy
    - statsfm_client: stats.fm API wrapper and ranked-list fetcher
    - profiles: Ranked lists and per-user ranking profiles
    - scoring: PAC rank-distance similarity and per-category scoring
    - rbo: Rank-biased overlap estimator
    - candidates: Candidate identities and eligibility filtering
    - affinity: Batch affinity aggregator
    - utils: Cooldown store and helpers
    - cli: Command-line interface
"""

__version__ = "1.0.0"
__author__ = "Affinity Recs Team"
