"""
Ranking Profiles
================

Data model for per-user ranked preferences:

    RankedList          Immutable tuple of item identifiers, index 0 = most listened
    UserRankingProfile  One RankedList per category for a user and lookback range

Identifier rule (applied per category, never inferred from payload shape):
    genres   -> item["genre"]["tag"]
    artists  -> str(item["artist"]["id"])
    albums   -> str(item["album"]["id"])
    tracks   -> str(item["track"]["id"])
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Tuple

from .config import CATEGORIES, RANGE_CHOICES, RANGE_LABELS
from .errors import ServiceError

RankedList = Tuple[str, ...]


def _genre_id(item: Dict) -> str:
    return item["genre"]["tag"]


def _numeric_id(key: str) -> Callable[[Dict], str]:
    def extract(item: Dict) -> str:
        return str(item[key]["id"])
    return extract


ID_EXTRACTORS: Dict[str, Callable[[Dict], str]] = {
    "genres": _genre_id,
    "artists": _numeric_id("artist"),
    "albums": _numeric_id("album"),
    "tracks": _numeric_id("track"),
}


def validate_category(category: str) -> str:
    """Return the category unchanged, or raise ValueError if unknown."""
    if category not in ID_EXTRACTORS:
        raise ValueError(f"Unknown category {category!r}; expected one of {CATEGORIES}")
    return category


def extract_ids(category: str, items: Iterable[Dict]) -> List[str]:
    """
    Map raw top-list items to identifier strings for a known category.

    Args:
        category: One of genres, artists, albums, tracks
        items: Item dictionaries as returned by the ranking service

    Returns:
        Identifiers in the same order as the items

    Raises:
        ServiceError: If an item lacks the field its category requires
    """
    extract = ID_EXTRACTORS[validate_category(category)]
    ids = []
    for position, item in enumerate(items):
        try:
            ids.append(extract(item))
        except (KeyError, TypeError) as e:
            raise ServiceError(
                f"Malformed {category} item at position {position}: missing {e}"
            ) from e
    return ids


def resolve_range(choice: str) -> Tuple[str, str]:
    """
    Resolve a user-facing range choice to (service_value, display_label).

    Accepts both the choice strings ("4-weeks", "6-months", "lifetime", "today")
    and raw service values ("weeks", "months", ...).
    """
    key = choice.strip().lower()
    if key in RANGE_CHOICES:
        value = RANGE_CHOICES[key]
    elif key in RANGE_LABELS:
        value = key
    else:
        raise ValueError(
            f"Unknown range {choice!r}; expected one of {sorted(RANGE_CHOICES)}"
        )
    return value, RANGE_LABELS[value]


@dataclass(frozen=True)
class UserRankingProfile:
    """Ranked lists of one user for one lookback range."""
    user_id: str
    range: str
    lists: Mapping[str, RankedList] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the lists so nobody can reorder a rank after the fact
        frozen = {category: tuple(ids) for category, ids in self.lists.items()}
        object.__setattr__(self, "lists", MappingProxyType(frozen))

    def get(self, category: str) -> RankedList:
        return self.lists.get(validate_category(category), ())

    @property
    def categories(self) -> List[str]:
        return [c for c in CATEGORIES if c in self.lists]

    def sizes(self) -> Dict[str, int]:
        return {category: len(ids) for category, ids in self.lists.items()}
