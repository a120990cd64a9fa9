"""
Exceptions raised by the Affinity Recs scoring core.
"""

from typing import Optional


class AffinityError(Exception):
    """Base class for all affinity errors."""


class ServiceError(AffinityError):
    """The ranking service was unreachable or returned an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TargetProfileError(AffinityError):
    """The target user's own profile could not be fetched."""

    def __init__(self, user_id: str, cause: Exception):
        super().__init__(f"Could not fetch profile for target user {user_id}: {cause}")
        self.user_id = user_id


class EmptyCandidateSetError(AffinityError):
    """No eligible users remain to compare against."""


class PrivacyRestrictedError(AffinityError):
    """The user's privacy settings do not allow profile comparison."""


class CooldownActiveError(AffinityError):
    """The invoking user must wait before running the command again."""

    def __init__(self, remaining_seconds: float):
        super().__init__(f"Command on cooldown for another {remaining_seconds:.1f}s")
        self.remaining_seconds = remaining_seconds
