"""
Exceptions raised by the KisanMitr services.

Routers translate these into JSON error payloads; the aggregator swallows
SourceError per source in best-effort mode.
"""
from typing import Iterable, List, Optional


class KisanMitrError(Exception):
    """Base exception for all KisanMitr errors."""
    pass


class ConfigurationError(KisanMitrError):
    """Raised when a required setting (API key, base URL) is missing."""
    pass


class ProfileNotFoundError(KisanMitrError):
    def __init__(self, user_id: str):
        super().__init__("User not found")
        self.user_id = user_id


class ProfileExistsError(KisanMitrError):
    def __init__(self, user_id: str):
        super().__init__("Profile already exists for this user")
        self.user_id = user_id


class OnboardingIncompleteError(KisanMitrError):
    """Raised when a user exists but has no completed farmer profile."""
    pass


class SourceError(KisanMitrError):
    """An upstream data provider call failed."""

    def __init__(self, message: str, endpoint: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class AggregationError(KisanMitrError):
    """Strict aggregation could not collect every expected source."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing: List[str] = list(missing)
