"""
Dependency injection container for the application.
Constructs singletons and provides them to routes/handlers.
"""
import logging

from app.config import settings
from app.utils.logging import get_logger as _named_logger
from core.adapters.agromonitoring import AgromonitoringSources
from core.services.aggregator import FarmerDataAggregator
from core.services.insights import InsightsService
from core.services.profiles import ProfileStore

# Singletons - created once and reused
_profile_store = None
_sources = None
_aggregator = None
_insights_service = None


def get_logger() -> logging.Logger:
    """Logger handed to route handlers; tests override it to capture records."""
    return _named_logger("kisanmitr.api")


def get_profile_store() -> ProfileStore:
    """Get singleton profile store."""
    global _profile_store
    if _profile_store is None:
        _profile_store = ProfileStore(logger=_named_logger("kisanmitr.profiles"))
    return _profile_store


def get_sources() -> AgromonitoringSources:
    """Get singleton Agromonitoring data sources."""
    global _sources
    if _sources is None:
        _sources = AgromonitoringSources(get_profile_store(), logger=_named_logger("kisanmitr.sources"))
    return _sources


def get_aggregator() -> FarmerDataAggregator:
    """Get singleton farmer data aggregator."""
    global _aggregator
    if _aggregator is None:
        _aggregator = FarmerDataAggregator(
            store=get_profile_store(),
            sources=get_sources(),
            logger=_named_logger("kisanmitr.aggregator"),
            source_timeout=settings.SOURCE_TIMEOUT_SEC,
            history_cap_days=settings.MAX_HISTORY_DAYS,
        )
    return _aggregator


def get_insights_service() -> InsightsService:
    """Get singleton insights service."""
    global _insights_service
    if _insights_service is None:
        _insights_service = InsightsService(logger=_named_logger("kisanmitr.insights"))
    return _insights_service
