from __future__ import annotations

from dataclasses import asdict
import logging
from typing import Callable, Optional

from django.conf import settings
from django.core.cache import cache

from .data_processing import DashboardAggregates, build_aggregates
from .data_processing_io import MarketingDataError, fetch_marketing_data
from .marketing_data import MarketingData, content_fingerprint


logger = logging.getLogger(__name__)

IDLE = "idle"
LOADING = "loading"
READY = "ready"
ERROR = "error"


def snapshot_key(data: MarketingData) -> str:
    fingerprint = data.fingerprint or content_fingerprint(asdict(data))
    return f"dashboard:aggregates:{fingerprint}"


def get_aggregates(data: MarketingData) -> DashboardAggregates:
    '''
    Aggregates for ``data``, cached by content fingerprint so an unchanged
    snapshot is never re-aggregated and a changed one never served stale.
    '''
    key = snapshot_key(data)
    aggregates = cache.get(key)
    if aggregates is not None:
        logger.debug("Aggregate cache hit %s", key)
        return aggregates
    logger.debug("Aggregate cache miss %s", key)
    aggregates = build_aggregates(data)
    cache.set(key, aggregates, timeout=getattr(settings, "AGGREGATE_CACHE_TIMEOUT", 300))
    return aggregates


class SnapshotStore:
    '''
    Holds the one reachable snapshot for a page. ``load()`` fetches once and
    moves ``loading -> ready`` or ``loading -> error``; a later load replaces
    the snapshot outright. There is no retry.
    '''

    def __init__(self, fetcher: Optional[Callable[[], MarketingData]] = None):
        self._fetcher = fetcher or fetch_marketing_data
        self.state = IDLE
        self.snapshot: Optional[MarketingData] = None
        self.error: Optional[str] = None
        self.version = 0

    def load(self) -> "SnapshotStore":
        self.state = LOADING
        try:
            data = self._fetcher()
        except MarketingDataError as exc:
            logger.exception("Error loading marketing data")
            self.error = str(exc) or "Failed to load data"
            self.state = ERROR
            return self
        except Exception:
            self.error = "Failed to load data"
            self.state = ERROR
            raise

        self.snapshot = data
        self.error = None
        self.version += 1
        self.state = READY
        return self

    @property
    def loading(self) -> bool:
        return self.state == LOADING

    def aggregates(self) -> Optional[DashboardAggregates]:
        if self.state != READY or self.snapshot is None:
            return None
        return get_aggregates(self.snapshot)
