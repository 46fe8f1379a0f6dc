"""
Snapshot Cache - rate-limited view of the apcupsd status.

Fetches from apcupsd no more often than the configured interval,
keeps serving the last good snapshot while apcupsd is unreachable,
and drops it once it is too old to be trusted.
"""

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional, Tuple

from ..collectors.apcupsd_collector import (
    FeedError,
    FeedFramingError,
    FeedTimeoutError,
)
from .converters import clamp, convert
from .models import EMPTY_SNAPSHOT, OID, Snapshot, TypedValue
from .oid_chain import build_chain

if TYPE_CHECKING:
    from ..agent.mib_definitions import MIBDefinitions
    from ..collectors.apcupsd_collector import ApcupsdCollector


logger = logging.getLogger(__name__)


class SnapshotCache:
    """
    Owner of the current Snapshot.

    Readers take a reference from ``refresh()`` or ``snapshot`` and never
    see it change underneath them: a new fetch swaps in a whole new
    Snapshot instead of editing the old one.
    """

    def __init__(
        self,
        collector: "ApcupsdCollector",
        mib: "MIBDefinitions",
        fetch_interval: float = 20,
        stale_factor: float = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.collector = collector
        self.mib = mib
        self.fetch_interval = fetch_interval
        self.stale_factor = stale_factor
        self._clock = clock
        self._snapshot: Snapshot = EMPTY_SNAPSHOT
        self._last_fetch: Optional[float] = None
        self._last_attempt: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot, without triggering a fetch."""
        return self._snapshot

    @property
    def last_fetch(self) -> Optional[float]:
        """Clock time of the last successful fetch."""
        return self._last_fetch

    @property
    def max_age(self) -> float:
        return self.stale_factor * self.fetch_interval

    def refresh(self) -> Snapshot:
        """
        Return a snapshot no older than the fetch interval if apcupsd allows.

        Within the interval of the previous attempt no network I/O is done.
        Failures keep the previous snapshot, up to ``max_age`` after the
        last success, after which the cache is emptied.
        """
        with self._lock:
            now = self._clock()
            if self._last_attempt is not None and now - self._last_attempt < self.fetch_interval:
                logger.debug(
                    f"Only {now - self._last_attempt:.1f}s since last fetch, "
                    f"interval is {self.fetch_interval}s"
                )
            else:
                self._last_attempt = now
                self._fetch(now)

            self._expire(self._clock())
            return self._snapshot

    def clear(self):
        """Forget cached data and fetch on the next refresh."""
        with self._lock:
            self._snapshot = EMPTY_SNAPSHOT
            self._last_fetch = None
            self._last_attempt = None

    def _fetch(self, now: float):
        try:
            records = self.collector.fetch()
        except FeedTimeoutError as e:
            logger.warning(f"Timed out waiting for response from apcupsd: {e}")
            return
        except FeedFramingError as e:
            logger.warning(f"Incomplete status report from apcupsd: {e}")
            return
        except FeedError as e:
            logger.warning(f"Error talking to apcupsd: {e}")
            return

        self._snapshot = self.build_snapshot(records, now)
        self._last_fetch = now
        logger.info(f"Fetched {len(self._snapshot)} OIDs from apcupsd")

    def _expire(self, now: float):
        if self._last_fetch is not None and now - self._last_fetch <= self.max_age:
            return
        if not self._snapshot.is_empty:
            logger.warning("No comms with apcupsd in a long time. Discarding cached data")
        self._snapshot = EMPTY_SNAPSHOT

    def build_snapshot(
        self,
        records: Iterable[Tuple[str, str]],
        fetched_at: Optional[float] = None,
    ) -> Snapshot:
        """Convert status records into a new Snapshot with its GETNEXT chain."""
        data: Dict[OID, TypedValue] = {}
        for name, raw in records:
            oids = self.mib.oids_for(name)
            if not oids:
                logger.debug(f"Ignoring unmapped apcupsd field {name}")
                continue
            for oid in oids:
                info = self.mib.oid_info[oid]
                value = clamp(info.value_type, convert(info.conversion, raw))
                data[oid] = TypedValue(info.value_type, value)

        return Snapshot(data=data, chain=build_chain(data), fetched_at=fetched_at)
