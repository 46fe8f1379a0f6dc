"""
Request Dispatcher.

Answers a batch of GET / GETNEXT / SET requests against a single
snapshot of the apcupsd data. Errors are recorded on the request
they belong to; nothing here raises for a bad OID.
"""

import logging
from typing import Iterator, List, Tuple

from ..core.models import (
    OID,
    Request,
    RequestError,
    RequestMode,
    Snapshot,
    TypedValue,
)
from ..core.oid_chain import iter_chain, next_oid
from ..core.snapshot_cache import SnapshotCache
from .mib_definitions import tuple_to_oid


logger = logging.getLogger(__name__)


class RequestDispatcher:
    """Serves request batches from a SnapshotCache."""

    def __init__(self, cache: SnapshotCache):
        self.cache = cache

    def snapshot(self) -> Snapshot:
        """Snapshot a whole batch is answered from, refreshed if due."""
        return self.cache.refresh()

    def dispatch(self, mode: RequestMode, requests: List[Request]) -> List[Request]:
        """Refresh once, then answer every request in the batch."""
        return self.answer(self.snapshot(), mode, requests)

    def answer(
        self,
        snapshot: Snapshot,
        mode: RequestMode,
        requests: List[Request],
    ) -> List[Request]:
        """Answer ``requests`` in place against ``snapshot``."""
        logger.debug(f"Processing a {mode.value} request for {len(requests)} OIDs")

        for request in requests:
            logger.debug(f"Processing request for {tuple_to_oid(request.oid)}")
            if mode == RequestMode.GET:
                self._get(snapshot, request)
            elif mode == RequestMode.GETNEXT:
                self._get_next(snapshot, request)
            elif mode == RequestMode.GETBULK:
                # Bulk requests are split into GETNEXTs before they get here
                logger.debug("Ignoring GETBULK request")
            else:
                self._set(snapshot, request)

        return requests

    def _get(self, snapshot: Snapshot, request: Request):
        typed = snapshot.data.get(request.oid)
        if typed is not None:
            self._serve(request, request.oid, typed)
            return

        # Accept scalar requests that left off the ".0" instance
        instance = request.oid + (0,)
        typed = snapshot.data.get(instance)
        if typed is not None:
            self._serve(request, instance, typed)
            return

        logger.debug("  GET no value")
        request.set_error(RequestError.NO_SUCH_NAME)

    def _get_next(self, snapshot: Snapshot, request: Request):
        oid = next_oid(snapshot.chain, request.oid)
        if oid is None:
            # TODO: report end of our subtree separately so the host can
            # carry the walk on into the next registered subtree
            logger.debug("  GETNEXT no next value")
            request.set_error(RequestError.NO_SUCH_NAME)
            return
        self._serve(request, oid, snapshot.data[oid])

    def _set(self, snapshot: Snapshot, request: Request):
        if request.oid in snapshot.data:
            request.set_error(RequestError.READ_ONLY)
        else:
            request.set_error(RequestError.NO_SUCH_NAME)

    @staticmethod
    def _serve(request: Request, oid: OID, typed: TypedValue):
        logger.debug(f"  Returning {tuple_to_oid(oid)}: {typed.value}")
        request.set_oid(oid)
        request.set_value(typed)

    @staticmethod
    def walk(snapshot: Snapshot) -> Iterator[Tuple[OID, TypedValue]]:
        """Every populated OID with its value, in GETNEXT order."""
        for oid in iter_chain(snapshot.chain):
            yield oid, snapshot.data[oid]
