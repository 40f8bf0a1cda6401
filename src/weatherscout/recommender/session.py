"""
Map refresh session.

A map view re-runs the pipeline whenever radius, origin, date offset or the condition
filter changes. Refreshes may overlap (e.g. a slider drag on a threaded server); the
session hands out a generation token per refresh and publishes a result only if no
newer refresh has started since. Superseded results are discarded, never merged.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from weatherscout.domain.models import MapResult, MarkerRequest
from weatherscout.recommender.pipeline import build_map

logger = logging.getLogger(__name__)


class MapSession:
    def __init__(self, builder: Callable[[MarkerRequest], MapResult] | None = None) -> None:
        self._builder = builder or build_map
        self._lock = threading.Lock()
        self._generation = 0
        self._current: MapResult | None = None
        self._current_generation = 0

    @property
    def current(self) -> MapResult | None:
        """The authoritative result (latest generation that completed)."""
        with self._lock:
            return self._current

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def begin(self) -> int:
        """Start a refresh; returns its generation token."""
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation

    def publish(self, token: int, result: MapResult) -> bool:
        """Publish `result` if `token` is still the latest generation; returns whether it was."""
        with self._lock:
            if token != self._generation:
                logger.debug("Discarding superseded map result (generation %d < %d)", token, self._generation)
                return False
            self._current = result
            self._current_generation = token
            return True

    def refresh(self, request: MarkerRequest) -> MapResult | None:
        """Run one refresh; returns the result, or None if a newer refresh superseded it."""
        token = self.begin()
        result = self._builder(request)
        return result if self.publish(token, result) else None
