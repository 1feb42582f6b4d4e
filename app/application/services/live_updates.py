import itertools
import logging
import threading
from typing import Callable, Dict, List, Tuple

from ..ports.appointments_repo import AppointmentDto, AppointmentQuery
from .dashboard_stats import sort_appointments

logger = logging.getLogger(__name__)

Listener = Callable[[List[AppointmentDto]], None]
SnapshotLoader = Callable[[AppointmentQuery], List[AppointmentDto]]


class Subscription:
    def __init__(self, feed: "AppointmentFeed", key: int):
        self._feed = feed
        self._key = key

    @property
    def active(self) -> bool:
        return self._feed._has(self._key)

    def cancel(self) -> None:
        self._feed._remove(self._key)


class AppointmentFeed:
    """Live query hub.

    A listener receives the full, sorted result set of its query once on
    subscribe and again after every published change that matches the query.
    Snapshots are re-read from the store, so a listener always sees the
    latest committed state.
    """

    def __init__(self, load_snapshot: SnapshotLoader):
        self._load_snapshot = load_snapshot
        self._subscriptions: Dict[int, Tuple[AppointmentQuery, Listener]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._delivery = threading.RLock()

    def subscribe(self, query: AppointmentQuery, listener: Listener) -> Subscription:
        with self._lock:
            key = next(self._ids)
            self._subscriptions[key] = (query, listener)
        with self._delivery:
            self._deliver(query, listener)
        return Subscription(self, key)

    def publish(self, changed: AppointmentDto) -> None:
        with self._lock:
            targets = [(q, l) for q, l in self._subscriptions.values() if q.matches(changed)]
        with self._delivery:
            for query, listener in targets:
                self._deliver(query, listener)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _deliver(self, query: AppointmentQuery, listener: Listener) -> None:
        snapshot = sort_appointments(self._load_snapshot(query))
        try:
            listener(snapshot)
        except Exception:
            logger.exception("Appointment listener failed")

    def _has(self, key: int) -> bool:
        with self._lock:
            return key in self._subscriptions

    def _remove(self, key: int) -> None:
        with self._lock:
            self._subscriptions.pop(key, None)
