"""Push and pull propagation of store snapshots to observers."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable

from kitchen_screen.store import OrderStore, Snapshot

logger = logging.getLogger(__name__)

Observer = Callable[[Snapshot], None]


class TransportFailure(RuntimeError):
    """An observer could not deliver a snapshot to its destination."""


class _Subscription:
    """
    One push observer with its own delivery thread.

    Offered snapshots are coalesced into a single pending slot, so a slow
    observer only ever receives the newest snapshot once it catches up and
    never holds up the thread that changed the store.
    """

    def __init__(self, token: int, observer: Observer, name: str) -> None:
        self.token = token
        self.observer = observer
        self.name = name
        self.last_version = -1
        self._cond = threading.Condition()
        self._pending: Snapshot | None = None
        self._busy = False
        self._closed = False
        self._thread = threading.Thread(target=self._drain, name=f"push-{name}", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def offer(self, snap: Snapshot) -> None:
        with self._cond:
            if self._closed:
                return
            if self._pending is None or snap.version > self._pending.version:
                self._pending = snap
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._pending = None
            self._cond.notify_all()

    def wait_idle(self, timeout: float | None) -> bool:
        with self._cond:
            return self._cond.wait_for(
                lambda: self._closed or (self._pending is None and not self._busy),
                timeout,
            )

    def deliver(self, snap: Snapshot) -> None:
        # Only the delivery thread calls this outside of tests.
        if snap.version <= self.last_version:
            return
        try:
            self.observer(snap)
        except TransportFailure as exc:
            logger.warning("delivery failed observer=%s version=%d: %s", self.name, snap.version, exc)
            return
        except Exception:
            logger.exception("observer crashed observer=%s version=%d", self.name, snap.version)
            return
        self.last_version = snap.version

    def _drain(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._closed or self._pending is not None)
                if self._closed:
                    return
                snap, self._pending = self._pending, None
                self._busy = True
            try:
                self.deliver(snap)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()


class BroadcastChannel:
    """
    Keeps every observer's view eventually consistent with the store.

    Pull observers call `pull()` whenever they like. Push observers are
    registered with `subscribe()` and receive a snapshot on subscription and
    after every store change, on their own delivery thread. Delivery to a
    single observer is monotonic: a snapshot whose version is not newer than
    the last one delivered to that observer is skipped.
    """

    def __init__(self, store: OrderStore) -> None:
        self.store = store
        self._lock = threading.Lock()
        self._subscriptions: dict[int, _Subscription] = {}
        self._tokens = itertools.count(1)
        store.add_listener(self.on_store_changed)

    def subscribe(self, observer: Observer, name: str = "") -> int:
        with self._lock:
            token = next(self._tokens)
            sub = _Subscription(token, observer, name or f"observer-{token}")
            self._subscriptions[token] = sub
        sub.start()
        logger.info("observer subscribed name=%s", sub.name)
        sub.offer(self.store.versioned_snapshot())
        return token

    def unsubscribe(self, token: int) -> bool:
        with self._lock:
            sub = self._subscriptions.pop(token, None)
        if sub is None:
            return False
        sub.close()
        logger.info("observer unsubscribed name=%s", sub.name)
        return True

    def close(self) -> None:
        with self._lock:
            tokens = list(self._subscriptions)
        for token in tokens:
            self.unsubscribe(token)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def pull(self) -> Snapshot:
        return self.store.versioned_snapshot()

    def on_store_changed(self) -> None:
        snap = self.store.versioned_snapshot()
        with self._lock:
            subs = list(self._subscriptions.values())
        for sub in subs:
            sub.offer(snap)

    def flush(self, timeout: float | None = 5.0) -> bool:
        """Wait until every observer has handled its pending snapshot."""
        with self._lock:
            subs = list(self._subscriptions.values())
        return all(sub.wait_idle(timeout) for sub in subs)


class PeriodicNormalizer:
    """Background thread bounding staleness for pull-only observers."""

    def __init__(
        self,
        store: OrderStore,
        interval_seconds: float,
        sweepers: list[Callable[[], int]] | None = None,
    ) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self.sweepers = list(sweepers or [])
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> bool:
        changed = self.store.normalize()
        for sweep in self.sweepers:
            try:
                removed = sweep()
            except Exception:
                logger.exception("sweeper failed")
                continue
            if removed:
                logger.debug("sweep removed %d entries", removed)
        return changed

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="periodic-normalizer", daemon=True)
        self._thread.start()
        logger.info("periodic normalizer running interval=%ss", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("periodic normalization failed")
