"""Local key-value persistence with cross-session change notifications.

``KeyValueStore`` plays the part of the browser's local storage: string keys
mapped to JSON text, kept in a single SQLite file. ``PersistedState`` wraps
one key as a stateful value that loads on creation, saves on every update and
follows writes made by other sessions.
"""
import copy
import json
import logging
import sqlite3
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Optional

from miro import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    key: str
    old_value: Optional[str]
    new_value: Optional[str]
    origin: Any = None


class _Subscription:
    """Listener registration that does not keep its owner alive.

    Python bound methods are held weakly so a state cell left behind by a
    closed session drops out of the listener list once it is garbage
    collected. Functions and built-in methods such as ``list.append`` are held
    strongly.
    """

    def __init__(self, listener, owner=None):
        if hasattr(listener, "__func__"):
            self._listener = weakref.WeakMethod(listener)
        else:
            self._listener = lambda: listener
        self._owner = weakref.ref(owner) if owner is not None else None

    def listener(self):
        return self._listener()

    def alive(self):
        return self._listener() is not None

    def owned_by(self, origin):
        return self._owner is not None and origin is not None and self._owner() is origin


class KeyValueStore:
    """Thread-safe string store backed by SQLite."""

    def __init__(self, path=None):
        self.path = str(path or config.DB_PATH)
        self._lock = threading.RLock()
        self._listeners = []
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_db()
        self._seen = self._snapshot()

    def _init_db(self):
        with self._lock:
            c = self._conn.cursor()
            c.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    version INTEGER NOT NULL
                )
            ''')
            # Monotonic write clock shared by every connection on the file
            c.execute('''
                CREATE TABLE IF NOT EXISTS kv_clock (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    tick INTEGER NOT NULL
                )
            ''')
            c.execute("INSERT OR IGNORE INTO kv_clock (id, tick) VALUES (1, 0)")
            self._conn.commit()

    def _next_tick(self, c):
        c.execute("UPDATE kv_clock SET tick = tick + 1 WHERE id = 1")
        c.execute("SELECT tick FROM kv_clock WHERE id = 1")
        return c.fetchone()["tick"]

    def _snapshot(self):
        with self._lock:
            rows = self._conn.execute("SELECT key, value, version FROM kv_store").fetchall()
        return {row["key"]: (row["version"], row["value"]) for row in rows}

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str, origin=None) -> None:
        if not isinstance(value, str):
            raise TypeError(f"storage values must be str, got {type(value).__name__}")
        with self._lock:
            old = self.get_item(key)
            c = self._conn.cursor()
            try:
                tick = self._next_tick(c)
                c.execute(
                    "INSERT INTO kv_store (key, value, version) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, version = excluded.version",
                    (key, value, tick),
                )
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
            self._seen[key] = (tick, value)
        self._dispatch(StorageEvent(key, old, value, origin))

    def remove_item(self, key: str, origin=None) -> None:
        with self._lock:
            old = self.get_item(key)
            if old is None:
                return
            c = self._conn.cursor()
            try:
                self._next_tick(c)
                c.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
            self._seen.pop(key, None)
        self._dispatch(StorageEvent(key, old, None, origin))

    def keys(self):
        with self._lock:
            rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row["key"] for row in rows]

    def clear(self, origin=None) -> None:
        for key in self.keys():
            self.remove_item(key, origin=origin)

    def subscribe(self, listener: Callable[[StorageEvent], None], owner=None) -> Callable[[], None]:
        """Register ``listener`` for change events.

        Events written with ``origin=owner`` are not delivered back to this
        listener, mirroring how a browser tab never receives its own storage
        events. Returns a callable that removes the subscription.
        """
        entry = _Subscription(listener, owner)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe():
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def poll(self) -> int:
        """Dispatch events for changes made through other connections.

        Returns the number of events dispatched.
        """
        with self._lock:
            current = self._snapshot()
            previous, self._seen = self._seen, current
        events = []
        for key, (version, value) in current.items():
            seen = previous.get(key)
            if seen is None or seen[0] != version:
                events.append(StorageEvent(key, seen[1] if seen else None, value))
        for key in previous.keys() - current.keys():
            events.append(StorageEvent(key, previous[key][1], None))
        for event in events:
            self._dispatch(event)
        return len(events)

    def _dispatch(self, event: StorageEvent):
        with self._lock:
            self._listeners = [s for s in self._listeners if s.alive()]
            subscriptions = list(self._listeners)
        for subscription in subscriptions:
            listener = subscription.listener()
            if listener is None or subscription.owned_by(event.origin):
                continue
            try:
                listener(event)
            except Exception:
                logger.exception("Storage listener failed for key %r", event.key)

    def close(self):
        with self._lock:
            self._listeners.clear()
            self._conn.close()


class PersistedState:
    """A value kept in sync with one key of a ``KeyValueStore``.

    Cells share their store's lock. A write and the delivery of its event to
    the other cells happen under that one lock, so two sessions writing the
    same key never wait on each other's cell.
    """

    def __init__(self, store: KeyValueStore, key: str, initial: Any = None):
        self.store = store
        self.key = key
        self.initial = initial
        self._lock = store._lock
        self._value = self._load()
        self._unsubscribe = store.subscribe(self._on_storage_event, owner=self)

    def _default(self):
        return copy.deepcopy(self.initial)

    def _load(self):
        try:
            raw = self.store.get_item(self.key)
        except sqlite3.Error:
            logger.exception("Could not read %r from storage", self.key)
            return self._default()
        if raw is None:
            return self._default()
        try:
            return json.loads(raw)
        except ValueError:
            logger.error("Discarding unreadable value stored under %r", self.key)
            return self._default()

    @property
    def value(self):
        with self._lock:
            return self._value

    def set(self, value):
        """Store ``value``, or the result of ``value(current)`` when callable."""
        with self._lock:
            new_value = value(self._value) if callable(value) else value
            try:
                self.store.set_item(self.key, json.dumps(new_value), origin=self)
            except (TypeError, ValueError, sqlite3.Error):
                logger.exception("Could not persist %r", self.key)
                return self._value
            self._value = new_value
            return new_value

    def reload(self):
        with self._lock:
            self._value = self._load()
            return self._value

    def _on_storage_event(self, event: StorageEvent):
        if event.key != self.key or not event.new_value:
            return
        try:
            decoded = json.loads(event.new_value)
        except ValueError:
            logger.error("Ignoring unreadable update for %r", self.key)
            return
        with self._lock:
            self._value = decoded

    def close(self):
        self._unsubscribe()

    def __repr__(self):
        return f"<PersistedState key={self.key!r}>"
