"""Thread-safe registry of active watches.

A `WatchEntry` ties one summoner to the Discord channel its reports go to. The
`WatchRegistry` maps normalized summoner names to entries and only exposes
insert, lookup and snapshot, so every caller goes through the same locking.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager

from matches.utils import NO_MATCH


class AlreadyWatched(Exception):
    """A watch for this key already exists."""

    def __init__(self, key: str):
        super().__init__(f"Already watching {key}")
        self.key = key


class WatchNotFound(KeyError):
    """No watch is registered under this key."""


def normalize_key(summoner_name: str) -> str:
    """Registry key for a summoner name. Riot ignores case and spaces in names."""
    return "".join(str(summoner_name).split()).lower()


class SharedExclusiveLock:
    """Readers-writer lock: many shared holders or a single exclusive holder.

    New shared holders wait while a writer is queued. Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class WatchEntry:
    """One summoner being watched and the channel its reports go to."""

    def __init__(self, key: str, summoner, channel, last_reported_match_id: int = NO_MATCH):
        self._key = key
        self._summoner = summoner
        self._channel = channel
        self._last_reported_match_id = last_reported_match_id
        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        return self._key

    @property
    def summoner(self):
        return self._summoner

    @property
    def channel(self):
        return self._channel

    @property
    def last_reported_match_id(self) -> int:
        with self._lock:
            return self._last_reported_match_id

    def mark_reported(self, match_id: int) -> None:
        with self._lock:
            self._last_reported_match_id = match_id

    def __repr__(self) -> str:
        return (
            f"WatchEntry(key={self._key!r}, summoner={self._summoner.name!r}, "
            f"channel={self._channel.id!r}, last_reported_match_id={self.last_reported_match_id})"
        )


class WatchRegistry:
    """Maps watch keys to entries. At most one entry per key, no removal."""

    def __init__(self):
        self._entries: dict[str, WatchEntry] = {}
        self._lock = SharedExclusiveLock()

    def insert(self, key: str, entry: WatchEntry) -> None:
        with self._lock.exclusive():
            if key in self._entries:
                raise AlreadyWatched(key)
            self._entries[key] = entry

    def lookup(self, key: str) -> WatchEntry:
        with self._lock.shared():
            try:
                return self._entries[key]
            except KeyError:
                raise WatchNotFound(key) from None

    def snapshot(self) -> list[tuple[str, WatchEntry]]:
        with self._lock.shared():
            return list(self._entries.items())

    def __contains__(self, key) -> bool:
        with self._lock.shared():
            return key in self._entries

    def __len__(self) -> int:
        with self._lock.shared():
            return len(self._entries)
