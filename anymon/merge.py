"""Buffering of change events that folds pairs cancelling each other out.

Rules, where X, Y, Z are paths on one device:

* del(X) + new(X)                              -> nothing
* new(X) + del(X)                              -> nothing
* ren_fr(X) + ren_to(Y) + new(X)               -> new(Y)
* ren_fr(X) + ren_to(Y) + del(Y)               -> del(X)
* new(X) + ren_fr(X) + ren_to(Y)               -> new(Y)
* ren_fr(X) + ren_to(Y) + ren_fr(Y) + ren_to(Z) -> del(X), new(Z)
* del(X) + ren_fr(Y) + ren_to(X)               -> del(Y)

A rename-to that finds no rename-from with its cookie becomes a creation.
A rename-from is held until it is paired, so that a later rename-to can
still be matched with it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from .actions import Action, Event

MERGE_BUFFER_SIZE = 100
MERGE_TIMEOUT = 0.1
DUMP_SIZE = 10


def _same_path(a: Event, b: Event) -> bool:
    return a.dev == b.dev and a.path == b.path


def _demote(event: Event, action: Action) -> None:
    event.action = action
    event.cookie = 0
    event.pair = None


def _merge_new_file(existing: Event, current: Event) -> bool:
    if existing.action == Action.DEL_FILE:
        return _same_path(existing, current)
    if existing.action == Action.RENAME_FROM_FILE:
        if not _same_path(existing, current):
            return False
        if existing.pair is not None:
            _demote(existing.pair, Action.NEW_FILE)
        return True
    return False


def _merge_removal(existing: Event, current: Event) -> bool:
    """Shared rule for a deletion or a rename-from of ``current.path``."""
    if existing.action < Action.NEW_FOLDER:
        return _same_path(existing, current)
    if existing.action == Action.RENAME_TO_FILE:
        if existing.pair is None or not _same_path(existing, current):
            return False
        _demote(existing.pair, Action.DEL_FILE)
        return True
    return False


def _merge_rename_to_file(existing: Event, current: Event) -> bool:
    if existing.action == Action.DEL_FILE:
        if current.pair is None or not _same_path(existing, current):
            return False
        _demote(current.pair, Action.DEL_FILE)
        return True
    return False


_MERGE_RULES: dict[Action, Callable[[Event, Event], bool]] = {
    Action.NEW_FILE: _merge_new_file,
    Action.NEW_LINK: _merge_new_file,
    Action.NEW_SYMLINK: _merge_new_file,
    Action.DEL_FILE: _merge_removal,
    Action.RENAME_FROM_FILE: _merge_removal,
    Action.RENAME_TO_FILE: _merge_rename_to_file,
}


class EventMerger:
    """Holds events briefly, merges them and passes the rest to ``notify``.

    Events leave the buffer when it reaches ``buffer_size`` entries (at most
    ``dump_size`` at a time) or when ``timeout`` seconds pass after the
    buffer becomes non-empty. With ``timeout=None`` no timer is started and
    :meth:`on_timeout` must be called by the owner.
    """

    def __init__(
        self,
        notify: Callable[[Event], object],
        buffer_size: int = MERGE_BUFFER_SIZE,
        timeout: float | None = MERGE_TIMEOUT,
        dump_size: int = DUMP_SIZE,
    ) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be positive")
        if dump_size < 1:
            raise ValueError("dump_size must be positive")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self._notify = notify
        self._buffer_size = buffer_size
        self._timeout = timeout
        self._dump_size = dump_size
        self._events: list[Event] = []
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()
        self._quit = False
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def submit(self, event: Event) -> None:
        """Add an event, merging it with buffered ones where a rule applies."""
        if self._closed:
            raise RuntimeError("event merger is closed")
        event.pair = None
        with self._lock:
            if event.action == Action.RENAME_TO_FILE:
                source = next(
                    (e for e in self._events if e.cookie == event.cookie), None
                )
                if source is None:
                    event.action = Action.NEW_FILE
                    event.cookie = 0
                else:
                    source.pair = event
                    event.pair = source

            merged = False
            rule = _MERGE_RULES.get(event.action)
            if rule is not None:
                for existing in reversed(self._events):
                    if rule(existing, event):
                        self._events.remove(existing)
                        merged = True
                        break
            if not merged:
                self._events.append(event)
            to_send = self._check()
        self._deliver(to_send)

    def on_timeout(self) -> None:
        """Send what is ready to go; called when the timer fires."""
        with self._lock:
            to_send = self._pick()
        self._deliver(to_send)

    def close(self) -> None:
        """Stop accepting events and send everything still buffered."""
        with self._lock:
            self._closed = True
            self._quit = True
        self._disarm()
        self.on_timeout()

    def _check(self) -> list[Event]:
        count = len(self._events)
        if count == 0:
            self._disarm()
        elif count == 1:
            self._arm()
        elif count >= self._buffer_size:
            return self._pick()
        return []

    def _pick(self) -> list[Event]:
        if self._quit:
            picked, self._events = self._events, []
            return picked
        picked: list[Event] = []
        for event in self._events:
            if event.action != Action.RENAME_FROM_FILE or event.pair is not None:
                picked.append(event)
                if event.action == Action.RENAME_FROM_FILE:
                    event.pair.pair = None
                if len(picked) >= self._dump_size:
                    break
        taken = {id(event) for event in picked}
        self._events = [e for e in self._events if id(e) not in taken]
        return picked

    def _deliver(self, to_send: list[Event]) -> None:
        for event in to_send:
            self._notify(event)
        if to_send and len(self) >= 1:
            self._arm()

    def _arm(self) -> None:
        if self._timeout is None:
            return
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._timeout, self.on_timeout)
            self._timer.daemon = True
            self._timer.start()

    def _disarm(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None