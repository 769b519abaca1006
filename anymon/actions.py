"""File-system change actions and the events that carry them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

PATH_MAX = 4096
"""Largest path, terminating NUL included, that an event may carry."""


class Action(IntEnum):
    """Kind of change reported for a path."""

    NEW_FILE = 0
    NEW_LINK = 1
    NEW_SYMLINK = 2
    NEW_FOLDER = 3
    DEL_FILE = 4
    DEL_FOLDER = 5
    RENAME_FILE = 6
    RENAME_FOLDER = 7
    RENAME_FROM_FILE = 8
    RENAME_TO_FILE = 9
    RENAME_FROM_FOLDER = 10
    RENAME_TO_FOLDER = 11
    MOUNT = 12
    UNMOUNT = 13

    def label(self) -> str:
        """Short hyphenated name of the action."""
        return _LABELS[self]


_LABELS = {
    Action.NEW_FILE: "file-created",
    Action.NEW_LINK: "link-created",
    Action.NEW_SYMLINK: "symlink-created",
    Action.NEW_FOLDER: "dir-created",
    Action.DEL_FILE: "file-deleted",
    Action.DEL_FOLDER: "dir-deleted",
    Action.RENAME_FILE: "file-renamed",
    Action.RENAME_FOLDER: "dir-renamed",
    Action.RENAME_FROM_FILE: "file-renamed-from",
    Action.RENAME_TO_FILE: "file-renamed-to",
    Action.RENAME_FROM_FOLDER: "dir-renamed-from",
    Action.RENAME_TO_FOLDER: "dir-renamed-to",
    Action.MOUNT: "mounted",
    Action.UNMOUNT: "unmounted",
}


@dataclass(eq=False)
class Event:
    """One change on one path of one device.

    Events compare by identity: two changes with the same fields are still
    two distinct occurrences. ``pair`` links the halves of a rename while
    they wait to be merged.
    """

    action: Action
    path: str
    cookie: int = 0
    dev: int = 0
    pair: Event | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.action = Action(self.action)
        if not 0 <= self.cookie <= 0xFFFFFFFF:
            raise ValueError(f"cookie out of range: {self.cookie}")
        if self.dev < 0:
            raise ValueError(f"device number must not be negative: {self.dev}")