"""Filterable table of received change events."""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path

from .actions import Action
from .blockdevices import BlockDeviceModel
from .record import MonitorEvent

_COLUMNS = 5

_READABLE = {
    Action.NEW_FILE: "New file",
    Action.NEW_SYMLINK: "New symlink",
    Action.NEW_LINK: "New link",
    Action.NEW_FOLDER: "New folder",
    Action.DEL_FILE: "Delete file",
    Action.DEL_FOLDER: "Delete folder",
    Action.RENAME_FROM_FILE: "Rename from file",
    Action.RENAME_FROM_FOLDER: "Rename from folder",
    Action.RENAME_TO_FILE: "Rename to file",
    Action.RENAME_TO_FOLDER: "Rename to folder",
    Action.MOUNT: "Mount",
    Action.UNMOUNT: "Unmount",
    Action.RENAME_FILE: "Rename file",
    Action.RENAME_FOLDER: "Rename folder",
}


def _readable_action(action: int) -> str:
    return _READABLE.get(action, "Unknown")


class Role(IntEnum):
    """Table columns, in the numbering of user-defined item roles."""

    ID = 0x0100 + 1
    ACTION = 0x0100 + 2
    SOURCE = 0x0100 + 3
    DEST = 0x0100 + 4
    TIME = 0x0100 + 5


class EventModel:
    """All events received while running, and the subset that passes filters.

    An event is shown when it matches the search text (in source or
    destination), its device is selected in ``block_devices`` (when one is
    given) and its action is enabled.
    """

    def __init__(self, block_devices: BlockDeviceModel | None = None) -> None:
        self.block_devices = block_devices
        self.running = True
        self._filters = [True] * len(Action)
        self._search = ""
        self._events: list[MonitorEvent] = []
        self._shown: list[MonitorEvent] = []

    def insert(self, event: MonitorEvent) -> int | None:
        """Record an event; return its row if shown, else ``None``."""
        if not self.running:
            return None
        self._events.append(event)
        if self._hits(event):
            self._shown.append(event)
            return len(self._shown) - 1
        return None

    def is_filtered(self, action: int) -> bool:
        """Whether events with ``action`` are shown."""
        return self._filters[action]

    def set_filter(self, action: int, checked: bool) -> None:
        """Show or hide events with ``action``."""
        self._filters[action] = checked
        self.reset()

    def search(self, text: str) -> None:
        """Show only events whose paths contain ``text``; empty shows all."""
        self._search = text
        self.reset()

    def clear(self) -> None:
        """Forget every event."""
        self._events.clear()
        self._shown.clear()

    def reset(self) -> None:
        """Recompute the shown events from all recorded ones."""
        self._shown = [event for event in self._events if self._hits(event)]

    def rows(self) -> list[MonitorEvent]:
        """Events currently shown, oldest first."""
        return list(self._shown)

    def value(self, row: int, role: Role) -> str | int | None:
        """Cell of a shown event; paths are prefixed with their mount point."""
        event = self._shown[row]
        role = Role(role)
        cell = event.column(role - Role.ID)
        if not str(cell).strip():
            return cell
        if role in (Role.SOURCE, Role.DEST) and self.block_devices is not None:
            mount = self.block_devices.mount_point(event.major, event.minor)
            if mount != "/":
                return mount + str(cell)
        return cell

    def export_csv(self, path: str | Path) -> Path:
        """Write the shown events as CSV; ``.csv`` is appended if missing.

        Returns the path written.
        """
        target = str(path)
        if not target.endswith(".csv"):
            target += ".csv"
        parts = [MonitorEvent.header_row()]
        for row in range(len(self._shown)):
            cells = []
            for column in range(_COLUMNS):
                if column == 0:
                    dev_id = str(self.value(row, Role.ID))
                    if self.block_devices is not None:
                        dev_id = self.block_devices.device_name(dev_id)
                    cells.append(dev_id)
                elif column == 1:
                    cells.append(_readable_action(int(self.value(row, Role.ACTION))))
                else:
                    cells.append(str(self.value(row, Role(Role.ID + column))))
            parts.append("\n" + "".join(cell + "," for cell in cells))
        out = Path(target)
        out.write_text("".join(parts), encoding="utf-8")
        return out

    def _hits(self, event: MonitorEvent) -> bool:
        if self._search and self._search not in event.dst and self._search not in event.src:
            return False
        hit = True
        if self.block_devices is not None:
            hit = any(
                (dev.major, dev.minor) == (event.major, event.minor)
                for dev in self.block_devices.checked()
            )
        if not 0 <= event.action < len(self._filters) or not self._filters[event.action]:
            return False
        return hit