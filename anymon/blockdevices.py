"""Block devices and their partitions, as listed by ``lsblk -r``."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol

ROOT = "root"
"""Name of the invisible item that holds the top-level devices."""

MOUNT_SEPARATOR = "\\x0a"
"""Escaped newline that ``lsblk -r`` puts between several mount points."""

UNKNOWN_DEVICE = "Unknown"

_FIELDS_WITH_MOUNT = 7


class _MountTable(Protocol):
    def query(self, maj_min: str) -> str: ...


class CheckState(IntEnum):
    """Whether a device is selected, fully or for some of its partitions."""

    UNCHECKED = 0
    PARTIALLY_CHECKED = 1
    CHECKED = 2


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


@dataclass(eq=False)
class BlockDevice:
    """One line of ``lsblk -r``, linked to its parent disk and partitions.

    ``mount_points`` is ``None`` for the root item, which carries no data.
    """

    name: str
    major: int = 0
    minor: int = 0
    removable: int = 0
    size: str = ""
    read_only: int = 0
    type: str = ""
    mount_points: str | None = None
    parent: BlockDevice | None = field(default=None, repr=False)
    children: list[BlockDevice] = field(default_factory=list, repr=False)

    def append_child(self, child: BlockDevice) -> None:
        """Add ``child`` below this device."""
        self.children.append(child)
        child.parent = self

    def child(self, row: int) -> BlockDevice:
        """The child at position ``row``."""
        return self.children[row]

    def row(self) -> int:
        """Position of this device among its parent's children, -1 if absent."""
        if self.parent is None:
            return 0
        for index, sibling in enumerate(self.parent.children):
            if sibling is self:
                return index
        return -1

    def is_partition(self) -> bool:
        """True for a device that sits below a disk rather than the root."""
        return self.parent is not None and self.parent.name != ROOT

    def root_mount_point(self, mount_info: _MountTable | None = None) -> str:
        """Where the root of this device is mounted, or ``""``.

        The mount table is asked first; failing that, the shortest of the
        mount points ``lsblk`` reported is taken.
        """
        if mount_info is not None:
            found = mount_info.query(f"{self.major}:{self.minor}")
            if found:
                return found
        if self.mount_points is None:
            return ""
        candidates = self.mount_points.strip().split(MOUNT_SEPARATOR)
        return min(candidates, key=len)

    def _set_children(self, children: list[BlockDevice]) -> None:
        self.children = []
        for child in children:
            child.parent = self
            self.children.append(child)


def parse_lsblk(text: str) -> list[BlockDevice]:
    """Devices listed by ``lsblk -r``, header line skipped, in output order.

    Raises :class:`ValueError` for a line that lacks the required columns.
    """
    devices: list[BlockDevice] = []
    for line in text.split("\n")[1:]:
        line = line.strip()
        if not line:
            continue
        fields = line.split(" ")
        if len(fields) < 6:
            raise ValueError(f"too few columns in lsblk line: {line!r}")
        maj_min = fields[1].split(":")
        if len(maj_min) < 2:
            raise ValueError(f"bad MAJ:MIN column in lsblk line: {line!r}")
        devices.append(
            BlockDevice(
                name=fields[0],
                major=_to_int(maj_min[0]),
                minor=_to_int(maj_min[1]),
                removable=_to_int(fields[2]),
                size=fields[3],
                read_only=_to_int(fields[4]),
                type=fields[5],
                mount_points="" if len(fields) < _FIELDS_WITH_MOUNT else fields[6],
            )
        )
    return devices


class BlockDeviceModel:
    """Tree of disks and partitions with a selection of watched devices."""

    def __init__(self, mount_info: _MountTable | None = None) -> None:
        self.mount_info = mount_info
        self.root = BlockDevice(ROOT)
        self.devices: list[BlockDevice] = []
        self._checked: set[BlockDevice] = set()

    def load(self, lsblk_output: str, is_update: bool = True) -> None:
        """Build the tree from ``lsblk -r`` output.

        A first load (``is_update=False``) selects every device and adds the
        disks to those already known; an update replaces the tree and
        selects every device in it.
        """
        repo = parse_lsblk(lsblk_output)
        if not is_update:
            self._checked.update(repo)

        roots = [dev for dev in repo if dev.type != "part"]
        for root in roots:
            for dev in repo:
                if dev is not root and dev.name.startswith(root.name):
                    root.append_child(dev)

        self.root._set_children(roots)
        if is_update:
            self.devices = list(roots)
            self._checked = set()
            for dev in self.devices:
                self._checked.add(dev)
                self._checked.update(dev.children)
        else:
            self.devices.extend(roots)

    def check_state(self, device: BlockDevice) -> CheckState:
        """Selection state of ``device``; a disk reflects its partitions."""
        if device.is_partition():
            return CheckState.CHECKED if device in self._checked else CheckState.UNCHECKED
        count = sum(1 for item in self._checked if item.parent is device)
        if count == len(device.children):
            return CheckState.CHECKED
        if count == 0:
            return CheckState.UNCHECKED
        return CheckState.PARTIALLY_CHECKED

    def check(self, device: BlockDevice, checked: bool) -> bool:
        """Select or deselect ``device``, and all partitions of a disk."""
        targets = [device]
        if not device.is_partition():
            targets = list(device.children) + targets
        for item in targets:
            if checked:
                self._checked.add(item)
            else:
                self._checked.discard(item)
        return True

    def device_name(self, dev_id: str) -> str:
        """Name of the partition ``major:minor``, or ``"Unknown"``."""
        parts = dev_id.split(":")
        if len(parts) == 2:
            wanted = (_to_int(parts[0]), _to_int(parts[1]))
            for root in self.devices:
                for child in root.children:
                    if (child.major, child.minor) == wanted:
                        return child.name
        return UNKNOWN_DEVICE

    def mount_point(self, major: int, minor: int) -> str:
        """Root mount point of the disk or partition ``major:minor``."""
        for root in self.devices:
            if (root.major, root.minor) == (major, minor):
                return root.root_mount_point(self.mount_info)
            for child in root.children:
                if (child.major, child.minor) == (major, minor):
                    return child.root_mount_point(self.mount_info)
        return ""

    def checked(self) -> frozenset[BlockDevice]:
        """Devices currently selected."""
        return frozenset(self._checked)