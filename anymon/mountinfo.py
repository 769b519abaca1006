"""Root mount points of devices, read from the mount table."""

from __future__ import annotations

from pathlib import Path

DEFAULT_PATH = "/proc/self/mountinfo"


def parse_mountinfo(text: str) -> dict[str, str]:
    """Map ``major:minor`` to the mount point of each device's root.

    Only entries that mount the root of their file system are kept; a
    later entry for the same device replaces an earlier one.
    """
    mounts: dict[str, str] = {}
    for line in text.strip().split("\n"):
        fields = line.split()
        if len(fields) < 5 or fields[3] != "/":
            continue
        mounts[fields[2]] = fields[4]
    return mounts


class MountInfo:
    """Cached view of a mount table file."""

    def __init__(self, path: str | Path = DEFAULT_PATH) -> None:
        self.path = Path(path)
        self._mounts: dict[str, str] = {}
        self.refresh()

    def refresh(self) -> None:
        """Reread the file; an unreadable file leaves the table empty."""
        try:
            text = self.path.read_text()
        except OSError:
            self._mounts = {}
            return
        self.load(text)

    def load(self, text: str) -> None:
        """Replace the table with the entries parsed from ``text``."""
        self._mounts = parse_mountinfo(text)

    def query(self, maj_min: str) -> str:
        """Root mount point of the device ``major:minor``, or ``""``."""
        return self._mounts.get(maj_min, "")