"""Change events as shown to a user: one row per change."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
_COLUMNS = 5


def _format_time(moment: datetime) -> str:
    return (
        f"{_DAYS[moment.weekday()]} {_MONTHS[moment.month - 1]} {moment.day} "
        f"{moment:%H:%M:%S} {moment.year}"
    )


@dataclass(eq=False)
class MonitorEvent:
    """A received change with the time it arrived.

    Two events are equal when action, cookie, device and source path agree;
    the destination and the arrival time are not compared.
    """

    action: int
    src: str
    dst: str = ""
    cookie: int = 0
    major: int = 0
    minor: int = 0
    time: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.action = int(self.action)
        if not 0 <= self.action <= 0xFF:
            raise ValueError(f"action out of range: {self.action}")
        if not 0 <= self.cookie <= 0xFFFFFFFF:
            raise ValueError(f"cookie out of range: {self.cookie}")
        if not 0 <= self.major <= 0xFFFF:
            raise ValueError(f"major number out of range: {self.major}")
        if not 0 <= self.minor <= 0xFF:
            raise ValueError(f"minor number out of range: {self.minor}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MonitorEvent):
            return NotImplemented
        return (
            self.cookie == other.cookie
            and self.action == other.action
            and self.major == other.major
            and self.minor == other.minor
            and self.src == other.src
        )

    __hash__ = None  # type: ignore[assignment]

    def column(self, index: int) -> str | int | None:
        """Value of a table column: id, action, source, destination, time."""
        if index == 0:
            return f"{self.major}:{self.minor}"
        if index == 1:
            return self.action
        if index == 2:
            return self.src
        if index == 3:
            return self.dst
        if index == 4:
            return _format_time(self.time)
        return None

    @staticmethod
    def header_row() -> str:
        """Column titles of a CSV table of events."""
        return "ID,Act,Src,Dst,Time"

    def to_row(self) -> str:
        """The event as one comma-separated line."""
        return ",".join(str(self.column(index)) for index in range(_COLUMNS))