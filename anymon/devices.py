"""Device numbers and the set of unnamed devices that are watched."""

from __future__ import annotations

import re

MINORBITS = 20
MINORMASK = (1 << MINORBITS) - 1
MAJOR_LIMIT = 1 << 12
MAX_MINOR = 255

_COMMAND = re.compile(r"(.)\s*([+-]?\d+)", re.DOTALL)


def makedev(major: int, minor: int) -> int:
    """Combine a major and minor number into a device number."""
    if not 0 <= major < MAJOR_LIMIT:
        raise ValueError(f"major number out of range: {major}")
    if not 0 <= minor <= MINORMASK:
        raise ValueError(f"minor number out of range: {minor}")
    return (major << MINORBITS) | minor


def _check_dev(dev: int) -> None:
    if not 0 <= dev <= 0xFFFFFFFF:
        raise ValueError(f"device number out of range: {dev}")


def major(dev: int) -> int:
    """Major part of a device number."""
    _check_dev(dev)
    return dev >> MINORBITS


def minor(dev: int) -> int:
    """Minor part of a device number."""
    _check_dev(dev)
    return dev & MINORMASK


class UnnamedDevices:
    """Minor numbers of major-0 devices whose changes are still reported.

    Changes on a device with major number 0 are ignored unless its minor
    number has been registered here.
    """

    def __init__(self) -> None:
        self._minors = [False] * (MAX_MINOR + 1)

    def show(self) -> str:
        """Registered minors, comma separated, ending in a newline."""
        listed = ",".join(str(n) for n, on in enumerate(self._minors) if on)
        return listed + "\n"

    def store(self, command: str) -> None:
        """Apply ``aN`` (add), ``rN`` (remove) or ``eN`` (clear all).

        N is read as an unsigned byte, so it wraps modulo 256.
        """
        match = _COMMAND.match(command)
        if match is None:
            raise ValueError(f"malformed command: {command!r}")
        act, number = match.group(1), int(match.group(2)) % (MAX_MINOR + 1)
        if act == "e":
            self._minors = [False] * (MAX_MINOR + 1)
        elif act == "a":
            self._minors[number] = True
        elif act == "r":
            self._minors[number] = False
        else:
            raise ValueError(f"unknown action {act!r} in command {command!r}")

    def is_invalid(self, dev: int) -> bool:
        """True when changes on ``dev`` are to be ignored."""
        if major(dev):
            return False
        dev_minor = minor(dev)
        return dev_minor > MAX_MINOR or not self._minors[dev_minor]