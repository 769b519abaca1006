"""Generic netlink message format of change notifications."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from enum import IntEnum

from .actions import Event
from .devices import major, minor

FAMILY_NAME = "vfsmonitor"
FAMILY_VERSION = 1
MCG_DENTRY_NAME = FAMILY_NAME + "_de"
PATH_MAXLEN = 4096


class Attr(IntEnum):
    """Attributes of a notification."""

    UNSPEC = 0
    ACT = 1
    COOKIE = 2
    MAJOR = 3
    MINOR = 4
    PATH = 5


ATTR_MAX = max(Attr)


class Command(IntEnum):
    """Commands of the family."""

    UNSPEC = 0
    NOTIFY = 1


class GenlError(ValueError):
    """A notification could not be built or parsed."""


@dataclass(frozen=True)
class NotifyMessage:
    """Decoded notification."""

    action: int
    cookie: int
    major: int
    minor: int
    path: str


_NLMSGHDR = struct.Struct("=IHHII")
_GENLMSGHDR = struct.Struct("=BBH")
_NLATTR = struct.Struct("=HH")
_HEADER_SIZE = _NLMSGHDR.size + _GENLMSGHDR.size
_NLA_TYPE_MASK = 0x3FFF

_INT_FORMATS = {
    Attr.ACT: struct.Struct("=B"),
    Attr.COOKIE: struct.Struct("=I"),
    Attr.MAJOR: struct.Struct("=H"),
    Attr.MINOR: struct.Struct("=B"),
}


def _align(size: int) -> int:
    return (size + 3) & ~3


def _attr(kind: Attr, payload: bytes) -> bytes:
    header = _NLATTR.pack(_NLATTR.size + len(payload), kind)
    return header + payload + b"\0" * (_align(len(payload)) - len(payload))


def encode_notify(event: Event, family_id: int, seq: int = 0) -> bytes:
    """Build the netlink message announcing ``event``."""
    if not 0 <= family_id <= 0xFFFF:
        raise GenlError(f"family id out of range: {family_id}")
    path = event.path.encode("utf-8", "surrogateescape")
    if b"\0" in path:
        raise GenlError("path contains a NUL byte")
    if len(path) > PATH_MAXLEN:
        raise GenlError(f"path longer than {PATH_MAXLEN} bytes")
    body = b"".join(
        [
            _GENLMSGHDR.pack(Command.NOTIFY, FAMILY_VERSION, 0),
            _attr(Attr.ACT, _INT_FORMATS[Attr.ACT].pack(event.action)),
            _attr(Attr.COOKIE, _INT_FORMATS[Attr.COOKIE].pack(event.cookie)),
            _attr(Attr.MAJOR, _INT_FORMATS[Attr.MAJOR].pack(major(event.dev) & 0xFFFF)),
            _attr(Attr.MINOR, _INT_FORMATS[Attr.MINOR].pack(minor(event.dev) & 0xFF)),
            _attr(Attr.PATH, path + b"\0"),
        ]
    )
    length = _NLMSGHDR.size + len(body)
    return _NLMSGHDR.pack(length, family_id, 0, seq & 0xFFFFFFFF, 0) + body


def _attributes(payload: bytes) -> Iterator[tuple[int, bytes]]:
    offset = 0
    while offset + _NLATTR.size <= len(payload):
        length, kind = _NLATTR.unpack_from(payload, offset)
        if length < _NLATTR.size or offset + length > len(payload):
            raise GenlError("malformed attribute")
        yield kind & _NLA_TYPE_MASK, payload[offset + _NLATTR.size : offset + length]
        offset += _align(length)


def _parse_path(payload: bytes) -> str:
    end = payload.find(b"\0", 0, PATH_MAXLEN + 1)
    if end < 0:
        raise GenlError("path attribute is not NUL terminated")
    return payload[:end].decode("utf-8", "surrogateescape")


def decode_notify(data: bytes) -> NotifyMessage:
    """Parse a notification built by :func:`encode_notify`."""
    data = bytes(data)
    if len(data) < _HEADER_SIZE:
        raise GenlError("message too short")
    length = _NLMSGHDR.unpack_from(data)[0]
    if length < _HEADER_SIZE or length > len(data):
        raise GenlError(f"bad message length {length}")

    values: dict[Attr, int | str] = {}
    for kind, payload in _attributes(data[_HEADER_SIZE:length]):
        if not Attr.UNSPEC < kind <= ATTR_MAX:
            continue
        attr = Attr(kind)
        if attr is Attr.PATH:
            values[attr] = _parse_path(payload)
        else:
            fmt = _INT_FORMATS[attr]
            if len(payload) < fmt.size:
                raise GenlError(f"attribute {attr.name} too short")
            values[attr] = fmt.unpack_from(payload)[0]

    missing = [attr.name for attr in Attr if attr is not Attr.UNSPEC and attr not in values]
    if missing:
        raise GenlError(f"missing attributes: {', '.join(missing)}")
    return NotifyMessage(
        action=values[Attr.ACT],
        cookie=values[Attr.COOKIE],
        major=values[Attr.MAJOR],
        minor=values[Attr.MINOR],
        path=values[Attr.PATH],
    )