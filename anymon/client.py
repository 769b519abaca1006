"""Client receiving change notifications over generic netlink."""

from __future__ import annotations

import logging
import os
import socket
import struct
from collections.abc import Callable, Iterator

from .actions import Action
from .genl import FAMILY_NAME, MCG_DENTRY_NAME, GenlError, decode_notify
from .record import MonitorEvent

log = logging.getLogger(__name__)

NETLINK_GENERIC = 16
SOL_NETLINK = 270
NETLINK_ADD_MEMBERSHIP = 1
NLMSG_ERROR = 2
NLM_F_REQUEST = 1
GENL_ID_CTRL = 0x10
CTRL_CMD_GETFAMILY = 3
CTRL_ATTR_FAMILY_ID = 1
CTRL_ATTR_FAMILY_NAME = 2
CTRL_ATTR_MCAST_GROUPS = 7
CTRL_ATTR_MCAST_GRP_NAME = 1
CTRL_ATTR_MCAST_GRP_ID = 2

_AF_NETLINK = getattr(socket, "AF_NETLINK", 16)
_RECV_SIZE = 1 << 16
_NLMSGHDR = struct.Struct("=IHHII")
_GENLMSGHDR = struct.Struct("=BBH")
_NLATTR = struct.Struct("=HH")
_NLA_TYPE_MASK = 0x3FFF

_PLAIN_ACTIONS = {
    Action.NEW_FILE, Action.NEW_SYMLINK, Action.NEW_LINK, Action.NEW_FOLDER,
    Action.DEL_FILE, Action.DEL_FOLDER,
}
_RENAME_FROM = {Action.RENAME_FROM_FILE, Action.RENAME_FROM_FOLDER}
_RENAME_TO = {Action.RENAME_TO_FILE, Action.RENAME_TO_FOLDER}
_RENAMED = {Action.RENAME_FILE, Action.RENAME_FOLDER}
_MOUNTS = {Action.MOUNT, Action.UNMOUNT}


class MessageHandler:
    """Turns notifications into :class:`MonitorEvent` objects.

    A rename-from is remembered by cookie; the rename-to with the same
    cookie then yields one rename event from the old to the new path.
    Mount and unmount notifications call ``on_partition_update`` instead.
    """

    def __init__(
        self,
        on_event: Callable[[MonitorEvent], object] | None = None,
        on_partition_update: Callable[[], object] | None = None,
    ) -> None:
        self._on_event = on_event
        self._on_partition_update = on_partition_update
        self._rename_from: dict[int, str] = {}

    def handle(self, message: bytes) -> MonitorEvent | None:
        """Process one netlink message; return the event it produced, if any.

        Raises :class:`GenlError` when the message cannot be parsed.
        """
        notice = decode_notify(message)
        action, src, dst = notice.action, notice.path, ""

        if action in _PLAIN_ACTIONS:
            pass
        elif action in _RENAME_FROM:
            self._rename_from[notice.cookie] = src
            return None
        elif action in _RENAME_TO:
            if notice.cookie in self._rename_from:
                action = (
                    Action.RENAME_FILE
                    if action == Action.RENAME_TO_FILE
                    else Action.RENAME_FOLDER
                )
                dst, src = src, self._rename_from[notice.cookie]
        elif action in _MOUNTS:
            if self._on_partition_update is not None:
                self._on_partition_update()
            return None
        elif action in _RENAMED:
            log.debug("unsupported file action %d", action)
            return None
        else:
            log.debug("unknown file action %d", action)
            return None

        event = MonitorEvent(
            action=int(action),
            src=src,
            dst=dst,
            cookie=notice.cookie,
            major=notice.major,
            minor=notice.minor,
        )
        if self._on_event is not None:
            self._on_event(event)
        if action in _RENAMED:
            del self._rename_from[notice.cookie]
        return event


def _align(size: int) -> int:
    return (size + 3) & ~3


def _messages(data: bytes) -> Iterator[tuple[int, bytes]]:
    offset = 0
    while offset + _NLMSGHDR.size <= len(data):
        length, kind, _flags, _seq, _pid = _NLMSGHDR.unpack_from(data, offset)
        if length < _NLMSGHDR.size or offset + length > len(data):
            raise GenlError("malformed netlink message")
        yield kind, data[offset : offset + length]
        offset += _align(length)


def _attributes(payload: bytes) -> dict[int, bytes]:
    found: dict[int, bytes] = {}
    offset = 0
    while offset + _NLATTR.size <= len(payload):
        length, kind = _NLATTR.unpack_from(payload, offset)
        if length < _NLATTR.size or offset + length > len(payload):
            raise GenlError("malformed attribute")
        found[kind & _NLA_TYPE_MASK] = payload[offset + _NLATTR.size : offset + length]
        offset += _align(length)
    return found


def _attr(kind: int, payload: bytes) -> bytes:
    header = _NLATTR.pack(_NLATTR.size + len(payload), kind)
    return header + payload + b"\0" * (_align(len(payload)) - len(payload))


def _family_request(name: str, seq: int) -> bytes:
    body = _GENLMSGHDR.pack(CTRL_CMD_GETFAMILY, 1, 0) + _attr(
        CTRL_ATTR_FAMILY_NAME, name.encode() + b"\0"
    )
    header = _NLMSGHDR.pack(_NLMSGHDR.size + len(body), GENL_ID_CTRL, NLM_F_REQUEST, seq, 0)
    return header + body


def _parse_family(message: bytes) -> tuple[int, dict[str, int]]:
    attrs = _attributes(message[_NLMSGHDR.size + _GENLMSGHDR.size :])
    raw_id = attrs.get(CTRL_ATTR_FAMILY_ID)
    if raw_id is None or len(raw_id) < 2:
        raise GenlError("family reply carries no family id")
    family_id = struct.unpack_from("=H", raw_id)[0]
    groups: dict[str, int] = {}
    for entry in _attributes(attrs.get(CTRL_ATTR_MCAST_GROUPS, b"")).values():
        fields = _attributes(entry)
        name = fields.get(CTRL_ATTR_MCAST_GRP_NAME)
        group_id = fields.get(CTRL_ATTR_MCAST_GRP_ID)
        if name is None or group_id is None or len(group_id) < 4:
            continue
        groups[name.split(b"\0", 1)[0].decode()] = struct.unpack_from("=I", group_id)[0]
    return family_id, groups


class GenlClient:
    """Subscribes to the change multicast group and feeds a handler."""

    def __init__(self, handler: MessageHandler) -> None:
        self.handler = handler
        self.family_id: int | None = None
        self.group_id: int | None = None
        self._sock: socket.socket | None = None

    def connect(self) -> None:
        """Resolve the family and join its multicast group."""
        if self._sock is not None:
            raise RuntimeError("client is already connected")
        sock = socket.socket(_AF_NETLINK, socket.SOCK_RAW, NETLINK_GENERIC)
        try:
            sock.bind((0, 0))
            sock.send(_family_request(FAMILY_NAME, 1))
            family_id, groups = self._await_family(sock)
            if MCG_DENTRY_NAME not in groups:
                raise GenlError(f"multicast group {MCG_DENTRY_NAME} not found")
            sock.setsockopt(SOL_NETLINK, NETLINK_ADD_MEMBERSHIP, groups[MCG_DENTRY_NAME])
        except BaseException:
            sock.close()
            raise
        self._sock = sock
        self.family_id = family_id
        self.group_id = groups[MCG_DENTRY_NAME]

    @staticmethod
    def _await_family(sock: socket.socket) -> tuple[int, dict[str, int]]:
        while True:
            data = sock.recv(_RECV_SIZE)
            if not data:
                raise ConnectionError("netlink socket closed")
            for kind, message in _messages(data):
                if kind == NLMSG_ERROR:
                    if len(message) < _NLMSGHDR.size + 4:
                        raise GenlError("truncated error message")
                    code = struct.unpack_from("=i", message, _NLMSGHDR.size)[0]
                    if code:
                        raise OSError(-code, os.strerror(-code))
                elif kind == GENL_ID_CTRL:
                    return _parse_family(message)

    def receive(self) -> list[MonitorEvent]:
        """Wait for one datagram and return the events it produced."""
        if self._sock is None:
            raise RuntimeError("netlink socket not opened")
        data = self._sock.recv(_RECV_SIZE)
        if not data:
            raise ConnectionError("netlink socket closed")
        try:
            messages = list(_messages(data))
        except GenlError as error:
            log.warning("dropping datagram: %s", error)
            return []
        events = []
        for kind, message in messages:
            if kind != self.family_id:
                continue
            try:
                event = self.handler.handle(message)
            except GenlError as error:
                log.warning("error parsing genl message: %s", error)
                continue
            if event is not None:
                events.append(event)
        return events

    def run(self) -> None:
        """Receive until the socket fails or is closed."""
        if self._sock is None:
            raise RuntimeError("netlink socket not opened")
        while True:
            try:
                self.receive()
            except (OSError, RuntimeError) as error:
                log.warning("genl client offline: %s", error)
                return

    def close(self) -> None:
        """Close the socket; safe to call more than once."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> GenlClient:
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()