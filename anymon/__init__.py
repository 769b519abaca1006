"""File system change events: kinds, merging, netlink messages, a listening client, device and event models."""

__version__ = "0.1.0"