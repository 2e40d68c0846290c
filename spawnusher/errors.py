"""spawnusher/errors.py — Exception hierarchy."""

from __future__ import annotations


class UsherError(Exception):
    """Base class for every error raised by spawnusher."""


class HostInterfaceError(UsherError):
    """The host failed to answer a volume or entity query."""


class VolumeAccessError(HostInterfaceError):
    """A cell's material could not be read."""


class EntityAccessError(HostInterfaceError):
    """An entity could not be read, moved or overridden."""


class ConfigError(UsherError, ValueError):
    """Invalid configuration or malformed scenario data."""
