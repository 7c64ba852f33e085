"""Error taxonomy shared by the uplink configuration components."""

from __future__ import annotations


class UplinkError(RuntimeError):
    """Base class for failures surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class InvalidField(UplinkError, ValueError):
    """Raised when a user-supplied field fails validation."""

    status_code = 400


class RegistryError(UplinkError):
    """Raised when the interface registry rejects or fails an update."""

    status_code = 400


class PersistenceError(UplinkError):
    """Raised when a stored collection cannot be loaded or written."""


class ConfigNotFound(PersistenceError):
    status_code = 404


class ConfigCorrupt(PersistenceError):
    pass


class RenderError(UplinkError):
    """Raised when daemon-facing artifacts cannot be generated or written."""


class PluginError(UplinkError):
    """Raised when the plugin lifecycle manager fails to act on a plugin."""


__all__ = [
    "ConfigCorrupt",
    "ConfigNotFound",
    "InvalidField",
    "PersistenceError",
    "PluginError",
    "RegistryError",
    "RenderError",
    "UplinkError",
]
