"""Interface registry: the authoritative record of interface roles."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Sequence

from .errors import RegistryError
from .storage import write_private_file

UPLINK_TYPE = "Uplink"
WIFI_SUBTYPE = "wifi"
PPP_SUBTYPE = "ppp"

_KNOWN_KEYS = ("Name", "Type", "Subtype", "Enabled")


@dataclass(frozen=True, slots=True)
class InterfaceRecord:
    """Snapshot of a single interface as seen by the registry."""

    name: str
    type: str = ""
    subtype: str = ""
    enabled: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "InterfaceRecord":
        name = payload.get("Name")
        if not isinstance(name, str):
            raise ValueError("Interface entries require a Name")
        type_ = payload.get("Type") or ""
        subtype = payload.get("Subtype") or ""
        if not isinstance(type_, str) or not isinstance(subtype, str):
            raise ValueError("Interface Type and Subtype must be strings")
        enabled = payload.get("Enabled")
        if enabled is None:
            enabled = False
        elif not isinstance(enabled, bool):
            raise ValueError(f"Interface {name} Enabled must be a boolean")
        return cls(
            name=name,
            type=type_,
            subtype=subtype,
            enabled=enabled,
            extra={key: value for key, value in payload.items() if key not in _KNOWN_KEYS},
        )

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = dict(self.extra)
        payload.update(
            {
                "Name": self.name,
                "Type": self.type,
                "Subtype": self.subtype,
                "Enabled": self.enabled,
            }
        )
        return payload


def is_uplink_enabled(
    interfaces: Sequence[InterfaceRecord], name: str, subtype: str
) -> bool:
    """Return the registry's enabled flag for an uplink of ``subtype``.

    Only the first interface carrying ``name`` is considered. An interface
    that is missing or registered with another role counts as disabled.
    """

    for interface in interfaces:
        if interface.name == name:
            if interface.type == UPLINK_TYPE and interface.subtype == subtype:
                return interface.enabled
            break
    return False


class InterfaceRegistry:
    """Capability used to read and update interface roles."""

    def get_interfaces(self) -> list[InterfaceRecord]:  # pragma: no cover - interface only
        raise NotImplementedError

    def update_interface_type(
        self, name: str, type_: str, subtype: str, enabled: bool
    ) -> list[InterfaceRecord]:  # pragma: no cover - interface only
        raise NotImplementedError


class JsonInterfaceRegistry(InterfaceRegistry):
    """Registry backed by a JSON list of interface objects on disk."""

    def __init__(self, path: Path | str, *, lock: threading.Lock | None = None) -> None:
        self._path = Path(path)
        self._lock = lock if lock is not None else threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_locked(self) -> list[InterfaceRecord]:
        if not self._path.exists():
            return []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            if payload is None:
                return []
            if not isinstance(payload, list):
                raise ValueError("Interface registry must contain a JSON list")
            return [InterfaceRecord.from_dict(item) for item in payload]
        except (OSError, ValueError, AttributeError) as exc:
            logging.getLogger(__name__).warning("Unable to load interface registry: %s", exc)
            raise RegistryError(
                f"Failed to load interface registry: {exc}", status_code=500
            ) from exc

    def get_interfaces(self) -> list[InterfaceRecord]:
        with self._lock:
            return self._load_locked()

    def update_interface_type(
        self, name: str, type_: str, subtype: str, enabled: bool
    ) -> list[InterfaceRecord]:
        if not isinstance(name, str) or not name.strip():
            raise RegistryError("Interface name must be a non-empty string")
        with self._lock:
            interfaces = self._load_locked()
            for index, interface in enumerate(interfaces):
                if interface.name == name:
                    interfaces[index] = replace(
                        interface, type=type_, subtype=subtype, enabled=enabled
                    )
                    break
            else:
                interfaces.append(
                    InterfaceRecord(name=name, type=type_, subtype=subtype, enabled=enabled)
                )
            document = json.dumps([item.to_dict() for item in interfaces], indent=1)
            try:
                write_private_file(self._path, document.encode("utf-8"))
            except OSError as exc:
                raise RegistryError(
                    f"Failed to save interface registry: {exc}", status_code=500
                ) from exc
            return list(interfaces)


__all__ = [
    "InterfaceRecord",
    "InterfaceRegistry",
    "JsonInterfaceRegistry",
    "PPP_SUBTYPE",
    "UPLINK_TYPE",
    "WIFI_SUBTYPE",
    "is_uplink_enabled",
]
