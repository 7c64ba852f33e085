"""Data model for the persisted uplink collections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

DEFAULT_KEY_MGMT = "WPA-PSK WPA-PSK-SHA256"


def _string_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _flag_field(payload: Mapping[str, Any], key: str) -> bool:
    value = payload.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return value


@dataclass(frozen=True, slots=True)
class WifiNetworkEntry:
    """A known network offered to wpa_supplicant for one interface."""

    ssid: str = ""
    password: str = ""
    key_mgmt: str = ""
    disabled: bool = False
    priority: str = ""
    bssid: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WifiNetworkEntry":
        payload = _mapping(payload, "Network entry")
        return cls(
            ssid=_string_field(payload, "SSID"),
            password=_string_field(payload, "Password"),
            key_mgmt=_string_field(payload, "KeyMgmt"),
            disabled=_flag_field(payload, "Disabled"),
            priority=_string_field(payload, "Priority"),
            bssid=_string_field(payload, "BSSID"),
        )

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "Disabled": self.disabled,
            "Password": self.password,
            "SSID": self.ssid,
            "KeyMgmt": self.key_mgmt,
        }
        if self.priority:
            payload["Priority"] = self.priority
        if self.bssid:
            payload["BSSID"] = self.bssid
        return payload


@dataclass(frozen=True, slots=True)
class WifiUplinkRecord:
    """WPA supplicant settings for a single uplink interface."""

    iface: str
    enabled: bool = False
    networks: tuple[WifiNetworkEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "networks", tuple(self.networks))

    @property
    def has_active_network(self) -> bool:
        return any(not network.disabled for network in self.networks)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WifiUplinkRecord":
        payload = _mapping(payload, "WPA record")
        raw_networks = payload.get("Networks")
        if raw_networks is None:
            raw_networks = []
        if not isinstance(raw_networks, Sequence) or isinstance(raw_networks, str):
            raise ValueError("Networks must be a list")
        return cls(
            iface=_string_field(payload, "Iface"),
            enabled=_flag_field(payload, "Enabled"),
            networks=tuple(WifiNetworkEntry.from_dict(item) for item in raw_networks),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "Iface": self.iface,
            "Enabled": self.enabled,
            "Networks": [network.to_dict() for network in self.networks],
        }


@dataclass(frozen=True, slots=True)
class PppUplinkRecord:
    """PPPoE credentials and link options for a single uplink interface."""

    iface: str
    username: str = ""
    secret: str = ""
    enabled: bool = False
    vlan: str = ""
    mtu: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PppUplinkRecord":
        payload = _mapping(payload, "PPP record")
        return cls(
            iface=_string_field(payload, "Iface"),
            username=_string_field(payload, "Username"),
            secret=_string_field(payload, "Secret"),
            enabled=_flag_field(payload, "Enabled"),
            vlan=_string_field(payload, "VLAN"),
            mtu=_string_field(payload, "MTU"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "Iface": self.iface,
            "Enabled": self.enabled,
            "Username": self.username,
            "Secret": self.secret,
            "VLAN": self.vlan,
            "MTU": self.mtu,
        }


__all__ = [
    "DEFAULT_KEY_MGMT",
    "PppUplinkRecord",
    "WifiNetworkEntry",
    "WifiUplinkRecord",
]
