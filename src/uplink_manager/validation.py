"""Validation of user-supplied uplink credentials.

Every value checked here ends up embedded in a generated text file read by
wpa_supplicant or pppd, so a stray line break would inject a new directive
and a double quote would end the quoted value early.
The helpers never mutate their input and raise :class:`InvalidField` with a
human readable reason on the first problem found.
"""

from __future__ import annotations

import dataclasses
import re

from .errors import InvalidField
from .records import DEFAULT_KEY_MGMT, PppUplinkRecord, WifiNetworkEntry, WifiUplinkRecord

ALLOWED_KEY_MGMT = frozenset({"WPA-PSK", "WPA-PSK-SHA256", "SAE"})

_MAC_PATTERN = re.compile(r"([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})")
_IFACE_PATTERN = re.compile(r"[a-zA-Z0-9]*(\.[a-zA-Z0-9]*)*")
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def _is_integer(value: str) -> bool:
    return bool(_INTEGER_PATTERN.fullmatch(value))


def _reject_unquotable(value: str, label: str) -> None:
    # Values are written between double quotes, one directive per line.
    if "\n" in value or "\r" in value:
        raise InvalidField(f"{label} field contains newline characters")
    if '"' in value:
        raise InvalidField(f"{label} field contains double quote characters")


def validate_iface_name(name: str) -> None:
    """Ensure an interface name is safe to embed in artifact file names."""

    if not isinstance(name, str) or not _IFACE_PATTERN.fullmatch(name):
        raise InvalidField("Invalid iface name")


def with_default_key_mgmt(entry: WifiNetworkEntry) -> WifiNetworkEntry:
    """Return ``entry`` with an empty key management replaced by the default."""

    if entry.key_mgmt:
        return entry
    return dataclasses.replace(entry, key_mgmt=DEFAULT_KEY_MGMT)


def validate_wifi_network(entry: WifiNetworkEntry) -> None:
    _reject_unquotable(entry.password, "Password")
    _reject_unquotable(entry.ssid, "SSID")

    if entry.priority and not _is_integer(entry.priority):
        raise InvalidField("Priority field must contain numeric value")

    if entry.bssid and not _MAC_PATTERN.fullmatch(entry.bssid):
        raise InvalidField("BSSID field must be a valid MAC address")

    if not entry.key_mgmt:
        raise InvalidField(
            "KeyMgmt field must be set (WPA-PSK WPA-PSK-SHA256 or WPA-PSK WPA-PSK-SHA256 SAE)"
        )
    for token in entry.key_mgmt.split(" "):
        if token not in ALLOWED_KEY_MGMT:
            raise InvalidField(f"KeyMgmt field has invalid field {token}")


def validate_wifi_record(record: WifiUplinkRecord) -> None:
    """Validate the interface name and every network of a WPA record."""

    validate_iface_name(record.iface)
    for network in record.networks:
        validate_wifi_network(network)


def validate_ppp_record(record: PppUplinkRecord) -> None:
    if not record.iface:
        raise InvalidField("Iface field empty")
    validate_iface_name(record.iface)

    if not record.username:
        raise InvalidField("Username field empty")
    _reject_unquotable(record.username, "Username")
    _reject_unquotable(record.secret, "Secret")

    if record.vlan and not _is_integer(record.vlan):
        raise InvalidField("VLAN field must contain numeric value")

    if record.mtu and (not _is_integer(record.mtu) or int(record.mtu) < 0):
        raise InvalidField("MTU field must contain numeric positive value")


__all__ = [
    "ALLOWED_KEY_MGMT",
    "validate_iface_name",
    "validate_ppp_record",
    "validate_wifi_network",
    "validate_wifi_record",
    "with_default_key_mgmt",
]
