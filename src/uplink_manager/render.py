"""Render stored uplink records into the files read by wpa_supplicant and pppd.

The functions here are pure: they receive validated records and return the
file contents as bytes. Writing the files is left to the owning store so it
can happen while the store lock is held.
"""

from __future__ import annotations

from typing import Iterable

from .records import PppUplinkRecord, WifiNetworkEntry, WifiUplinkRecord

AUTOGENERATED_HEADER = "# Note this is an autogenerated file"
WPA_CONTROL_DIR = "/var/run/wpa_supplicant_"


def wpa_config_name(iface: str) -> str:
    return f"wpa_{iface}.conf"


def ppp_provider_name(iface: str) -> str:
    return f"provider_{iface}"


def _network_block(network: WifiNetworkEntry) -> list[str]:
    lines = [
        "network={",
        f'\tssid="{network.ssid}"',
        f'\tpsk="{network.password}"',
    ]
    if network.priority:
        lines.append(f"\tpriority={network.priority}")
    if network.bssid:
        lines.append(f"\tbssid={network.bssid}")
    lines.append(f"\tkey_mgmt={network.key_mgmt}")
    lines.append("}")
    return lines


def render_wpa_supplicant(record: WifiUplinkRecord) -> bytes:
    """Return the wpa_supplicant configuration for one interface.

    Only networks that are not disabled are emitted. The caller decides
    whether a disabled record gets a file at all.
    """

    lines = [
        AUTOGENERATED_HEADER,
        f"ctrl_interface=DIR={WPA_CONTROL_DIR}{record.iface}",
    ]
    for network in record.networks:
        if network.disabled:
            continue
        lines.append("")
        lines.extend(_network_block(network))
    return ("\n".join(lines) + "\n").encode("utf-8")


def render_chap_secrets(records: Iterable[PppUplinkRecord]) -> bytes:
    """Return the shared CHAP secrets file listing every stored credential."""

    lines = [
        AUTOGENERATED_HEADER,
        "# Secrets for authentication using CHAP",
        "# client        server  secret                  IP addresses",
        "",
    ]
    for record in records:
        lines.append(f'"{record.username}" * "{record.secret}"')
    return ("\n".join(lines) + "\n").encode("utf-8")


def render_ppp_provider(record: PppUplinkRecord) -> bytes:
    """Return the pppd options file for one PPPoE interface."""

    device = record.iface
    if record.vlan:
        device = f"{device}.{record.vlan}"
    lines = [
        AUTOGENERATED_HEADER,
        "# Minimalistic default options file for DSL/PPPoE connections",
        "noipdefault",
        "defaultroute",
        "replacedefaultroute",
        "persist",
    ]
    if record.mtu:
        lines.append(f"mtu {record.mtu}")
    lines.append(f"plugin rp-pppoe.so {device}")
    lines.append(f'user "{record.username}"')
    return ("\n".join(lines) + "\n").encode("utf-8")


__all__ = [
    "AUTOGENERATED_HEADER",
    "ppp_provider_name",
    "render_chap_secrets",
    "render_ppp_provider",
    "render_wpa_supplicant",
    "wpa_config_name",
]
