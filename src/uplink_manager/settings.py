"""Runtime settings resolved from ``UPLINK_*`` environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .plugins import DEFAULT_PLUGIN_UNITS, PPP_PLUGIN, WIFI_UPLINK_PLUGIN

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000


@dataclass(frozen=True, slots=True)
class UplinkSettings:
    """Filesystem layout and service options for the uplink manager.

    Every path is resolved below ``root`` so tests and containers can
    relocate the whole tree.
    """

    root: Path = Path("/")
    log_level: str = "INFO"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    plugin_units: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_PLUGIN_UNITS))

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root))
        if self.port <= 0 or self.port > 65535:
            raise ValueError("Port must be between 1 and 65535")

    @property
    def wpa_dir(self) -> Path:
        return self.root / "configs" / "wifi_uplink"

    @property
    def wpa_config_path(self) -> Path:
        return self.wpa_dir / "wpa.json"

    @property
    def ppp_config_path(self) -> Path:
        return self.root / "configs" / "ppp" / "ppp.json"

    @property
    def ppp_etc_dir(self) -> Path:
        return self.root / "etc" / "ppp"

    @property
    def chap_secrets_path(self) -> Path:
        return self.ppp_etc_dir / "chap-secrets"

    @property
    def interfaces_path(self) -> Path:
        return self.root / "configs" / "base" / "interfaces.json"

    @property
    def event_log_path(self) -> Path:
        return self.root / "state" / "uplink" / "events.jsonl"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "UplinkSettings":
        env = os.environ if environ is None else environ
        port_raw = env.get("UPLINK_PORT", "")
        port = DEFAULT_PORT
        if port_raw.strip():
            try:
                port = int(port_raw)
            except ValueError:
                logging.getLogger(__name__).warning(
                    "Invalid UPLINK_PORT value %r; using %d", port_raw, DEFAULT_PORT
                )
        units = dict(DEFAULT_PLUGIN_UNITS)
        if env.get("UPLINK_WIFI_UNIT"):
            units[WIFI_UPLINK_PLUGIN] = env["UPLINK_WIFI_UNIT"]
        if env.get("UPLINK_PPP_UNIT"):
            units[PPP_PLUGIN] = env["UPLINK_PPP_UNIT"]
        return cls(
            root=Path(env.get("UPLINK_ROOT") or "/"),
            log_level=(env.get("UPLINK_LOG_LEVEL") or "INFO").upper(),
            host=env.get("UPLINK_HOST") or DEFAULT_HOST,
            port=port,
            plugin_units=units,
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


__all__ = ["UplinkSettings", "configure_logging"]
