"""Plugin lifecycle management for the uplink daemons."""

from __future__ import annotations

import logging
import subprocess
from typing import Mapping, Sequence

from .errors import PluginError

WIFI_UPLINK_PLUGIN = "WIFI-UPLINK"
PPP_PLUGIN = "PPP"

DEFAULT_PLUGIN_UNITS: dict[str, str] = {
    WIFI_UPLINK_PLUGIN: "wifi-uplink.service",
    PPP_PLUGIN: "ppp-uplink.service",
}


class PluginManager:
    """Starts and restarts the daemons that consume generated configuration."""

    def enable_plugin(self, name: str) -> bool:  # pragma: no cover - interface only
        """Enable ``name`` and return ``True`` when it was freshly started."""

        raise NotImplementedError

    def restart_plugin(self, name: str) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


class SystemdPluginManager(PluginManager):
    """Drive plugins as systemd units via ``systemctl``."""

    def __init__(
        self,
        units: Mapping[str, str] | None = None,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._units = dict(DEFAULT_PLUGIN_UNITS if units is None else units)
        self._timeout = timeout

    # ------------------------------- helpers -------------------------------
    def _run(self, args: Sequence[str]) -> str:
        try:
            completed = subprocess.run(
                list(args),
                check=True,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:  # pragma: no cover - environment specific
            raise PluginError("systemctl command unavailable") from exc
        except subprocess.TimeoutExpired as exc:  # pragma: no cover - environment specific
            raise PluginError("systemctl command timed out") from exc
        except subprocess.CalledProcessError as exc:
            error_output = (exc.stderr or "").strip() or (exc.stdout or "").strip() or str(exc)
            raise PluginError(error_output) from exc
        return completed.stdout

    def _unit(self, name: str) -> str:
        try:
            return self._units[name]
        except KeyError as exc:
            raise PluginError(f"Unknown plugin {name!r}") from exc

    def _is_active(self, unit: str) -> bool:
        try:
            self._run(["systemctl", "is-active", "--quiet", unit])
        except PluginError:
            return False
        return True

    # ------------------------------ operations -----------------------------
    def enable_plugin(self, name: str) -> bool:
        unit = self._unit(name)
        if self._is_active(unit):
            return False
        self._run(["systemctl", "enable", "--now", unit])
        logging.getLogger(__name__).info("Started plugin %s (%s)", name, unit)
        return True

    def restart_plugin(self, name: str) -> None:
        unit = self._unit(name)
        self._run(["systemctl", "restart", unit])
        logging.getLogger(__name__).info("Restarted plugin %s (%s)", name, unit)


__all__ = [
    "DEFAULT_PLUGIN_UNITS",
    "PPP_PLUGIN",
    "PluginManager",
    "SystemdPluginManager",
    "WIFI_UPLINK_PLUGIN",
]
