"""FastAPI application exposing the uplink configuration endpoints."""
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from .controller import UplinkController
from .errors import UplinkError
from .event_log import UplinkEventLog
from .plugins import PluginManager, SystemdPluginManager
from .records import PppUplinkRecord, WifiNetworkEntry, WifiUplinkRecord
from .registry import InterfaceRegistry, JsonInterfaceRegistry
from .settings import UplinkSettings
from .store import PppUplinkStore, WifiUplinkStore
from .version import APP_VERSION


class _UplinkPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class WifiNetworkPayload(_UplinkPayload):
    disabled: bool = Field(default=False, alias="Disabled")
    password: str = Field(default="", alias="Password")
    ssid: str = Field(default="", alias="SSID")
    key_mgmt: str = Field(default="", alias="KeyMgmt")
    priority: str = Field(default="", alias="Priority")
    bssid: str = Field(default="", alias="BSSID")

    def to_entry(self) -> WifiNetworkEntry:
        return WifiNetworkEntry(
            ssid=self.ssid,
            password=self.password,
            key_mgmt=self.key_mgmt,
            disabled=self.disabled,
            priority=self.priority,
            bssid=self.bssid,
        )


class WifiUplinkPayload(_UplinkPayload):
    iface: str = Field(default="", alias="Iface")
    enabled: bool = Field(default=False, alias="Enabled")
    networks: list[WifiNetworkPayload] = Field(default_factory=list, alias="Networks")

    def to_record(self) -> WifiUplinkRecord:
        return WifiUplinkRecord(
            iface=self.iface,
            enabled=self.enabled,
            networks=tuple(network.to_entry() for network in self.networks),
        )


class PppUplinkPayload(_UplinkPayload):
    iface: str = Field(default="", alias="Iface")
    enabled: bool = Field(default=False, alias="Enabled")
    username: str = Field(default="", alias="Username")
    secret: str = Field(default="", alias="Secret")
    vlan: str = Field(default="", alias="VLAN")
    mtu: str = Field(default="", alias="MTU")

    def to_record(self) -> PppUplinkRecord:
        return PppUplinkRecord(
            iface=self.iface,
            username=self.username,
            secret=self.secret,
            enabled=self.enabled,
            vlan=self.vlan,
            mtu=self.mtu,
        )


def _http_error(exc: UplinkError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def create_app(
    settings: UplinkSettings | None = None,
    *,
    registry: InterfaceRegistry | None = None,
    plugins: PluginManager | None = None,
    event_log: UplinkEventLog | None = None,
) -> FastAPI:
    app = FastAPI(title="Uplink Manager", version=APP_VERSION)

    logger = logging.getLogger(__name__)

    if settings is None:
        settings = UplinkSettings.from_env()
    if registry is None:
        registry = JsonInterfaceRegistry(settings.interfaces_path)
    if plugins is None:
        plugins = SystemdPluginManager(settings.plugin_units)
    if event_log is None:
        event_log = UplinkEventLog(settings.event_log_path)

    controller = UplinkController(
        registry=registry,
        plugins=plugins,
        wifi_store=WifiUplinkStore(settings.wpa_config_path, settings.wpa_dir),
        ppp_store=PppUplinkStore(
            settings.ppp_config_path, settings.chap_secrets_path, settings.ppp_etc_dir
        ),
        event_log=event_log,
    )
    app.state.controller = controller
    logger.info("Uplink manager using configuration root %s", settings.root)

    @app.get("/api/uplink/wifi")
    async def get_wifi_uplinks() -> dict[str, object]:
        try:
            records = await run_in_threadpool(controller.get_wifi_config)
        except UplinkError as exc:
            raise HTTPException(
                status_code=exc.status_code, detail="Failed to load wpa configuration"
            ) from exc
        return {"WPAs": [record.to_dict() for record in records]}

    @app.put("/api/uplink/wifi")
    async def update_wifi_uplink(payload: WifiUplinkPayload) -> dict[str, str]:
        try:
            await run_in_threadpool(controller.update_wifi_uplink, payload.to_record())
        except UplinkError as exc:
            raise _http_error(exc) from exc
        return {"status": "ok"}

    @app.get("/api/uplink/ppp")
    async def get_ppp_uplinks() -> dict[str, object]:
        try:
            records = await run_in_threadpool(controller.get_ppp_config)
        except UplinkError as exc:
            raise HTTPException(
                status_code=exc.status_code, detail="Failed to load ppp configuration"
            ) from exc
        return {"PPPs": [record.to_dict() for record in records]}

    @app.put("/api/uplink/ppp")
    async def update_ppp_uplink(payload: PppUplinkPayload) -> dict[str, str]:
        try:
            await run_in_threadpool(controller.update_ppp_uplink, payload.to_record())
        except UplinkError as exc:
            raise _http_error(exc) from exc
        return {"status": "ok"}

    @app.get("/api/uplink/log")
    async def get_uplink_log(
        limit: int | None = None, technology: str | None = None
    ) -> dict[str, object]:
        entries = event_log.tail(limit, technology=technology)
        return {"entries": [entry.to_dict() for entry in entries]}

    return app


__all__ = ["PppUplinkPayload", "WifiNetworkPayload", "WifiUplinkPayload", "create_app"]
