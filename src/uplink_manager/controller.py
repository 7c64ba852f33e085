"""Per-request orchestration of uplink updates."""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Sequence, TypeVar

from .errors import RenderError, UplinkError
from .event_log import UplinkEventLog
from .plugins import PPP_PLUGIN, WIFI_UPLINK_PLUGIN, PluginManager
from .records import PppUplinkRecord, WifiUplinkRecord
from .registry import PPP_SUBTYPE, UPLINK_TYPE, WIFI_SUBTYPE, InterfaceRegistry
from .store import PppUplinkStore, UplinkConfigStore, WifiUplinkStore
from .validation import validate_ppp_record, validate_wifi_record, with_default_key_mgmt

RecordT = TypeVar("RecordT", WifiUplinkRecord, PppUplinkRecord)


class UplinkController:
    """Validate, register, persist, render and (re)start one uplink.

    The stages run strictly in that order. A failure stops the sequence and
    is re-raised to the caller; nothing already done is rolled back.
    """

    def __init__(
        self,
        *,
        registry: InterfaceRegistry,
        plugins: PluginManager,
        wifi_store: WifiUplinkStore,
        ppp_store: PppUplinkStore,
        event_log: UplinkEventLog | None = None,
    ) -> None:
        self._registry = registry
        self._plugins = plugins
        self._wifi_store = wifi_store
        self._ppp_store = ppp_store
        self._event_log = event_log if event_log is not None else UplinkEventLog(None)

    @property
    def event_log(self) -> UplinkEventLog:
        return self._event_log

    # ------------------------------ operations -----------------------------
    def get_wifi_config(self) -> list[WifiUplinkRecord]:
        return self._wifi_store.load()

    def get_ppp_config(self) -> list[PppUplinkRecord]:
        return self._ppp_store.load()

    def update_wifi_uplink(self, record: WifiUplinkRecord) -> list[WifiUplinkRecord]:
        record = dataclasses.replace(
            record, networks=tuple(with_default_key_mgmt(item) for item in record.networks)
        )
        return self._update(
            record,
            technology="wpa",
            subtype=WIFI_SUBTYPE,
            plugin=WIFI_UPLINK_PLUGIN,
            validate=validate_wifi_record,
            store=self._wifi_store,
            is_active=lambda item: item.enabled and item.has_active_network,
        )

    def update_ppp_uplink(self, record: PppUplinkRecord) -> list[PppUplinkRecord]:
        return self._update(
            record,
            technology="ppp",
            subtype=PPP_SUBTYPE,
            plugin=PPP_PLUGIN,
            validate=validate_ppp_record,
            store=self._ppp_store,
            is_active=lambda item: item.enabled,
        )

    # ----------------------------- implementation --------------------------
    def _update(
        self,
        record: RecordT,
        *,
        technology: str,
        subtype: str,
        plugin: str,
        validate: Callable[[RecordT], None],
        store: UplinkConfigStore[RecordT],
        is_active: Callable[[RecordT], bool],
    ) -> list[RecordT]:
        iface = record.iface
        stage = "validate"
        try:
            validate(record)
            stage = "register"
            interfaces = self._registry.update_interface_type(
                iface, UPLINK_TYPE, subtype, record.enabled
            )
            stage = "persist"
            merged = store.merge(interfaces, record)
            self._event_log.record(
                technology,
                stage,
                iface,
                f"Stored {len(merged)} {technology} uplink(s)",
                metadata={"enabled": record.enabled},
            )
            stage = "plugin"
            action = self._apply_plugin(plugin, merged, is_active)
        except UplinkError as exc:
            if isinstance(exc, RenderError):
                stage = "render"
            self._event_log.record(technology, stage, iface, str(exc), ok=False)
            raise
        self._event_log.record(technology, stage, iface, f"Plugin {plugin} {action}")
        return merged

    def _apply_plugin(
        self,
        plugin: str,
        records: Sequence[RecordT],
        is_active: Callable[[RecordT], bool],
    ) -> str:
        if any(is_active(item) for item in records):
            if self._plugins.enable_plugin(plugin):
                return "started"
        else:
            logging.getLogger(__name__).debug(
                "No enabled uplinks for %s; restarting to apply", plugin
            )
        self._plugins.restart_plugin(plugin)
        return "restarted"


__all__ = ["UplinkController"]
