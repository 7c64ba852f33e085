from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from uplink_manager.controller import UplinkController
from uplink_manager.errors import RegistryError
from uplink_manager.event_log import UplinkEventLog
from uplink_manager.registry import InterfaceRecord
from uplink_manager.settings import UplinkSettings
from uplink_manager.store import PppUplinkStore, WifiUplinkStore


class FakeRegistry:
    def __init__(self, interfaces: list[InterfaceRecord] | None = None) -> None:
        self.interfaces: list[InterfaceRecord] = list(interfaces or [])
        self.updates: list[tuple[str, str, str, bool]] = []
        self.error: RegistryError | None = None

    def get_interfaces(self) -> list[InterfaceRecord]:
        return list(self.interfaces)

    def update_interface_type(
        self, name: str, type_: str, subtype: str, enabled: bool
    ) -> list[InterfaceRecord]:
        if self.error is not None:
            raise self.error
        self.updates.append((name, type_, subtype, enabled))
        for index, interface in enumerate(self.interfaces):
            if interface.name == name:
                self.interfaces[index] = replace(
                    interface, type=type_, subtype=subtype, enabled=enabled
                )
                break
        else:
            self.interfaces.append(
                InterfaceRecord(name=name, type=type_, subtype=subtype, enabled=enabled)
            )
        return list(self.interfaces)


class FakePluginManager:
    def __init__(self) -> None:
        self.running: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def enable_plugin(self, name: str) -> bool:
        self.calls.append(("enable", name))
        if name in self.running:
            return False
        self.running.add(name)
        return True

    def restart_plugin(self, name: str) -> None:
        self.calls.append(("restart", name))


@pytest.fixture
def settings(tmp_path: Path) -> UplinkSettings:
    return UplinkSettings(root=tmp_path)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def plugins() -> FakePluginManager:
    return FakePluginManager()


@pytest.fixture
def wifi_store(settings: UplinkSettings) -> WifiUplinkStore:
    return WifiUplinkStore(settings.wpa_config_path, settings.wpa_dir)


@pytest.fixture
def ppp_store(settings: UplinkSettings) -> PppUplinkStore:
    return PppUplinkStore(
        settings.ppp_config_path, settings.chap_secrets_path, settings.ppp_etc_dir
    )


@pytest.fixture
def controller(
    registry: FakeRegistry,
    plugins: FakePluginManager,
    wifi_store: WifiUplinkStore,
    ppp_store: PppUplinkStore,
) -> UplinkController:
    return UplinkController(
        registry=registry,
        plugins=plugins,
        wifi_store=wifi_store,
        ppp_store=ppp_store,
        event_log=UplinkEventLog(None),
    )
