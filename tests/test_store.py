import json
import stat
import threading
from pathlib import Path

import pytest

from uplink_manager.errors import ConfigCorrupt, ConfigNotFound, PersistenceError, RenderError
from uplink_manager.records import PppUplinkRecord, WifiNetworkEntry, WifiUplinkRecord
from uplink_manager.registry import InterfaceRecord
from uplink_manager.store import PppUplinkStore, WifiUplinkStore


def _wifi(iface: str, *, enabled: bool = True, ssid: str = "Home") -> WifiUplinkRecord:
    return WifiUplinkRecord(
        iface=iface,
        enabled=enabled,
        networks=(
            WifiNetworkEntry(ssid=ssid, password="secret123", key_mgmt="WPA-PSK WPA-PSK-SHA256"),
        ),
    )


def _uplink(name: str, subtype: str = "wifi", enabled: bool = True) -> InterfaceRecord:
    return InterfaceRecord(name=name, type="Uplink", subtype=subtype, enabled=enabled)


def test_load_missing_file_raises_not_found(wifi_store: WifiUplinkStore) -> None:
    with pytest.raises(ConfigNotFound):
        wifi_store.load()


def test_load_corrupt_file_raises(wifi_store: WifiUplinkStore) -> None:
    wifi_store.path.parent.mkdir(parents=True)
    wifi_store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigCorrupt):
        wifi_store.load()

    wifi_store.path.write_text(json.dumps({"WPAs": [{"Iface": 3}]}), encoding="utf-8")
    with pytest.raises(ConfigCorrupt):
        wifi_store.load_locked()


def test_round_trip_preserves_order_and_fields(wifi_store: WifiUplinkStore) -> None:
    records = [
        WifiUplinkRecord(
            iface="wlan2",
            enabled=True,
            networks=(
                WifiNetworkEntry(
                    ssid="B",
                    password="b-pass",
                    key_mgmt="SAE",
                    priority="3",
                    bssid="aa:bb:cc:dd:ee:ff",
                ),
                WifiNetworkEntry(ssid="A", password="a-pass", key_mgmt="WPA-PSK", disabled=True),
            ),
        ),
        _wifi("wlan1", enabled=False),
    ]
    interfaces = [_uplink("wlan2"), _uplink("wlan1", enabled=False)]
    for record in records:
        wifi_store.merge(interfaces, record)

    assert wifi_store.load() == records


def test_document_format_matches_collection_layout(wifi_store: WifiUplinkStore) -> None:
    wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))

    payload = json.loads(wifi_store.path.read_text(encoding="utf-8"))

    assert payload == {
        "WPAs": [
            {
                "Iface": "wlan1",
                "Enabled": True,
                "Networks": [
                    {
                        "Disabled": False,
                        "Password": "secret123",
                        "SSID": "Home",
                        "KeyMgmt": "WPA-PSK WPA-PSK-SHA256",
                    }
                ],
            }
        ]
    }


def test_files_are_owner_only(wifi_store: WifiUplinkStore, ppp_store: PppUplinkStore) -> None:
    wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))
    ppp_store.merge([], PppUplinkRecord(iface="eth1", username="alice", secret="pw"))

    for path in (
        wifi_store.path,
        wifi_store.config_path("wlan1"),
        ppp_store.path,
        ppp_store.secrets_path,
        ppp_store.provider_path("eth1"),
    ):
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert not path.with_name(path.name + ".tmp").exists()


def test_merge_is_idempotent(wifi_store: WifiUplinkStore) -> None:
    interfaces = [_uplink("wlan1")]
    record = _wifi("wlan1")

    once = wifi_store.merge(interfaces, record)
    twice = wifi_store.merge(interfaces, record)

    assert once == twice == [record]
    assert wifi_store.load() == [record]


def test_merge_replaces_in_place_and_refreshes_every_other_record(
    wifi_store: WifiUplinkStore,
) -> None:
    wifi_store.merge([_uplink("wlan1"), _uplink("wlan2")], _wifi("wlan1"))
    wifi_store.merge([_uplink("wlan1"), _uplink("wlan2")], _wifi("wlan2"))

    # wlan2 was disabled in the registry since it was stored.
    interfaces = [_uplink("wlan1"), _uplink("wlan2", enabled=False)]
    updated = _wifi("wlan1", ssid="Changed")
    merged = wifi_store.merge(interfaces, updated)

    assert [record.iface for record in merged] == ["wlan1", "wlan2"]
    assert merged[0] == updated
    assert merged[1].enabled is False
    assert wifi_store.load() == merged
    assert not wifi_store.config_path("wlan2").exists()


def test_merge_refresh_requires_matching_role(wifi_store: WifiUplinkStore) -> None:
    wifi_store.merge([_uplink("wlan0")], _wifi("wlan0"))
    wifi_store.merge([_uplink("wlan0")], _wifi("wlan3"))

    # wlan0 now appears in the registry as a PPP uplink.
    merged = wifi_store.merge([_uplink("wlan0", subtype="ppp")], _wifi("wlan3"))

    assert [(record.iface, record.enabled) for record in merged] == [
        ("wlan0", False),
        ("wlan3", True),
    ]


def test_merge_ignores_empty_identifier(wifi_store: WifiUplinkStore) -> None:
    merged = wifi_store.merge([], _wifi(""))

    assert merged == []
    assert wifi_store.load() == []


def test_merge_recovers_from_corrupt_document(wifi_store: WifiUplinkStore) -> None:
    wifi_store.path.parent.mkdir(parents=True)
    wifi_store.path.write_text("garbage", encoding="utf-8")

    merged = wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))

    assert merged == [_wifi("wlan1")]
    assert wifi_store.load() == merged


def test_non_utf8_document_is_corrupt_and_recoverable(wifi_store: WifiUplinkStore) -> None:
    wifi_store.path.parent.mkdir(parents=True)
    wifi_store.path.write_bytes(b"\xff\xfe garbage")

    with pytest.raises(ConfigCorrupt):
        wifi_store.load()

    merged = wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))

    assert merged == [_wifi("wlan1")]
    assert wifi_store.load() == merged


def test_merge_starts_empty_when_document_unreadable(
    wifi_store: WifiUplinkStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))
    real_read_bytes = Path.read_bytes

    def failing_read_bytes(self: Path) -> bytes:
        if self == wifi_store.path:
            raise PermissionError(13, "Permission denied")
        return real_read_bytes(self)

    monkeypatch.setattr(Path, "read_bytes", failing_read_bytes)

    with pytest.raises(PersistenceError, match="Permission denied"):
        wifi_store.load()

    merged = wifi_store.merge([_uplink("wlan2")], _wifi("wlan2"))

    assert merged == [_wifi("wlan2")]
    monkeypatch.undo()
    assert wifi_store.load() == [_wifi("wlan2")]
    assert wifi_store.config_path("wlan2").exists()


def test_disabled_interface_artifact_removed(wifi_store: WifiUplinkStore) -> None:
    wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))
    assert wifi_store.config_path("wlan1").exists()

    wifi_store.merge([_uplink("wlan1", enabled=False)], _wifi("wlan1", enabled=False))

    assert not wifi_store.config_path("wlan1").exists()


def test_artifacts_rendered_while_lock_held(
    wifi_store: WifiUplinkStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    observed: list[bool] = []

    def fake_render(record: WifiUplinkRecord) -> bytes:
        observed.append(wifi_store.lock.locked())
        return b"rendered\n"

    monkeypatch.setattr("uplink_manager.store.render_wpa_supplicant", fake_render)

    wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))

    assert observed == [True]
    assert not wifi_store.lock.locked()
    assert wifi_store.config_path("wlan1").read_bytes() == b"rendered\n"


def test_save_failure_raises_and_keeps_previous_document(
    wifi_store: WifiUplinkStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    wifi_store.merge([_uplink("wlan1")], _wifi("wlan1"))

    def failing_write(path: Path, data: bytes) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("uplink_manager.store.write_private_file", failing_write)

    with pytest.raises(PersistenceError, match="disk full"):
        wifi_store.merge([_uplink("wlan1")], _wifi("wlan1", ssid="Changed"))

    assert wifi_store.load() == [_wifi("wlan1")]
    assert not wifi_store.lock.locked()


def test_render_failure_after_persist(
    ppp_store: PppUplinkStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    from uplink_manager import store as store_module

    real_write = store_module.write_private_file
    written: list[str] = []

    def selective_write(path: Path, data: bytes) -> None:
        if path == ppp_store.secrets_path:
            raise OSError("read-only filesystem")
        written.append(path.name)
        real_write(path, data)

    monkeypatch.setattr("uplink_manager.store.write_private_file", selective_write)

    record = PppUplinkRecord(iface="eth1", username="alice", secret="pw")
    with pytest.raises(RenderError, match="chap-secrets"):
        ppp_store.merge([], record)

    assert written == ["ppp.json"]
    assert ppp_store.load() == [record]
    assert not ppp_store.provider_path("eth1").exists()


def test_ppp_artifacts_ignore_enablement(ppp_store: PppUplinkStore) -> None:
    ppp_store.merge([], PppUplinkRecord(iface="eth1", username="alice", secret="pw"))
    ppp_store.merge(
        [], PppUplinkRecord(iface="eth2", username="bob", secret="pw2", enabled=True, vlan="7")
    )

    secrets = ppp_store.secrets_path.read_text(encoding="utf-8")
    assert '"alice" * "pw"' in secrets
    assert '"bob" * "pw2"' in secrets
    assert ppp_store.provider_path("eth1").exists()
    assert "plugin rp-pppoe.so eth2.7" in ppp_store.provider_path("eth2").read_text(
        encoding="utf-8"
    )


def test_concurrent_merges_do_not_lose_updates(wifi_store: WifiUplinkStore) -> None:
    names = [f"wlan{index}" for index in range(8)]
    interfaces = [_uplink(name) for name in names]
    threads = [
        threading.Thread(target=wifi_store.merge, args=(interfaces, _wifi(name)))
        for name in names
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(record.iface for record in wifi_store.load()) == names
