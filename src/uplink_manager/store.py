"""Lock-guarded JSON stores for the WPA and PPP uplink collections."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

from .errors import ConfigCorrupt, ConfigNotFound, PersistenceError, RenderError
from .records import PppUplinkRecord, WifiUplinkRecord
from .registry import PPP_SUBTYPE, WIFI_SUBTYPE, InterfaceRecord, is_uplink_enabled
from .render import (
    ppp_provider_name,
    render_chap_secrets,
    render_ppp_provider,
    render_wpa_supplicant,
    wpa_config_name,
)
from .storage import remove_file, write_private_file

RecordT = TypeVar("RecordT", WifiUplinkRecord, PppUplinkRecord)


class UplinkConfigStore(Generic[RecordT]):
    """Persist one uplink collection as a single JSON document.

    Every mutation reloads the document, merges the submitted record,
    rewrites the file and regenerates the daemon-facing artifacts without
    releasing the store lock, so the JSON and the daemon files are never
    observed out of sync by another writer.
    """

    collection_key: str = ""
    subtype: str = ""
    technology: str = ""
    record_factory: Callable[[Mapping[str, Any]], RecordT]

    def __init__(self, path: Path | str, *, lock: threading.Lock | None = None) -> None:
        self._path = Path(path)
        self._lock = lock if lock is not None else threading.Lock()

    # ------------------------------ properties -----------------------------
    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    # ------------------------------ operations -----------------------------
    def load(self) -> list[RecordT]:
        """Return the stored collection without taking the store lock.

        Writes replace the document atomically, so an unlocked read observes
        either the previous or the new collection.
        """

        return self._read()

    def load_locked(self) -> list[RecordT]:
        """Return the stored collection; the caller must hold :attr:`lock`."""

        return self._read()

    def merge(
        self, interfaces: Sequence[InterfaceRecord], new_record: RecordT
    ) -> list[RecordT]:
        """Insert or replace ``new_record`` and return the stored collection.

        Every other record has its ``enabled`` flag refreshed from
        ``interfaces``. The matched record keeps its position.
        """

        with self._lock:
            try:
                current = self.load_locked()
            except ConfigNotFound:
                current = []
            except PersistenceError as exc:
                # An unreadable document is replaced by the merged collection.
                logging.getLogger(__name__).warning(
                    "Discarding unreadable %s configuration: %s", self.technology, exc
                )
                current = []

            merged: list[RecordT] = []
            found = False
            for record in current:
                if record.iface == new_record.iface:
                    if not found:
                        merged.append(new_record)
                        found = True
                    continue
                merged.append(self._refresh(record, interfaces))

            if not found and new_record.iface:
                merged.append(new_record)

            self._save_locked(merged)
            self._write_artifacts(merged)
            return merged

    # ----------------------------- implementation --------------------------
    def _refresh(self, record: RecordT, interfaces: Sequence[InterfaceRecord]) -> RecordT:
        enabled = is_uplink_enabled(interfaces, record.iface, self.subtype)
        if enabled == record.enabled:
            return record
        return dataclasses.replace(record, enabled=enabled)

    def _read(self) -> list[RecordT]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError as exc:
            raise ConfigNotFound(f"No {self.technology} configuration at {self._path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Failed to read {self.technology} configuration: {exc}") from exc
        try:
            payload = json.loads(raw.decode("utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("Configuration file must contain a JSON object")
            items = payload.get(self.collection_key) or []
            if not isinstance(items, list):
                raise ValueError(f"{self.collection_key} must be a list")
            return [self.record_factory(item) for item in items]
        except ValueError as exc:
            raise ConfigCorrupt(
                f"Failed to parse {self.technology} configuration: {exc}"
            ) from exc

    def _save_locked(self, records: Sequence[RecordT]) -> None:
        document = json.dumps(
            {self.collection_key: [record.to_dict() for record in records]}, indent=1
        )
        try:
            write_private_file(self._path, document.encode("utf-8"))
        except OSError as exc:
            logging.getLogger(__name__).error(
                "Unable to persist %s configuration: %s", self.technology, exc
            )
            raise PersistenceError(
                f"Failed to save {self.technology} configuration: {exc}"
            ) from exc

    def _write_artifacts(self, records: Sequence[RecordT]) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


class WifiUplinkStore(UplinkConfigStore[WifiUplinkRecord]):
    """WPA supplicant uplinks, one ``wpa_<iface>.conf`` per enabled interface."""

    collection_key = "WPAs"
    subtype = WIFI_SUBTYPE
    technology = "wpa"
    record_factory = WifiUplinkRecord.from_dict

    def __init__(
        self,
        path: Path | str,
        output_dir: Path | str,
        *,
        lock: threading.Lock | None = None,
    ) -> None:
        super().__init__(path, lock=lock)
        self._output_dir = Path(output_dir)

    def config_path(self, iface: str) -> Path:
        return self._output_dir / wpa_config_name(iface)

    def _write_artifacts(self, records: Sequence[WifiUplinkRecord]) -> None:
        for record in records:
            target = self.config_path(record.iface)
            try:
                if record.enabled:
                    write_private_file(target, render_wpa_supplicant(record))
                elif remove_file(target):
                    logging.getLogger(__name__).debug(
                        "Removed wpa_supplicant config for disabled uplink %s", record.iface
                    )
            except OSError as exc:
                raise RenderError(
                    f"Failed to write wpa_supplicant config for {record.iface}: {exc}"
                ) from exc


class PppUplinkStore(UplinkConfigStore[PppUplinkRecord]):
    """PPPoE uplinks: a shared chap-secrets file plus one provider per record.

    Artifacts are regenerated for every stored record regardless of its
    ``enabled`` flag.
    """

    collection_key = "PPPs"
    subtype = PPP_SUBTYPE
    technology = "ppp"
    record_factory = PppUplinkRecord.from_dict

    def __init__(
        self,
        path: Path | str,
        secrets_path: Path | str,
        provider_dir: Path | str,
        *,
        lock: threading.Lock | None = None,
    ) -> None:
        super().__init__(path, lock=lock)
        self._secrets_path = Path(secrets_path)
        self._provider_dir = Path(provider_dir)

    @property
    def secrets_path(self) -> Path:
        return self._secrets_path

    def provider_path(self, iface: str) -> Path:
        return self._provider_dir / ppp_provider_name(iface)

    def _write_artifacts(self, records: Sequence[PppUplinkRecord]) -> None:
        artifacts: list[tuple[Path, bytes]] = [
            (self._secrets_path, render_chap_secrets(records))
        ]
        for record in records:
            artifacts.append((self.provider_path(record.iface), render_ppp_provider(record)))
        for target, content in artifacts:
            try:
                write_private_file(target, content)
            except OSError as exc:
                raise RenderError(f"Failed to write {target.name}: {exc}") from exc


__all__ = ["PppUplinkStore", "UplinkConfigStore", "WifiUplinkStore"]
