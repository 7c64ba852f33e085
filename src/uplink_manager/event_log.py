"""Persistent record of uplink reconciliation events."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Deque, Iterable

from .storage import write_private_file


@dataclass(slots=True)
class UplinkEvent:
    """One stage outcome of an uplink update."""

    timestamp: float
    technology: str
    stage: str
    iface: str
    message: str
    ok: bool = True
    metadata: dict[str, object | None] | None = None

    def to_dict(self) -> dict[str, object | None]:
        payload: dict[str, object | None] = {
            "timestamp": self.timestamp,
            "technology": self.technology,
            "stage": self.stage,
            "iface": self.iface,
            "message": self.message,
            "ok": self.ok,
        }
        if self.metadata:
            payload["metadata"] = self.metadata
        return payload


class UplinkEventLog:
    """Bounded in-memory event history mirrored to a JSON-lines file.

    Secrets never reach this log; callers pass interface names and stage
    outcomes only.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        max_entries: int = 500,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._path: Path | None = Path(path) if path is not None else None
        self._entries: Deque[UplinkEvent] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        if self._path is not None:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:  # pragma: no cover - filesystem errors are rare
                logging.getLogger(__name__).warning(
                    "Unable to prepare uplink event log directory: %s", exc
                )
                self._path = None
        self._restore()

    @property
    def path(self) -> Path | None:
        return self._path

    def record(
        self,
        technology: str,
        stage: str,
        iface: str,
        message: str,
        *,
        ok: bool = True,
        metadata: dict[str, object | None] | None = None,
    ) -> UplinkEvent:
        """Append an event, mirror it to the module logger and return it."""

        entry = UplinkEvent(
            timestamp=time.time(),
            technology=technology,
            stage=stage,
            iface=iface,
            message=message,
            ok=ok,
            metadata={key: value for key, value in (metadata or {}).items() if value is not None}
            or None,
        )
        logger = logging.getLogger(__name__)
        level = logging.INFO if ok else logging.WARNING
        logger.log(level, "%s uplink %s [%s]: %s", technology, iface or "-", stage, message)
        with self._lock:
            self._entries.append(entry)
            self._append_persistent(entry)
        return entry

    def tail(
        self,
        limit: int | None = None,
        *,
        technology: str | None = None,
    ) -> list[UplinkEvent]:
        """Return the most recent events, optionally for one technology."""

        with self._lock:
            entries: Iterable[UplinkEvent] = list(self._entries)
        if technology:
            entries = [entry for entry in entries if entry.technology == technology]
        entries = list(entries)
        if limit is not None:
            limit_value = max(1, int(limit))
            entries = entries[-limit_value:]
        return entries

    def _restore(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            lines = self._path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as exc:  # pragma: no cover - best effort logging
            logging.getLogger(__name__).warning("Unable to load uplink event log: %s", exc)
            return
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except ValueError:
                continue
            entry = self._deserialize(payload)
            if entry is not None:
                self._entries.append(entry)
        if len(lines) > len(self._entries):
            self._compact()

    def _compact(self) -> None:
        # The file keeps only what the in-memory history retains.
        document = "".join(
            json.dumps(entry.to_dict(), separators=(",", ":")) + "\n" for entry in self._entries
        )
        try:
            write_private_file(self._path, document.encode("utf-8"))
        except OSError as exc:  # pragma: no cover - best effort logging
            logging.getLogger(__name__).warning("Unable to compact uplink event log: %s", exc)

    @staticmethod
    def _deserialize(payload: object) -> UplinkEvent | None:
        if not isinstance(payload, dict):
            return None
        stage = payload.get("stage")
        message = payload.get("message")
        if not isinstance(stage, str) or not isinstance(message, str):
            return None
        try:
            timestamp = float(payload.get("timestamp", time.time()))
        except (TypeError, ValueError):
            timestamp = time.time()
        metadata = payload.get("metadata")
        return UplinkEvent(
            timestamp=timestamp,
            technology=str(payload.get("technology") or ""),
            stage=stage,
            iface=str(payload.get("iface") or ""),
            message=message,
            ok=bool(payload.get("ok", True)),
            metadata=metadata if isinstance(metadata, dict) else None,
        )

    def _append_persistent(self, entry: UplinkEvent) -> None:
        if self._path is None:
            return
        try:
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry.to_dict(), separators=(",", ":")) + "\n")
        except OSError as exc:  # pragma: no cover - best effort logging
            logging.getLogger(__name__).warning("Unable to persist uplink event: %s", exc)


__all__ = ["UplinkEvent", "UplinkEventLog"]
