from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

CLIENT_EXTRAS_KEY = "client_extras"
LAST_BACKUP_KEY = "last_backup_at"


class ClientExtras(BaseModel):
    """Client data the backend has no column for."""

    emergency_contact: str | None = None


class KeyValueStore:
    """
    Small JSON-file backed key-value store.

    Created once at startup and handed to handlers through the dispatcher
    context. With ``path=None`` it only lives in memory.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._data: dict[str, Any] = {}
        if path is not None:
            self._data = self._read(path)

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("State file %s is not valid JSON, starting empty", path)
            return {}
        if not isinstance(data, dict):
            logger.warning("State file %s does not hold an object, starting empty", path)
            return {}
        return data

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    # ---- typed accessors ----

    def all_client_extras(self) -> dict[str, ClientExtras]:
        raw: dict[str, Any] = self.get(CLIENT_EXTRAS_KEY, {})
        return {client_id: ClientExtras.model_validate(value) for client_id, value in raw.items()}

    def get_client_extras(self, client_id: int) -> ClientExtras:
        raw = self.get(CLIENT_EXTRAS_KEY, {}).get(str(client_id))
        return ClientExtras.model_validate(raw) if raw else ClientExtras()

    def set_client_extras(self, client_id: int, extras: ClientExtras) -> None:
        raw = dict(self.get(CLIENT_EXTRAS_KEY, {}))
        raw[str(client_id)] = extras.model_dump()
        self.set(CLIENT_EXTRAS_KEY, raw)

    def delete_client_extras(self, client_id: int) -> None:
        raw = dict(self.get(CLIENT_EXTRAS_KEY, {}))
        if raw.pop(str(client_id), None) is not None:
            self.set(CLIENT_EXTRAS_KEY, raw)

    def get_last_backup(self) -> datetime | None:
        value = self.get(LAST_BACKUP_KEY)
        return datetime.fromisoformat(value) if value else None

    def set_last_backup(self, when: datetime) -> None:
        self.set(LAST_BACKUP_KEY, when.isoformat())
