"""
JSON File Storage Implementation

Stores the ledger as one JSON document (pydantic serialization of AppData).

TRADEOFFS:
- The whole snapshot is rewritten on every save (fine for a personal ledger)
- Writes go to a temporary file first and are moved into place, so a
  crash mid-write leaves the previous snapshot intact
- A missing or unreadable file loads as an empty ledger
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from payback.config import get_settings
from payback.models.ledger import AppData
from payback.services.storage.interface import PersistenceError, PersistenceStore


class JsonFilePersistenceStore(PersistenceStore):
    """File-backed snapshot store."""

    def __init__(self, path: Optional[Path] = None):
        self._path = path or get_settings().persistence.data_path
        self._logger = structlog.get_logger()

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self._path)

    def _read(self) -> Optional[str]:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    async def save(self, data: AppData) -> None:
        """Write the snapshot atomically."""
        payload = data.model_dump_json()
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            raise PersistenceError(f"Failed to write ledger snapshot: {e}") from e

    async def load(self) -> AppData:
        """Load the snapshot; missing or corrupt files yield empty data."""
        try:
            payload = await asyncio.to_thread(self._read)
        except OSError as e:
            self._logger.warning("snapshot_read_failed", path=str(self._path), error=str(e))
            return AppData()

        if payload is None:
            return AppData()

        try:
            return AppData.model_validate_json(payload)
        except ValidationError as e:
            self._logger.warning(
                "snapshot_corrupt",
                path=str(self._path),
                error_count=e.error_count(),
            )
            return AppData()

    async def clear(self) -> None:
        """Delete the snapshot file if present."""
        try:
            await asyncio.to_thread(self._path.unlink, True)
        except OSError as e:
            raise PersistenceError(f"Failed to clear ledger snapshot: {e}") from e
