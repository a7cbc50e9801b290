"""Local cache record source — reads the JSON snapshot kept beside the remote store.

The cache file holds either a bare list of stored records or an object::

    {"records": [...], "thresholds": {"systolicHigh": 140, ...}}

Individual malformed records are skipped; a file that is not valid JSON
raises ``RecordCacheError``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from vitaltrend.domains.health.domain_logic.record_codec import records_from_dicts
from vitaltrend.domains.health.domain_logic.record_models import (
    HealthRecord,
    HealthThresholds,
)

logger = logging.getLogger(__name__)


class RecordCacheError(Exception):
    """Raised when the local cache file cannot be decoded."""


class LocalCacheRecordSource:
    """HealthRecordSource backed by a JSON file on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    def _load(self) -> dict[str, Any]:
        if not self._path.is_file():
            logger.info("Record cache not found at %s; no records available", self._path)
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RecordCacheError(f"Failed to read record cache {self._path}: {exc}") from exc

        if isinstance(data, list):
            return {"records": data}
        if isinstance(data, dict):
            return data
        raise RecordCacheError(
            f"Record cache {self._path} must hold a list or an object, got {type(data).__name__}"
        )

    async def get_records(self) -> list[HealthRecord]:
        raw = self._load().get("records") or []
        if not isinstance(raw, list):
            logger.warning("Ignoring non-list 'records' entry in %s", self._path)
            return []
        records = records_from_dicts(raw)
        logger.debug("Loaded %d of %d cached records from %s", len(records), len(raw), self._path)
        return records

    async def get_thresholds(self) -> HealthThresholds:
        raw = self._load().get("thresholds")
        return HealthThresholds.from_mapping(raw if isinstance(raw, dict) else None)

    @property
    def data_source(self) -> str:
        return "local_cache"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": f"Records read from the local cache at {self._path}.",
        }
