"""Concrete in-process HealthRecordSource implementations."""

from __future__ import annotations

from typing import Iterable

from vitaltrend.domains.health.domain_logic.record_models import (
    DEFAULT_THRESHOLDS,
    HealthRecord,
    HealthThresholds,
)


class InMemoryRecordSource:
    """Serves a fixed snapshot. Used for injection and tests."""

    def __init__(
        self,
        records: Iterable[HealthRecord] = (),
        thresholds: HealthThresholds | None = None,
    ) -> None:
        self._records = list(records)
        self._thresholds = thresholds or DEFAULT_THRESHOLDS

    async def get_records(self) -> list[HealthRecord]:
        return list(self._records)

    async def get_thresholds(self) -> HealthThresholds:
        return self._thresholds

    @property
    def data_source(self) -> str:
        return "memory"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": f"In-memory snapshot of {len(self._records)} records.",
        }
