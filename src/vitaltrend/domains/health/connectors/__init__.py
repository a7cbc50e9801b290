"""Health record connectors — abstraction layer over the record store."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from vitaltrend.domains.health.domain_logic.record_models import (
    HealthRecord,
    HealthThresholds,
)


@runtime_checkable
class HealthRecordSource(Protocol):
    """Read snapshot of one subject's records and threshold settings.

    Tools call these methods without knowing whether data comes from the
    remote tabular store, the local cache, or an in-memory fixture.
    """

    async def get_records(self) -> list[HealthRecord]:
        """All records for the subject, in stored order."""
        ...

    async def get_thresholds(self) -> HealthThresholds:
        """Alert thresholds; defaults when the subject has none configured."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active data source: 'local_cache' or 'memory'."""
        ...

    def get_provenance(self) -> dict[str, str]:
        """Return provenance metadata suitable for merging into tool output."""
        ...
