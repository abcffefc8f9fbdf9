"""Storage interface the batch runner depends on.

Any backend (in-memory, relational, document) that provides these methods
can feed the engine and persist its results.
"""

from __future__ import annotations

from typing import Protocol

from dealiq.models import AnalysisOutcome, BuyerRecord, MarketSnapshot, PropertyRecord


class AnalysisRepository(Protocol):
    def find_property(self, property_id: str) -> PropertyRecord | None:
        ...

    def find_market(self, area_key: str) -> MarketSnapshot | None:
        ...

    def list_property_ids(self) -> list[str]:
        ...

    def list_active_buyers(self) -> list[BuyerRecord]:
        ...

    def save_analysis(self, outcome: AnalysisOutcome) -> None:
        ...
