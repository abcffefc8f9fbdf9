"""In-memory repository, used by tests and by JSON-file batch runs."""

from __future__ import annotations

from typing import Iterable

from dealiq.errors import InvalidPropertyError
from dealiq.models import AnalysisOutcome, BuyerRecord, MarketSnapshot, PropertyRecord


class InMemoryRepository:
    def __init__(
        self,
        properties: Iterable[PropertyRecord | dict] = (),
        buyers: Iterable[BuyerRecord] = (),
        markets: Iterable[MarketSnapshot] = (),
    ):
        self._properties: dict[str, PropertyRecord | dict] = {}
        self._buyers: dict[str, BuyerRecord] = {b.id: b for b in buyers}
        self._markets: dict[str, MarketSnapshot] = {m.area_key: m for m in markets}
        self.analyses: dict[str, AnalysisOutcome] = {}
        for item in properties:
            self.add_property(item)

    def add_property(self, item: PropertyRecord | dict) -> str:
        """Store a record as-is; raw dicts are validated when looked up."""
        key = item.id if isinstance(item, PropertyRecord) else str(item.get("id") or "").strip()
        if not key:
            raise InvalidPropertyError("Cannot store a property without an id")
        self._properties[key] = item
        return key

    def find_property(self, property_id: str) -> PropertyRecord | None:
        item = self._properties.get(property_id)
        if item is None or isinstance(item, PropertyRecord):
            return item
        return PropertyRecord.from_raw(item)

    def find_market(self, area_key: str) -> MarketSnapshot | None:
        return self._markets.get(area_key)

    def list_property_ids(self) -> list[str]:
        return list(self._properties)

    def list_active_buyers(self) -> list[BuyerRecord]:
        return [b for b in self._buyers.values() if b.active]

    def save_analysis(self, outcome: AnalysisOutcome) -> None:
        self.analyses[outcome.analysis.property_id] = outcome
