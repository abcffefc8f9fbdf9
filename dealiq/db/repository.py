"""Database repository for properties, buyers, market snapshots and analyses."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from dealiq.db.tables import AnalysisRow, BuyerRow, MarketRow, PropertyRow, _utcnow, init_db
from dealiq.errors import InvalidPropertyError
from dealiq.models import AnalysisOutcome, BuyerRecord, MarketSnapshot, PropertyRecord


class Repository:
    """Handles all database operations."""

    def __init__(self, db_url: str = "sqlite:///dealiq.db"):
        self._session_factory = init_db(db_url)

    def _session(self) -> Session:
        return self._session_factory()

    # -- seeding ---------------------------------------------------------

    def upsert_property(self, item: PropertyRecord | dict[str, Any]) -> str:
        """Insert or update a property. Raw dicts are stored unvalidated."""
        if isinstance(item, PropertyRecord):
            data = item.model_dump(mode="json")
        else:
            data = dict(item)
        key = str(data.get("id") or "").strip()
        if not key:
            raise InvalidPropertyError("Cannot store a property without an id")

        with self._session() as session:
            row = session.get(PropertyRow, key)
            if row is None:
                row = PropertyRow(id=key)
                session.add(row)
            row.address = str(data.get("address") or "")
            row.city = str(data.get("city") or "")
            row.state = str(data.get("state") or "")
            row.zip_code = str(data.get("zip_code") or "")
            row.asking_price = _as_float(data.get("asking_price"))
            row.data = data
            row.updated_at = _utcnow()
            session.commit()
        return key

    def upsert_buyer(self, buyer: BuyerRecord) -> str:
        with self._session() as session:
            row = session.get(BuyerRow, buyer.id)
            if row is None:
                row = BuyerRow(id=buyer.id)
                session.add(row)
            row.name = buyer.name
            row.active = buyer.active
            row.data = buyer.model_dump(mode="json")
            session.commit()
        return buyer.id

    def upsert_market(self, market: MarketSnapshot) -> str:
        with self._session() as session:
            row = session.get(MarketRow, market.area_key)
            if row is None:
                row = MarketRow(area_key=market.area_key)
                session.add(row)
            row.data = market.model_dump(mode="json")
            session.commit()
        return market.area_key

    # -- lookups used by the batch runner -------------------------------

    def find_property(self, property_id: str) -> PropertyRecord | None:
        with self._session() as session:
            row = session.get(PropertyRow, property_id)
            if row is None:
                return None
            data = dict(row.data or {})
        return PropertyRecord.from_raw(data)

    def find_market(self, area_key: str) -> MarketSnapshot | None:
        with self._session() as session:
            row = session.get(MarketRow, area_key)
            if row is None:
                return None
            return MarketSnapshot.model_validate(row.data)

    def list_property_ids(self) -> list[str]:
        with self._session() as session:
            return [pid for (pid,) in session.query(PropertyRow.id).order_by(PropertyRow.id)]

    def list_active_buyers(self) -> list[BuyerRecord]:
        with self._session() as session:
            rows = session.query(BuyerRow).filter_by(active=True).order_by(BuyerRow.id).all()
            return [BuyerRecord.model_validate(r.data) for r in rows]

    # -- results ---------------------------------------------------------

    def save_analysis(self, outcome: AnalysisOutcome) -> None:
        """Store the latest analysis for a property, replacing any earlier one."""
        analysis = outcome.analysis
        with self._session() as session:
            row = session.get(AnalysisRow, analysis.property_id)
            if row is None:
                row = AnalysisRow(property_id=analysis.property_id)
                session.add(row)
            row.engine_version = analysis.engine_version
            row.deal_class = analysis.classification.deal_class.value
            row.deal_score = analysis.scores.deal_score
            row.recommended_offer = analysis.mao.recommended
            row.best_buyer = outcome.matches.best_buyer
            row.analysis = analysis.model_dump(mode="json")
            row.matches = outcome.matches.model_dump(mode="json")
            row.analyzed_at = _utcnow()
            session.commit()

    def get_analysis(self, property_id: str) -> AnalysisOutcome | None:
        with self._session() as session:
            row = session.get(AnalysisRow, property_id)
            if row is None:
                return None
            return AnalysisOutcome.model_validate({"analysis": row.analysis, "matches": row.matches})

    def get_top_deals(self, limit: int = 20, deal_class: str | None = None) -> list[AnalysisOutcome]:
        """Get the highest-scoring stored analyses."""
        with self._session() as session:
            query = session.query(AnalysisRow)
            if deal_class:
                query = query.filter_by(deal_class=deal_class)
            rows = query.order_by(AnalysisRow.deal_score.desc()).limit(limit).all()
            return [
                AnalysisOutcome.model_validate({"analysis": r.analysis, "matches": r.matches})
                for r in rows
            ]


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
