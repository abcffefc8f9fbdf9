"""Tests for database repository."""

import os
import tempfile

import pytest

from dealiq.config import AppConfig
from dealiq.errors import InvalidPropertyError
from dealiq.models import BuyerRecord, DealClass, MarketSnapshot, PropertyRecord
from dealiq.analysis.engine import DealAnalyzer
from dealiq.db.repository import Repository


@pytest.fixture
def repo():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    r = Repository(f"sqlite:///{path}")
    yield r
    os.unlink(path)


def _make_record(**overrides) -> PropertyRecord:
    defaults = {
        "id": "p-1",
        "address": "100 Test St",
        "city": "Austin",
        "state": "TX",
        "zip_code": "78701",
        "asking_price": 90_000,
        "sqft": 1400,
        "condition_score": 80,
        "known_arv": 200_000,
        "hazard_flags": ("flood zone",),
    }
    defaults.update(overrides)
    return PropertyRecord(**defaults)


def test_upsert_new_property(repo):
    assert repo.upsert_property(_make_record()) == "p-1"
    assert repo.list_property_ids() == ["p-1"]


def test_property_round_trip(repo):
    record = _make_record()
    repo.upsert_property(record)
    assert repo.find_property("p-1") == record


def test_upsert_existing_property(repo):
    repo.upsert_property(_make_record())
    repo.upsert_property(_make_record(asking_price=85_000))
    assert repo.list_property_ids() == ["p-1"]
    assert repo.find_property("p-1").asking_price == 85_000


def test_find_missing_property(repo):
    assert repo.find_property("nope") is None


def test_raw_property_validated_on_lookup(repo):
    repo.upsert_property({"id": "bad", "address": "", "asking_price": "n/a"})
    with pytest.raises(InvalidPropertyError):
        repo.find_property("bad")


def test_property_needs_id(repo):
    with pytest.raises(InvalidPropertyError):
        repo.upsert_property({"address": "1 Main St"})


def test_active_buyers(repo):
    repo.upsert_buyer(BuyerRecord(id="b-2", zip_codes=("78701",)))
    repo.upsert_buyer(BuyerRecord(id="b-1", strategies=("flip",)))
    repo.upsert_buyer(BuyerRecord(id="b-3", active=False))
    buyers = repo.list_active_buyers()
    assert [b.id for b in buyers] == ["b-1", "b-2"]
    assert buyers[0].strategies == ("flip",)


def test_market_round_trip(repo):
    market = MarketSnapshot(area_key="78701", sales_per_month=25, median_days_on_market=40)
    repo.upsert_market(market)
    assert repo.find_market("78701") == market
    assert repo.find_market("00000") is None


def test_save_and_get_analysis(repo):
    record = _make_record()
    outcome = DealAnalyzer(AppConfig()).analyze(record, buyers=[BuyerRecord(id="b-1")])
    repo.save_analysis(outcome)

    stored = repo.get_analysis("p-1")
    assert stored == outcome
    assert stored.matches.best_buyer == "b-1"


def test_reanalysis_overwrites(repo):
    analyzer = DealAnalyzer(AppConfig())
    repo.save_analysis(analyzer.analyze(_make_record()))
    repo.save_analysis(analyzer.analyze(_make_record(asking_price=400_000)))
    assert repo.get_analysis("p-1").analysis.classification.deal_class == DealClass.PASS
    assert len(repo.get_top_deals()) == 1


def test_get_top_deals(repo):
    analyzer = DealAnalyzer(AppConfig())
    for i, asking in enumerate((90_000, 150_000, 60_000)):
        repo.save_analysis(analyzer.analyze(_make_record(id=f"p-{i}", asking_price=asking)))
    top = repo.get_top_deals(limit=2)
    assert len(top) == 2
    assert top[0].analysis.scores.deal_score >= top[1].analysis.scores.deal_score
    hot = repo.get_top_deals(deal_class="HOT")
    assert all(o.analysis.classification.deal_class == DealClass.HOT for o in hot)
