"""Tests for batch analysis."""

import threading

import pytest

from dealiq.batch import BatchRunner
from dealiq.config import AppConfig, BatchConfig, EnrichmentConfig
from dealiq.db.memory import InMemoryRepository
from dealiq.enrichment import CircuitBreaker, Enricher, EnrichmentThrottle
from dealiq.errors import BatchInProgressError, EnrichmentError
from dealiq.models import BuyerRecord, EnrichmentResult, MarketSnapshot, PropertyRecord


def _raw(i: int, **overrides) -> dict:
    raw = {
        "id": f"p-{i}",
        "address": f"{100 + i} Investor Blvd",
        "zip_code": "78701",
        "asking_price": 90_000 + i * 1_000,
        "sqft": 1400,
        "condition_score": 80,
        "known_arv": 200_000,
    }
    raw.update(overrides)
    return raw


def _config(**batch) -> AppConfig:
    return AppConfig(batch=BatchConfig(lock_timeout_seconds=0.05, **batch))


class _StubClient:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    def request(self, payload):
        self.calls += 1
        if self.fail:
            raise EnrichmentError("service down")
        return EnrichmentResult(narrative=f"Looks good: {payload['property_id']}")

    def close(self):
        pass


def _enricher(client, threshold: int = 2) -> Enricher:
    cfg = EnrichmentConfig(enabled=True, failure_threshold=threshold, min_interval_seconds=0)
    return Enricher(
        cfg,
        client=client,
        breaker=CircuitBreaker(threshold, 300, clock=lambda: 0.0),
        throttle=EnrichmentThrottle(0),
    )


class TestBatchRunner:
    def test_invalid_record_is_isolated(self):
        items = [_raw(1), _raw(2, address=""), _raw(3), _raw(4)]
        summary = BatchRunner(_config(), lock=threading.Lock()).run(items)
        assert summary.succeeded == 3
        assert summary.failed == 1
        assert "p-2" in summary.failure_reasons
        assert "InvalidPropertyError" in summary.failure_reasons["p-2"]
        assert not summary.cancelled
        assert [o.analysis.property_id for o in summary.outcomes] == ["p-1", "p-3", "p-4"]

    def test_record_without_id_keyed_by_position(self):
        summary = BatchRunner(_config(), lock=threading.Lock()).run([_raw(1), {"address": "x"}])
        assert summary.failed == 1
        assert "record[1]" in summary.failure_reasons

    def test_duplicate_ids_keep_both_reasons(self):
        items = [_raw(1, address=""), _raw(1, asking_price=-5)]
        summary = BatchRunner(_config(), lock=threading.Lock()).run(items)
        assert summary.failed == 2
        assert set(summary.failure_reasons) == {"p-1", "p-1@record[1]"}

    def test_accepts_records_and_markets(self):
        record = PropertyRecord(**_raw(1, known_arv=None))
        market = MarketSnapshot(area_key="78701", price_per_sqft=150)
        summary = BatchRunner(_config(), lock=threading.Lock()).run([record], markets={"78701": market})
        assert summary.succeeded == 1
        assert summary.outcomes[0].analysis.valuation.arv_source.value == "market"

    def test_buyers_matched(self):
        buyers = [BuyerRecord(id="b-1", zip_codes=("78701",))]
        summary = BatchRunner(_config(), lock=threading.Lock()).run([_raw(1)], buyers=buyers)
        assert summary.outcomes[0].matches.best_buyer == "b-1"

    def test_repository_sweep(self):
        repo = InMemoryRepository(
            properties=[_raw(1), _raw(2, motivation_score=42)],
            buyers=[BuyerRecord(id="b-1"), BuyerRecord(id="b-2", active=False)],
            markets=[MarketSnapshot(area_key="78701", sales_per_month=30)],
        )
        summary = BatchRunner(_config(), repository=repo, lock=threading.Lock()).run()
        assert summary.succeeded == 1
        assert summary.failed == 1
        assert set(repo.analyses) == {"p-1"}
        matches = repo.analyses["p-1"].matches
        assert [m.buyer_id for m in matches.matches] == ["b-1"]
        assert repo.analyses["p-1"].analysis.scores.market_volume_score == 70.0

    def test_missing_property_id(self):
        repo = InMemoryRepository()
        summary = BatchRunner(_config(), repository=repo, lock=threading.Lock()).run(["nope"])
        assert summary.failed == 1
        assert "PropertyNotFoundError" in summary.failure_reasons["nope"]

    def test_save_results_disabled(self):
        repo = InMemoryRepository(properties=[_raw(1)])
        runner = BatchRunner(_config(save_results=False), repository=repo, lock=threading.Lock())
        assert runner.run().succeeded == 1
        assert repo.analyses == {}

    def test_stop_flag_cancels(self):
        stop = threading.Event()
        stop.set()
        summary = BatchRunner(_config(), stop_event=stop, lock=threading.Lock()).run([_raw(1), _raw(2)])
        assert summary.cancelled
        assert summary.succeeded == 0

    def test_stop_between_records(self):
        runner = BatchRunner(_config(), lock=threading.Lock())

        def items():
            yield _raw(1)
            runner.stop()
            yield _raw(2)

        summary = runner.run(items())
        assert summary.succeeded == 1
        assert summary.cancelled

    def test_lock_busy(self):
        lock = threading.Lock()
        lock.acquire()
        try:
            with pytest.raises(BatchInProgressError):
                BatchRunner(_config(), lock=lock).run([_raw(1)])
        finally:
            lock.release()

    def test_lock_released_after_run(self):
        lock = threading.Lock()
        BatchRunner(_config(), lock=lock).run([_raw(1)])
        assert not lock.locked()


class TestBatchEnrichment:
    def test_enrichment_attached(self):
        client = _StubClient()
        runner = BatchRunner(_config(), enricher=_enricher(client), lock=threading.Lock())
        summary = runner.run([_raw(1)])
        assert summary.outcomes[0].analysis.enrichment.narrative == "Looks good: p-1"
        assert summary.enrichment_skipped == 0

    def test_open_circuit_skips_enrichment(self):
        client = _StubClient(fail=True)
        runner = BatchRunner(_config(), enricher=_enricher(client, threshold=2), lock=threading.Lock())
        summary = runner.run([_raw(i) for i in range(5)])
        assert summary.succeeded == 5
        assert client.calls == 2
        assert summary.enrichment_skipped == 3
        assert all(o.analysis.enrichment is None for o in summary.outcomes)

    def test_enrichment_does_not_change_analysis(self):
        plain = BatchRunner(_config(), lock=threading.Lock()).run([_raw(1)])
        enriched = BatchRunner(
            _config(), enricher=_enricher(_StubClient()), lock=threading.Lock()
        ).run([_raw(1)])
        a = plain.outcomes[0].analysis
        b = enriched.outcomes[0].analysis
        assert a.model_dump(exclude={"enrichment"}) == b.model_dump(exclude={"enrichment"})

    def test_bad_enrichment_url_does_not_fail_record(self):
        cfg = EnrichmentConfig(enabled=True, url="http://[::1", min_interval_seconds=0)
        enricher = Enricher(cfg)
        summary = BatchRunner(_config(), enricher=enricher, lock=threading.Lock()).run([_raw(1)])
        enricher.close()
        assert summary.succeeded == 1
        assert summary.failed == 0
        assert summary.outcomes[0].analysis.enrichment is None
