"""Batch analysis over many properties.

A batch analyzes records one at a time and isolates failures per record: a
record that cannot be loaded or analyzed is counted and logged, and the run
moves on. Only one batch may run at a time per process; a second caller
waits up to ``batch.lock_timeout_seconds`` and then gets
``BatchInProgressError``.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Mapping, Union

from dealiq.analysis.engine import DealAnalyzer
from dealiq.config import AppConfig
from dealiq.db.ports import AnalysisRepository
from dealiq.enrichment import Enricher
from dealiq.errors import BatchInProgressError, PropertyNotFoundError
from dealiq.models import (
    AnalysisOutcome,
    BatchSummary,
    BuyerRecord,
    MarketSnapshot,
    PropertyRecord,
)

logger = logging.getLogger(__name__)

# Shared by the CLI and the scheduler so a timed sweep never overlaps a manual run.
BATCH_LOCK = threading.Lock()

BatchItem = Union[PropertyRecord, dict, str]


class BatchRunner:
    """Sequential batch analysis with per-record failure isolation."""

    def __init__(
        self,
        config: AppConfig,
        repository: AnalysisRepository | None = None,
        enricher: Enricher | None = None,
        stop_event: threading.Event | None = None,
        lock: threading.Lock | None = None,
    ):
        self.cfg = config
        self.repository = repository
        self.enricher = enricher
        self.stop_event = stop_event or threading.Event()
        self._lock = lock if lock is not None else BATCH_LOCK
        self.analyzer = DealAnalyzer(config)

    def stop(self) -> None:
        """Ask a running batch to finish after the current record."""
        self.stop_event.set()

    def run(
        self,
        items: Iterable[BatchItem] | None = None,
        markets: Mapping[str, MarketSnapshot] | None = None,
        buyers: Iterable[BuyerRecord] | None = None,
    ) -> BatchSummary:
        """Analyze ``items`` (records, raw dicts or property ids).

        With no items, every property id in the repository is analyzed. Market
        snapshots come from ``markets`` keyed by zip code, falling back to the
        repository. Buyers default to the repository's active buyers.
        """
        if not self._lock.acquire(timeout=self.cfg.batch.lock_timeout_seconds):
            raise BatchInProgressError("Another batch run is already in progress")
        try:
            return self._run(items, markets or {}, buyers)
        finally:
            self._lock.release()

    def _run(
        self,
        items: Iterable[BatchItem] | None,
        markets: Mapping[str, MarketSnapshot],
        buyers: Iterable[BuyerRecord] | None,
    ) -> BatchSummary:
        if items is None:
            items = self.repository.list_property_ids() if self.repository else []
        if buyers is None:
            buyers = self.repository.list_active_buyers() if self.repository else []
        # One snapshot of the registry for the whole run.
        buyers = list(buyers)

        summary = BatchSummary()
        skipped_before = self.enricher.skipped if self.enricher else 0
        logger.info("Batch started with %d active buyers", len(buyers))

        for index, item in enumerate(items):
            if self.stop_event.is_set():
                summary.cancelled = True
                logger.warning("Batch cancelled after %d records", index)
                break

            key = _item_key(item, index)
            if key in summary.failure_reasons:
                key = f"{key}@record[{index}]"
            try:
                outcome = self._analyze_one(item, markets, buyers)
            except Exception as e:
                summary.failed += 1
                summary.failure_reasons[key] = f"{type(e).__name__}: {e}"
                logger.error(
                    "Analysis failed for %s: %s", key, e,
                    extra={"event": "analysis_failed", "property_id": key},
                )
                continue

            summary.succeeded += 1
            summary.outcomes.append(outcome)
            logger.info(
                "Analyzed %s: %s (score %.1f)",
                key,
                outcome.analysis.classification.deal_class.value,
                outcome.analysis.scores.deal_score,
                extra={"event": "analysis_succeeded", "property_id": key},
            )

        if self.enricher:
            summary.enrichment_skipped = self.enricher.skipped - skipped_before

        logger.info(
            "Batch finished: %d succeeded, %d failed%s",
            summary.succeeded,
            summary.failed,
            " (cancelled)" if summary.cancelled else "",
        )
        return summary

    def _analyze_one(
        self,
        item: BatchItem,
        markets: Mapping[str, MarketSnapshot],
        buyers: list[BuyerRecord],
    ) -> AnalysisOutcome:
        record = self._resolve(item)
        market = markets.get(record.zip_code)
        if market is None and self.repository and record.zip_code:
            market = self.repository.find_market(record.zip_code)

        outcome = self.analyzer.analyze(record, market, buyers)

        if self.enricher:
            enrichment = self.enricher.enrich(outcome.analysis)
            if enrichment is not None:
                analysis = outcome.analysis.model_copy(update={"enrichment": enrichment})
                outcome = AnalysisOutcome(analysis=analysis, matches=outcome.matches)

        if self.repository and self.cfg.batch.save_results:
            self.repository.save_analysis(outcome)
        return outcome

    def _resolve(self, item: BatchItem) -> PropertyRecord:
        if isinstance(item, PropertyRecord):
            return item
        if isinstance(item, dict):
            return PropertyRecord.from_raw(item)
        if self.repository is None:
            raise PropertyNotFoundError(f"No repository to look up property {item}")
        record = self.repository.find_property(item)
        if record is None:
            raise PropertyNotFoundError(f"Property {item} not found")
        return record


def _item_key(item: BatchItem, index: int) -> str:
    if isinstance(item, PropertyRecord):
        return item.id
    if isinstance(item, dict):
        key = str(item.get("id") or "").strip()
        return key or f"record[{index}]"
    return str(item)
