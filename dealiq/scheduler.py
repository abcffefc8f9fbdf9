"""Scheduler for periodic batch analysis of stored properties."""

from __future__ import annotations

import logging
from datetime import datetime

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dealiq.batch import BatchRunner
from dealiq.config import AppConfig
from dealiq.db.repository import Repository
from dealiq.enrichment import Enricher
from dealiq.errors import BatchInProgressError
from dealiq.models import BatchSummary

logger = logging.getLogger(__name__)


def run_sweep(cfg: AppConfig, repo: Repository | None = None) -> BatchSummary | None:
    """Analyze every stored property once. Returns None if a batch is already running."""
    logger.info("Starting batch sweep at %s", datetime.now().isoformat())

    repo = repo or Repository(cfg.database.url)
    enricher = Enricher(cfg.enrichment) if cfg.enrichment.enabled else None
    runner = BatchRunner(cfg, repository=repo, enricher=enricher)
    try:
        return runner.run()
    except BatchInProgressError as e:
        logger.warning("Skipping sweep: %s", e)
        return None
    finally:
        if enricher:
            enricher.close()


def start_scheduler(cfg: AppConfig) -> None:
    """Start the blocking scheduler."""
    scheduler = BlockingScheduler()

    scheduler.add_job(
        run_sweep,
        trigger=IntervalTrigger(minutes=cfg.batch.interval_minutes),
        args=[cfg],
        id="batch_sweep",
        name="Batch Analysis Sweep",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(),  # Run immediately on start
    )

    logger.info(
        "Scheduler started. Sweeping every %d minutes.",
        cfg.batch.interval_minutes,
    )

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
        scheduler.shutdown()
