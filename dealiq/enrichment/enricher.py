"""Optional enrichment of a finished analysis.

Enrichment never blocks a result: when disabled, when the circuit is open or
when the service fails, ``enrich`` returns ``None`` and the deterministic
analysis stands on its own.
"""

from __future__ import annotations

import logging
from typing import Any

from dealiq.config import EnrichmentConfig
from dealiq.errors import EnrichmentError
from dealiq.models import DealAnalysis, EnrichmentResult
from dealiq.enrichment.breaker import CircuitBreaker
from dealiq.enrichment.client import EnrichmentClient
from dealiq.enrichment.throttle import EnrichmentThrottle

logger = logging.getLogger(__name__)


class Enricher:
    """Wraps the enrichment client with a circuit breaker and a throttle."""

    def __init__(
        self,
        config: EnrichmentConfig,
        client: EnrichmentClient | None = None,
        breaker: CircuitBreaker | None = None,
        throttle: EnrichmentThrottle | None = None,
    ):
        self.cfg = config
        self._client = client
        self.breaker = breaker or CircuitBreaker(config.failure_threshold, config.cooldown_seconds)
        self.throttle = throttle or EnrichmentThrottle(config.min_interval_seconds)
        self.skipped = 0

    @property
    def enabled(self) -> bool:
        return self.cfg.enabled and (self._client is not None or bool(self.cfg.url))

    def enrich(self, analysis: DealAnalysis) -> EnrichmentResult | None:
        if not self.enabled:
            return None

        if not self.breaker.allow_request():
            self.skipped += 1
            logger.info("Enrichment skipped for %s: circuit open", analysis.property_id)
            return None

        self.throttle.wait()
        try:
            result = self._get_client().request(self._payload(analysis))
        except EnrichmentError as e:
            self.breaker.record_failure()
            logger.warning("Enrichment failed for %s: %s", analysis.property_id, e)
            return None

        self.breaker.record_success()
        return result

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def _get_client(self) -> EnrichmentClient:
        if self._client is None:
            self._client = EnrichmentClient(self.cfg)
        return self._client

    @staticmethod
    def _payload(analysis: DealAnalysis) -> dict[str, Any]:
        return {
            "property_id": analysis.property_id,
            "address": analysis.address,
            "arv": analysis.valuation.arv,
            "repair_estimate": analysis.valuation.repair_estimate,
            "recommended_offer": analysis.mao.recommended,
            "deal_class": analysis.classification.deal_class.value,
            "deal_score": analysis.scores.deal_score,
            "strategies": [c.name for c in analysis.strategies.ranked],
        }
