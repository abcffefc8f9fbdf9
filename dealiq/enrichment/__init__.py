"""Optional external enrichment, guarded by a circuit breaker and a throttle."""

from dealiq.enrichment.breaker import BreakerState, CircuitBreaker
from dealiq.enrichment.client import EnrichmentClient
from dealiq.enrichment.enricher import Enricher
from dealiq.enrichment.throttle import EnrichmentThrottle
