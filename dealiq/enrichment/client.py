"""HTTP client for the optional enrichment service.

The service receives a compact deal summary and may return a narrative and a
suggested strategy. Any transport, status or schema problem surfaces as an
``EnrichmentError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from dealiq.config import EnrichmentConfig
from dealiq.errors import EnrichmentError
from dealiq.models import EnrichmentResult

logger = logging.getLogger(__name__)


class EnrichmentClient:
    def __init__(self, config: EnrichmentConfig, transport: httpx.BaseTransport | None = None):
        self.cfg = config
        headers = {"Accept": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.Client(
            headers=headers,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def request(self, payload: dict[str, Any]) -> EnrichmentResult:
        try:
            resp = self._client.post(self.cfg.url, json=payload)
        except httpx.TimeoutException as e:
            raise EnrichmentError(f"Enrichment request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise EnrichmentError(f"Enrichment request failed: {e}") from e
        except httpx.InvalidURL as e:
            # Not an HTTPError subclass; raised while building the request
            raise EnrichmentError(f"Invalid enrichment URL {self.cfg.url!r}: {e}") from e

        if not resp.is_success:
            raise EnrichmentError(f"Enrichment service returned HTTP {resp.status_code}")

        try:
            return EnrichmentResult.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise EnrichmentError(f"Unexpected enrichment response: {e}") from e

    def close(self) -> None:
        self._client.close()
