"""Exception types raised by DealIQ."""

from __future__ import annotations


class DealIQError(Exception):
    """Base class for all DealIQ errors."""


class InvalidPropertyError(DealIQError, ValueError):
    """A property record is structurally invalid (missing identity or address)."""

    def __init__(self, message: str, property_id: str | None = None):
        super().__init__(message)
        self.property_id = property_id


class PropertyNotFoundError(DealIQError, LookupError):
    """A repository lookup found no property with the given id."""


class EnrichmentError(DealIQError):
    """The optional enrichment service failed or returned an unusable response."""


class BatchInProgressError(DealIQError):
    """Another batch run already holds the batch lock."""
