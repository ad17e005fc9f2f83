"""Error taxonomy for the relay pipeline.

Duplicates are not errors; they surface as processing outcomes instead.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""


class ValidationError(RelayError):
    """An item is malformed and cannot be rendered."""


class DeliveryError(RelayError):
    """The delivery channel rejected or failed to send an item."""


class StorageError(RelayError):
    """A queue or watermark read/write/move failed."""


class TransientLookupError(RelayError):
    """An advisory lookup (enrichment, channel history) failed."""


class FeedError(RelayError):
    """The feed could not be fetched."""
