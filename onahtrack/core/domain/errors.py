"""Error taxonomy for the calculation and lifecycle engine.

All errors are raised before any mutation is written and are never retried
internally. Cascade partial failures are reported in result objects, not
raised.
"""

from __future__ import annotations


class OnahTrackError(Exception):
    pass


class LocationError(OnahTrackError):
    """Location is invalid or the astronomical boundary cannot be resolved."""


class TemporalInvariantError(OnahTrackError):
    """Ordering, minimum-gap or overlap rule violated."""


class StateTransitionError(OnahTrackError):
    """Requested status change is not allowed from the current status."""


class NotFoundError(OnahTrackError):
    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class ValidationError(OnahTrackError, ValueError):
    """A field of a domain input is malformed or outside its allowed range."""
