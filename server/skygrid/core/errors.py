"""SkyGrid error types.

Precondition violations subclass ValueError so callers that only care about
"bad input" can catch the builtin.
"""

from __future__ import annotations


class SkyGridError(Exception):
    """Base class for all SkyGrid errors."""


class PreconditionError(SkyGridError, ValueError):
    """A codec, policy or planner argument is outside its valid domain.

    Values are never clamped.
    """


class MalformedRecordError(SkyGridError, ValueError):
    """A raw record has the wrong structure (field count, JSON shape)."""


class StoreUnavailableError(SkyGridError):
    """Every lookup of a query failed."""
