"""Errors raised by the availability resolver.

External calendar failures are deliberately absent: they are folded into
"available" by the resolver and never reach the caller.
"""


class AvailabilityError(Exception):
    """Base class for resolver failures surfaced to the caller."""


class NotFoundError(AvailabilityError):
    """The requested staff member does not exist."""


class InvalidArgumentError(AvailabilityError):
    """Malformed duration or date."""


class LocalStoreError(AvailabilityError):
    """The local booking store could not be queried."""
