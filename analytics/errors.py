"""Exceptions raised by the analytics layer."""


class AnalyticsError(Exception):
    """Base class for analytics failures."""


class EventLogError(AnalyticsError):
    """The event log could not be read or written.

    Distinct from an empty result: callers must not treat this as zero events.
    """


class InvalidWindowError(AnalyticsError, ValueError):
    """A period string or time window could not be understood."""
