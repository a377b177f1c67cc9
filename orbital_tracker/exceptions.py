"""Exceptions raised by the orbital tracker."""


class OrbitalTrackerError(Exception):
    """Base class for all orbital tracker errors."""


class TLEFormatError(OrbitalTrackerError, ValueError):
    """A TLE line pair failed structural validation."""


class InvalidTimestampError(OrbitalTrackerError, ValueError):
    """A timestamp string that is not ISO-8601."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid timestamp: {value!r}")


class UnknownCategoryError(OrbitalTrackerError, LookupError):
    """Category name outside the known set."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Unknown satellite category: {name!r}")


class FeedError(OrbitalTrackerError):
    """
    An upstream data feed could not be used.

    Raised once retries are exhausted, or when the feed answered with a
    payload that cannot be interpreted.
    """

    status_code = 502

    def __init__(self, source, message, status_code=None):
        self.source = source
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(f"{source}: {message}")


class CelestrakQueryError(FeedError):
    """CelesTrak rejected the query ("Invalid query", "No GP data found")."""

    status_code = 400

    def __init__(self, message):
        super().__init__("celestrak", message)
