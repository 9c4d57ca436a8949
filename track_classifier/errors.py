"""
Error types raised by the track classifier.

Every error derives from TrackClassifierError so callers can catch the
whole family at once. Nothing in the library terminates the process; the
CLI is the only place errors become exit codes.
"""


class TrackClassifierError(ValueError):
    """Base error for track classification failures."""


class InvalidInputError(TrackClassifierError):
    """Raised when an operation receives input it cannot work with (e.g. an empty point set)."""


class UnorderedInputError(TrackClassifierError):
    """Raised when order validation is enabled and a day's fixes go back in time."""


class ConfigError(TrackClassifierError):
    """Raised when settings name an unsupported file type or map type."""


class FixParseError(TrackClassifierError):
    """Raised when a raw GPS log line cannot be turned into a Fix."""


__all__ = [
    "TrackClassifierError",
    "InvalidInputError",
    "UnorderedInputError",
    "ConfigError",
    "FixParseError",
]
