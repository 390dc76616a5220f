"""Errors raised by the benchmark history store."""


class HistoryError(Exception):
    """Base class for history store errors."""

    pass


class ParseError(HistoryError):
    """Serialized input does not describe a valid history document."""

    pass


class ValidationError(HistoryError):
    """An append would break an invariant of the history."""

    pass


class HistoryFetchError(HistoryError):
    """A published history could not be downloaded."""

    pass
