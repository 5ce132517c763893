"""Exceptions surfaced to callers of the news pipeline."""


class BiowatchError(Exception):
    """Base class for errors the pipeline raises on purpose."""


class ValidationFailure(BiowatchError, ValueError):
    """Bad input detected before any fetch is attempted (client error)."""
