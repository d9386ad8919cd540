"""Exceptions raised by the route engine."""


class KuralError(Exception):
    """Base class for route engine errors."""

    pass


class InvalidParameterError(KuralError, ValueError):
    """Raised when computation parameters are rejected before any work starts."""

    pass


class DataFetchError(KuralError):
    """Raised when the listing store cannot be read. Fatal for the run."""

    pass
