"""Exception taxonomy for the reconciliation engine."""


class WeaverError(Exception):
    """Base class for all engine errors."""


class NotFoundError(WeaverError):
    """The requested object does not exist."""

    def __init__(self, kind, name, namespace=None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location} not found")


class ConflictError(WeaverError):
    """An optimistic-concurrency write lost against a newer resource version."""


class TransientAccessError(WeaverError):
    """The object store could not be reached or answered with a server error."""


class ValidationError(WeaverError):
    """Kind-specific content or shape is invalid; only a user edit can fix it."""


class ReconcileCancelled(WeaverError):
    """The operator is shutting down; the cycle stops without retry."""


class ResolutionInterrupted(WeaverError):
    """A reference did not resolve; carries the resolution that stopped the cycle."""

    def __init__(self, resolution):
        self.resolution = resolution
        super().__init__(resolution.message)
