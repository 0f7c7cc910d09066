"""Exception types surfaced by LocalSpace services."""


class LocalSpaceError(Exception):
    """Base class for LocalSpace errors."""


class StoreError(LocalSpaceError):
    """A store write or read could not be completed."""


class IndexingError(LocalSpaceError):
    """An initial scan failed and the index may be partial."""
