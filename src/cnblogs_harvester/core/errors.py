"""Error taxonomy for the harvest pipeline."""


class HarvesterError(Exception):
    """Base class for pipeline errors."""


class FetchError(HarvesterError):
    """The target page could not be retrieved."""


class ParseError(HarvesterError):
    """A single article entry could not be parsed."""


class PersistenceError(HarvesterError):
    """Snapshot or archive I/O failed."""


class NotificationError(HarvesterError):
    """The digest could not be dispatched."""
