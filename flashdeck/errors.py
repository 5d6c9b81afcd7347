# flashdeck/errors.py


class FlashdeckError(Exception):
    """Base class for every recoverable error raised inside the app."""
    pass


class ValidationError(FlashdeckError):
    """A required field was empty (or otherwise unusable) after trimming.

    `message_key` is the locale key used when the error is surfaced.
    """

    def __init__(self, message_key: str, **params):
        self.message_key = message_key
        self.params = params
        super().__init__(message_key)


class ImportFormatError(ValidationError):
    """An import file could not be parsed or did not match the export schema."""
    pass


class NotFoundError(FlashdeckError):
    """An operation referenced an unknown deck or card id."""

    def __init__(self, kind: str, entity_id):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' not found")


class PersistenceError(FlashdeckError):
    """The durable store could not be read or written."""
    pass


class StorageError(PersistenceError):
    """Raised by a storage backend when a read, write or delete fails."""
    pass


class QuotaExceededError(StorageError):
    """The storage backend refused a write because it is full."""
    pass
