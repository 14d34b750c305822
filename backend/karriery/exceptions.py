"""Error types raised by the record store and its persistence substrates."""


class StoreError(Exception):
    """Base class for record store errors."""


class DuplicateEmail(StoreError):
    """A user with the same (case-sensitive) email already exists."""


class InvalidCredentials(StoreError):
    """No user matches the supplied email/password pair."""


class InvalidValue(StoreError, ValueError):
    """A field was given a value outside its allowed set."""


class DataImportError(StoreError):
    """A bulk import payload could not be decoded; nothing was written."""


class PersistenceUnavailable(StoreError):
    """The key-value substrate failed to read or write.

    Substrates raise this; the store catches it, logs it and degrades to
    empty reads / failed writes.
    """
