"""
Error types shared by the stores, registries and the catalog
"""


class NamesBotError(Exception):
    """Base class for all errors raised by the bot core"""


class NotFoundError(NamesBotError):
    """Requested name, user or record does not exist"""


class InvalidInputError(NamesBotError):
    """Value outside of the accepted range (name number, pace, setting)"""


class StorageError(NamesBotError):
    """Backing store is unreachable or returned an error"""
