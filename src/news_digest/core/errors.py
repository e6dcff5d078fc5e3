"""Exception hierarchy."""


class NewsDigestError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(NewsDigestError):
    """Required setting is missing or invalid."""


class StorageError(NewsDigestError):
    """Storage operation failed."""


class GenerationError(NewsDigestError):
    """Text-generation call failed or returned nothing usable."""
