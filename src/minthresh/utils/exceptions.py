"""Custom exception hierarchy for minthresh."""


class MinthreshError(Exception):
    """Base exception for the threshold engine."""


class ConfigError(MinthreshError):
    """Raised when threshold parameters are missing, inconsistent, or out of range."""


class ModelDomainError(MinthreshError):
    """Raised when a probability model is asked for something it cannot represent."""


class CacheCorruptionError(MinthreshError):
    """Raised when a persisted table does not match the configuration it was loaded for."""


class DataValidationError(MinthreshError):
    """Raised when a query file cannot be read or holds no sequences."""
