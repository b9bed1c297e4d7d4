"""Custom exceptions for data loading and validation."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when JSON files are missing or invalid."""


class DataValidationError(DataError):
    """Raised when a story document does not have the expected shape."""
