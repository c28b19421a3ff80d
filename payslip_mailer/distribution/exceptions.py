class DistributionError(Exception):
    """Base exception for all distribution-related errors."""


class RecipientNotFoundError(DistributionError):
    """Raised when a recipient cannot be found in the recipient store."""


class DuplicateRecipientError(DistributionError):
    """Raised when a recipient with the same email already exists."""


class MatchAmbiguityError(DistributionError):
    """Raised by a strict matcher when several recipients share a filename."""


class InvalidPeriodError(DistributionError, ValueError):
    """Raised when a period falls outside the supported year/month range."""


class StoreWriteError(DistributionError):
    """Raised when a write does not return the stored row."""
