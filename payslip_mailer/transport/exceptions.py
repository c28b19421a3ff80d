class DeliveryError(Exception):
    """Raised when a message cannot be handed over to the mail provider."""


class TransportConfigurationError(DeliveryError):
    """Raised when a transport is missing the credentials it needs."""
