class EncryptionError(Exception):
    """Raised when a document cannot be password-protected."""
