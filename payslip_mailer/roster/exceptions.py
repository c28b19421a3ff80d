class RosterImportError(Exception):
    """Raised when a roster file cannot be read or holds no valid rows."""
