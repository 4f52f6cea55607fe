class AnonymizationError(Exception):
    """Raised when an object cannot be read or written by an anonymizer front-end."""
