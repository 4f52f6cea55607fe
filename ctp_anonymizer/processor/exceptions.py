class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class UnsupportedObjectError(ProcessorError):
    """Raised when a file is not an XML, zip or DICOM object."""


class QuarantineError(ProcessorError):
    """Raised when a failed object cannot be moved into the quarantine directory."""
