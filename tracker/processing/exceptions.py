class ProcessingError(Exception):
    """Base exception for all upload pipeline errors."""


class FileLimitExceededError(ProcessingError):
    """Raised when more files are registered than a single upload allows."""


class FileRegistrationError(ProcessingError):
    """Raised when a file cannot be read or encoded for the pipeline."""


class FileIndexError(ProcessingError):
    """Raised when a file index does not refer to a registered file."""


class InvalidStatusTransitionError(ProcessingError):
    """Raised when a terminal file status would move back to pending or processing."""


class TransactionImportError(ProcessingError):
    """Raised when accepted rows cannot be imported. Pipeline state is left untouched."""
