"""Exceptions raised by the CSV logging engine."""


class RCSVLogError(Exception):
    """Base exception for logging engine errors."""

    def __init__(self, message: str, log_name: str | None = None):
        """Initialize the error.

        Args:
            message: Error message.
            log_name: Name of the log the error relates to, if any.
        """
        super().__init__(message)
        self.log_name = log_name


class LocalWriteFailure(RCSVLogError):
    """Raised when a log file cannot be created or appended to."""

    pass


class LedgerCorruption(RCSVLogError):
    """Raised when a ledger row cannot be parsed."""

    pass


class RemoteSyncFailure(RCSVLogError):
    """Raised by push transports when a batch was not acknowledged."""

    def __init__(
        self,
        message: str,
        log_name: str | None = None,
        status_code: int | None = None,
        retryable: bool = True,
    ):
        super().__init__(message, log_name)
        self.status_code = status_code
        self.retryable = retryable
