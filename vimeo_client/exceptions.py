from typing import Optional

# Statuses worth another attempt on the same ticket.
RETRYABLE_STATUSES = (408, 429, 500, 502, 503, 504)


def is_retryable_status(status: int) -> bool:
    return status in RETRYABLE_STATUSES


class VimeoError(Exception):
    """Base class for every error raised by this package."""


class VimeoApiError(VimeoError):
    """Non-success response from the Vimeo API."""

    def __init__(self, status_code: Optional[int], message: str, error_code: Optional[int] = None, retryable: Optional[bool] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        if retryable is None:
            retryable = status_code is not None and is_retryable_status(status_code)
        self.retryable = retryable

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"HTTP {self.status_code}: {base}"


class OutOfRangeError(VimeoError, ValueError):
    pass


class UploadError(VimeoError):
    """An upload failed; ``bytes_written`` is the last offset the server confirmed."""

    retryable = False

    def __init__(self, message: str, bytes_written: int = 0):
        super().__init__(message)
        self.bytes_written = bytes_written


class TicketAcquisitionError(UploadError):
    pass


class _RetryableUploadError(UploadError):
    def __init__(self, message: str, bytes_written: int = 0, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(message, bytes_written)
        self.retryable = retryable
        self.status_code = status_code


class TransferError(_RetryableUploadError):
    pass


class VerificationError(_RetryableUploadError):
    pass


class TransferExhaustedError(UploadError):
    def __init__(self, message: str, bytes_written: int = 0, attempts: int = 0):
        super().__init__(message, bytes_written)
        self.attempts = attempts
