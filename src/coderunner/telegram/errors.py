from __future__ import annotations


class PayloadError(Exception):
    """Base error for request payloads that cannot be encoded."""


class InvalidFilenameError(PayloadError, ValueError):
    def __init__(self, origin: str, filename: str) -> None:
        self.origin = origin
        self.filename = filename
        super().__init__(
            f"Invalid filename for field {origin!r}: {filename!r} "
            "(line breaks are not allowed)"
        )


class InputFileError(PayloadError):
    """Raised when an upload source is unsupported or already consumed."""


class TelegramError(Exception):
    """Base error for Bot API calls."""


class TelegramApiError(TelegramError):
    def __init__(
        self,
        method: str,
        error_code: int | None,
        description: str,
        *,
        retry_after: int | None = None,
    ) -> None:
        self.method = method
        self.error_code = error_code
        self.description = description
        self.retry_after = retry_after
        super().__init__(f"Telegram {method} failed ({error_code}): {description}")


class TelegramNetworkError(TelegramError):
    """Raised when the HTTP exchange with the Bot API fails."""


class TelegramUploadError(TelegramError):
    """Raised when a file source fails while its upload is streaming."""
