"""Domain errors raised by the service layer and mapped to HTTP in ``errors``."""


class NoticeApiError(Exception):
    """Base class for every error the API reports to clients."""

    error = "NoticeApiError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoticeValidationError(NoticeApiError, ValueError):
    error = "ValidationError"


class NoticeNotFoundError(NoticeApiError):
    error = "NoticeNotFound"


class AttachmentNotFoundError(NoticeApiError):
    error = "FileNotFound"


class InvalidFileNameError(NoticeApiError):
    error = "InvalidFileName"


class FileStorageError(NoticeApiError):
    """Any failure touching the storage root, including bytes missing on load."""

    error = "FileStorageError"
