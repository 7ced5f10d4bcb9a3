class ProcessingError(Exception):
    """Custom exception for image processing errors."""

    pass


class DownloadFailure(ProcessingError):
    """The uploaded file could not be fetched from Telegram."""

    pass


class FileTooLarge(DownloadFailure):
    """The uploaded file exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File is too large ({size} bytes). Maximum allowed size is {limit} bytes"
        )


class UnsupportedFormat(ProcessingError):
    """The upload is not an image in one of the supported formats."""

    pass


class InvalidParameters(ProcessingError):
    """User supplied parameters (dimensions, angle, text) were rejected."""

    pass


class NoActiveArtifact(ProcessingError):
    """An operation was requested before an image was uploaded."""

    def __init__(self, message: str = "No image found. Please send an image first."):
        super().__init__(message)


class OperationFailure(ProcessingError):
    """The image operation itself failed."""

    pass
