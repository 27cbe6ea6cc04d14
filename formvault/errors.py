"""Exception types raised across the media access and export core."""


class FormVaultError(Exception):
    """Base class for all FormVault errors."""


class ResolutionFailure(FormVaultError):
    """A stored-object reference matched no known shape."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Could not resolve storage path from reference: {reference!r}")


class StorageError(FormVaultError):
    """The object storage service rejected or failed a request."""

    def __init__(self, message: str, *, path: str | None = None, status_code: int | None = None) -> None:
        self.path = path
        self.status_code = status_code
        super().__init__(message)


class IssuanceFailure(FormVaultError):
    """No access URL could be issued for a path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Could not issue access URL for {path!r}")


class DownloadFailure(FormVaultError):
    """Fetching object bytes failed."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        super().__init__(f"Download failed for {path!r}" + (f": {reason}" if reason else ""))


class TranscodeFailure(FormVaultError):
    """Local media conversion failed."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        super().__init__(f"Transcode failed for {path!r}" + (f": {reason}" if reason else ""))


class TotalFailure(FormVaultError):
    """The submission or field dataset itself could not be read."""


class NotFoundError(FormVaultError):
    """A form or submission does not exist."""


class UploadRejected(FormVaultError):
    """Uploaded files failed form validation."""
