"""Errors raised by the download, transcription and storage steps."""

from pathlib import Path
from typing import Optional


class TranscriberError(RuntimeError):
    """Base class for every error this package raises on purpose."""


class ConfigurationError(TranscriberError):
    pass


class TransferError(TranscriberError):
    """Model download failed; ``path`` points at the partial file, if any."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class DownloadStatusError(TransferError):
    """The model host answered with a non-success status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        super().__init__(f"{url}: {status_code} {reason}".rstrip())
        self.url = url
        self.status_code = status_code


class DownloadTimeoutError(TransferError):
    pass


class CancellationError(TranscriberError):
    """Download interrupted by the user."""

    def __init__(self, message: str = "Interrupted", path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class AudioDownloadError(TranscriberError):
    pass


class DecodeError(TranscriberError):
    pass


class TranscoderError(TranscriberError):
    pass


class InferenceError(TranscriberError):
    pass


class PersistenceError(TranscriberError):
    pass
