"""Error taxonomy for the upload / convert / download lifecycle.

Every error carries a machine-readable ``error_code`` and the HTTP status the
API layer answers with. Messages are plain English so they can be shown to
the user as-is.
"""
from typing import Optional


class CompressorError(Exception):
    """Base exception for all compressor errors."""

    error_code: str = "COMPRESSOR_ERROR"
    status_code: int = 400

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class NoFileError(CompressorError):
    """The multipart request carried no file."""

    error_code = "NO_FILE"
    status_code = 400

    def __init__(self, message: str = "No file uploaded") -> None:
        super().__init__(message)


class UploadTooLargeError(CompressorError):
    """The upload exceeded the configured size limit."""

    error_code = "FILE_TOO_LARGE"
    status_code = 413

    @staticmethod
    def for_limit(limit_bytes: int) -> "UploadTooLargeError":
        return UploadTooLargeError(f"File too large (max {limit_bytes // (1024 * 1024)} MB)")


class InvalidQualityError(CompressorError):
    """The quality parameter could not be interpreted for this media kind."""

    error_code = "INVALID_QUALITY"
    status_code = 400


class ConversionFailedError(CompressorError):
    """The underlying library failed to produce an output.

    ``detail`` holds the upstream message. ``kind`` is filled in by the
    dispatcher so the API can answer with a route-specific code, e.g.
    ``PDF_COMPRESSION_FAILED``.
    """

    error_code = "CONVERSION_FAILED"
    status_code = 500

    def __init__(
        self,
        detail: str,
        original_error: Optional[Exception] = None,
        kind: Optional[str] = None,
    ) -> None:
        super().__init__(f"Conversion failed: {detail}", original_error)
        self.detail = detail
        self.kind = kind

    @property
    def route_code(self) -> str:
        if not self.kind:
            return self.error_code
        return f"{self.kind.upper()}_COMPRESSION_FAILED"


class ArtifactNotFoundError(CompressorError):
    """Download reference is stale, already consumed or never existed."""

    error_code = "ARTIFACT_NOT_FOUND"
    status_code = 404

    def __init__(self, name: str) -> None:
        super().__init__("File not found")
        self.name = name
