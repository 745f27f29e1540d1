"""Conversion request/result models."""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import quote


class JobState(str, Enum):
    RECEIVED = "received"
    CONVERTING = "converting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MediaKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"
    VIDEO = "video"


@dataclass
class UploadedFile:
    """An upload persisted to the incoming area."""

    stored_path: Path
    original_name: str
    size_bytes: int
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def stored_name(self) -> str:
        return self.stored_path.name


@dataclass
class ConversionRequest:
    """In-flight state of one compress request."""

    kind: MediaKind
    quality: Optional[str]
    source: UploadedFile
    state: JobState = JobState.RECEIVED
    error: Optional[str] = None

    def advance(self, state: JobState) -> None:
        if self.state in (JobState.SUCCEEDED, JobState.FAILED):
            raise RuntimeError(f"Request already finished ({self.state.value})")
        self.state = state


def savings_percent(original_size: int, compressed_size: int) -> int:
    """Percentage saved, rounded half up. Negative when the output grew."""
    if original_size <= 0:
        return 0
    return int(math.floor((1 - compressed_size / original_size) * 100 + 0.5))


@dataclass(frozen=True)
class ConversionResult:
    output_path: Path
    original_size: int
    compressed_size: int

    @property
    def savings_percent(self) -> int:
        return savings_percent(self.original_size, self.compressed_size)

    @property
    def download_reference(self) -> str:
        return self.output_path.name

    @property
    def download_url(self) -> str:
        return f"/download?file={quote(self.download_reference)}"

    def to_response(self) -> dict:
        return {
            "success": True,
            "downloadUrl": self.download_url,
            "originalSize": self.original_size,
            "compressedSize": self.compressed_size,
            "savings": self.savings_percent,
        }
