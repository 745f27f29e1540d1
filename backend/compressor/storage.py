"""Transient storage areas: incoming uploads and processed artifacts.

Ownership rules:
- files in the incoming area belong to the request that uploaded them and are
  removed by the dispatcher once the converter is done;
- files in the processed area belong to the download handler, which claims an
  artifact by renaming it before streaming, so only one download can win;
- artifacts nobody downloads are removed by ``sweep`` after a TTL.
"""
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from compressor.conversion.models import UploadedFile
from compressor.exceptions import ArtifactNotFoundError, NoFileError, UploadTooLargeError

logger = logging.getLogger("compressor.storage")

CHUNK_SIZE = 1024 * 1024
ARTIFACT_PREFIX = "compressed-"
PARTIAL_PREFIX = ".partial-"
SENDING_PREFIX = ".sending-"

# <epoch ms>-<8 hex>-<original name>
_STAMP_RE = re.compile(r"^\d+-[0-9a-f]{8}-")
_STAMP_BYTES = 13 + 1 + 8 + 1
# Longest name derived from a stored name is ".sending-<8 hex>-compressed-<stored>", plus room for a swapped suffix.
MAX_NAME_BYTES = 255
MAX_BASE_BYTES = MAX_NAME_BYTES - len(SENDING_PREFIX) - 9 - len(ARTIFACT_PREFIX) - _STAMP_BYTES - 8
MAX_SUFFIX_BYTES = 16


def _fit_name(base: str, limit: int) -> str:
    """Shorten ``base`` to ``limit`` UTF-8 bytes, keeping a short suffix intact."""
    if len(base.encode("utf-8")) <= limit:
        return base
    stem, suffix = os.path.splitext(base)
    if len(suffix.encode("utf-8")) > MAX_SUFFIX_BYTES:
        stem, suffix = base, ""
    budget = limit - len(suffix.encode("utf-8"))
    stem = stem.encode("utf-8")[:budget].decode("utf-8", "ignore")
    return f"{stem}{suffix}"


def stored_name_for(original_name: str) -> str:
    """Collision-resistant name for an upload: timestamp and random tag, then the client's base name."""
    base = Path(original_name.replace("\\", "/")).name or "upload"
    base = _fit_name(base, MAX_BASE_BYTES)
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{base}"


def display_name_for(artifact_name: str) -> str:
    """Strip the stamp so the client gets e.g. ``compressed-report.pdf`` back."""
    if artifact_name.startswith(ARTIFACT_PREFIX):
        rest = artifact_name[len(ARTIFACT_PREFIX):]
        return ARTIFACT_PREFIX + _STAMP_RE.sub("", rest, count=1)
    return _STAMP_RE.sub("", artifact_name, count=1)


def _is_safe_name(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    if "/" in name or "\\" in name or "\x00" in name:
        return False
    return not name.startswith(".")


@dataclass(frozen=True)
class StorageAreas:
    incoming: Path
    processed: Path
    max_upload_bytes: Optional[int] = None

    def ensure(self) -> None:
        """Create both areas if absent. Any failure other than 'already exists' propagates."""
        for area in (self.incoming, self.processed):
            area.mkdir(parents=True, exist_ok=True)
        logger.info("Storage areas ready: incoming=%s processed=%s", self.incoming, self.processed)

    async def receive(self, upload: Optional[UploadFile]) -> UploadedFile:
        """Persist the upload to the incoming area under a fresh name."""
        if upload is None or not upload.filename:
            raise NoFileError()
        dest = self.incoming / stored_name_for(upload.filename)
        total = 0
        try:
            with open(dest, "wb") as f:
                while chunk := await upload.read(CHUNK_SIZE):
                    total += len(chunk)
                    if self.max_upload_bytes is not None and total > self.max_upload_bytes:
                        raise UploadTooLargeError.for_limit(self.max_upload_bytes)
                    f.write(chunk)
        except BaseException:
            dest.unlink(missing_ok=True)
            raise
        logger.info("Received %s (%s bytes) as %s", upload.filename, total, dest.name)
        return UploadedFile(stored_path=dest, original_name=upload.filename, size_bytes=total)

    def remove_input(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove upload %s: %s", path, e)

    def artifact_path(self, name: str) -> Path:
        return self.processed / name

    def staging_path(self, name: str) -> Path:
        return self.processed / f"{PARTIAL_PREFIX}{name}"

    def claim_artifact(self, name: str) -> Path:
        """Atomically take an artifact out of the servable namespace for one download."""
        if not _is_safe_name(name):
            raise ArtifactNotFoundError(name)
        claimed = self.processed / f"{SENDING_PREFIX}{uuid.uuid4().hex[:8]}-{name}"
        try:
            os.replace(self.artifact_path(name), claimed)
        except FileNotFoundError:
            raise ArtifactNotFoundError(name) from None
        return claimed

    def release_artifact(self, claimed: Path, name: str) -> None:
        """Put a claimed artifact back after a failed transfer."""
        try:
            os.replace(claimed, self.artifact_path(name))
            logger.info("Transfer of %s failed; artifact kept for retry", name)
        except OSError as e:
            logger.warning("Could not restore artifact %s: %s", name, e)

    def discard(self, path: Path) -> None:
        """Delete if it still exists."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)

    def sweep(self, max_age_seconds: int, now: Optional[float] = None) -> int:
        """Remove processed-area files older than ``max_age_seconds``. Returns how many were removed."""
        now = time.time() if now is None else now
        removed = 0
        for f in self.processed.iterdir():
            if not f.is_file():
                continue
            try:
                if now - f.stat().st_mtime < max_age_seconds:
                    continue
                f.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Could not sweep %s: %s", f, e)
        if removed:
            logger.info("Swept %s expired artifact(s) from %s", removed, self.processed)
        return removed
