"""Routes an upload to its converter and owns the file lifecycle around it."""
import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Optional

from fastapi import UploadFile

from compressor.conversion.base import Converter
from compressor.conversion.models import ConversionRequest, ConversionResult, JobState, MediaKind
from compressor.exceptions import CompressorError, ConversionFailedError
from compressor.storage import StorageAreas

logger = logging.getLogger("compressor.dispatch")


class ConversionDispatcher:
    """Runs one conversion per request: receive, convert off-loop, measure, clean up."""

    def __init__(
        self,
        storage: StorageAreas,
        converters: Mapping[MediaKind, Converter],
        max_workers: int = 4,
    ):
        self.storage = storage
        self.converters = dict(converters)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="convert")
        logger.info("ConversionDispatcher initialized with max_workers=%s", max_workers)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def dispatch(
        self,
        kind: MediaKind,
        upload: Optional[UploadFile],
        quality: Optional[str] = None,
    ) -> ConversionResult:
        converter = self.converters[kind]
        try:
            uploaded = await self.storage.receive(upload)
        except OSError as e:
            logger.exception("Could not store upload for %s compression: %s", kind.value, e)
            raise ConversionFailedError(str(e), original_error=e, kind=kind.value) from e
        request = ConversionRequest(kind=kind, quality=quality, source=uploaded)
        source = uploaded.stored_path
        output_name = converter.output_name(uploaded.stored_name)
        staging = self.storage.staging_path(output_name)
        final = self.storage.artifact_path(output_name)

        request.advance(JobState.CONVERTING)
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self._executor, converter.convert, source, staging, quality)
            original_size = source.stat().st_size
            compressed_size = staging.stat().st_size
            os.replace(staging, final)
        except (CompressorError, OSError) as e:
            request.advance(JobState.FAILED)
            request.error = str(e)
            self.storage.discard(staging)
            if isinstance(e, ConversionFailedError):
                e.kind = kind.value
                raise
            if isinstance(e, CompressorError):
                raise
            logger.exception("Filesystem error while compressing %s: %s", uploaded.original_name, e)
            raise ConversionFailedError(str(e), original_error=e, kind=kind.value) from e
        finally:
            self.storage.remove_input(source)

        request.advance(JobState.SUCCEEDED)
        result = ConversionResult(
            output_path=final,
            original_size=original_size,
            compressed_size=compressed_size,
        )
        logger.info(
            "Compressed %s %s: %s -> %s bytes (%s%%)",
            kind.value, uploaded.original_name, original_size, compressed_size, result.savings_percent,
        )
        return result
