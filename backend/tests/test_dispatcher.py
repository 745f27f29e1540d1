"""Tests for the conversion dispatcher lifecycle, independent of HTTP."""
import asyncio
import io
from pathlib import Path

import pytest
from fastapi import UploadFile

from compressor.conversion.base import Converter
from compressor.conversion.dispatcher import ConversionDispatcher
from compressor.conversion.models import MediaKind
from compressor.exceptions import ConversionFailedError, NoFileError
from compressor.storage import StorageAreas


class CopyConverter(Converter):
    """Writes a fixed number of bytes, or fails on demand."""

    kind = MediaKind.PDF

    def __init__(self, size=10, fail=False):
        self.size = size
        self.fail = fail
        self.seen = []

    def _convert(self, source: Path, destination: Path, quality):
        self.seen.append((source.name, destination.name, quality))
        destination.write_bytes(b"x" * self.size)
        if self.fail:
            raise ValueError("engine exploded")


def _upload(data=b"y" * 20, filename="doc.pdf"):
    return UploadFile(file=io.BytesIO(data), filename=filename)


@pytest.fixture
def make_dispatcher(storage):
    created = []

    def _make(converter):
        dispatcher = ConversionDispatcher(storage, {MediaKind.PDF: converter}, max_workers=2)
        created.append(dispatcher)
        return dispatcher

    yield _make
    for dispatcher in created:
        dispatcher.shutdown()


class TestDispatch:

    def test_success(self, storage, make_dispatcher):
        converter = CopyConverter(size=5)
        result = asyncio.run(make_dispatcher(converter).dispatch(MediaKind.PDF, _upload(), "q"))

        assert result.original_size == 20
        assert result.compressed_size == 5
        assert result.savings_percent == 75
        assert result.output_path.parent == storage.processed
        assert result.output_path.is_file()
        assert result.download_reference.startswith("compressed-")
        assert list(storage.incoming.iterdir()) == []
        # converter wrote to a staging name, never to the servable one
        _, staged, quality = converter.seen[0]
        assert staged.startswith(".partial-compressed-")
        assert quality == "q"
        assert [p.name for p in storage.processed.iterdir()] == [result.download_reference]

    def test_failure_cleans_input_and_partial_output(self, storage, make_dispatcher):
        dispatcher = make_dispatcher(CopyConverter(fail=True))
        with pytest.raises(ConversionFailedError) as exc_info:
            asyncio.run(dispatcher.dispatch(MediaKind.PDF, _upload()))

        assert exc_info.value.kind == "pdf"
        assert exc_info.value.route_code == "PDF_COMPRESSION_FAILED"
        assert "engine exploded" in exc_info.value.detail
        assert list(storage.incoming.iterdir()) == []
        assert list(storage.processed.iterdir()) == []

    def test_no_file(self, storage, make_dispatcher):
        converter = CopyConverter()
        with pytest.raises(NoFileError):
            asyncio.run(make_dispatcher(converter).dispatch(MediaKind.PDF, None))
        assert converter.seen == []
        assert list(storage.incoming.iterdir()) == []

    def test_concurrent_same_name_uploads(self, storage, make_dispatcher):
        dispatcher = make_dispatcher(CopyConverter())

        async def _both():
            return await asyncio.gather(
                dispatcher.dispatch(MediaKind.PDF, _upload(filename="same.pdf")),
                dispatcher.dispatch(MediaKind.PDF, _upload(filename="same.pdf")),
            )

        first, second = asyncio.run(_both())
        assert first.output_path != second.output_path
        assert first.output_path.is_file()
        assert second.output_path.is_file()

    def test_storage_error_while_receiving_is_a_conversion_failure(self, storage, make_dispatcher, monkeypatch):
        async def broken_receive(self, upload):
            raise OSError(36, "File name too long")

        monkeypatch.setattr(StorageAreas, "receive", broken_receive)
        converter = CopyConverter()
        with pytest.raises(ConversionFailedError) as exc_info:
            asyncio.run(make_dispatcher(converter).dispatch(MediaKind.PDF, _upload()))

        assert exc_info.value.route_code == "PDF_COMPRESSION_FAILED"
        assert isinstance(exc_info.value.original_error, OSError)
        assert converter.seen == []
