"""Shared test fixtures: an app wired to per-test storage areas, and sample files."""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from pypdf import PdfWriter

from compressor.config import Settings
from compressor.main import create_app
from compressor.storage import StorageAreas


@pytest.fixture
def settings(tmp_path):
    return Settings(
        upload_dir=tmp_path / "uploads",
        output_dir=tmp_path / "compressed",
        static_dir=tmp_path / "public",
        max_upload_bytes=5 * 1024 * 1024,
        sweep_interval_seconds=0,
        max_workers=2,
    )


@pytest.fixture
def api_client(settings):
    """TestClient used as a context manager so the lifespan (storage setup) runs."""
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def storage(tmp_path):
    areas = StorageAreas(incoming=tmp_path / "in", processed=tmp_path / "out", max_upload_bytes=1024)
    areas.ensure()
    return areas


def make_png(size=(64, 64), mode="RGBA") -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_pdf(pages: int = 2) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def pdf_bytes():
    return make_pdf()
