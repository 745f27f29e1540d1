"""Tests for conversion models and size metrics."""
from pathlib import Path

import pytest

from compressor.conversion.models import (
    ConversionRequest,
    ConversionResult,
    JobState,
    MediaKind,
    UploadedFile,
    savings_percent,
)


class TestSavingsPercent:

    def test_unchanged_size_is_zero(self):
        assert savings_percent(1000, 1000) == 0

    def test_growth_is_negative(self):
        assert savings_percent(1000, 1100) == -10

    def test_halved(self):
        assert savings_percent(1000, 500) == 50

    def test_rounds_half_up(self):
        assert savings_percent(200, 195) == 3  # 2.5
        assert savings_percent(200, 205) == -2  # -2.5

    def test_empty_original(self):
        assert savings_percent(0, 10) == 0


class TestConversionResult:

    def test_response_shape(self, tmp_path):
        result = ConversionResult(output_path=tmp_path / "compressed-1-abc-a.pdf", original_size=1000, compressed_size=750)
        assert result.to_response() == {
            "success": True,
            "downloadUrl": "/download?file=compressed-1-abc-a.pdf",
            "originalSize": 1000,
            "compressedSize": 750,
            "savings": 25,
        }

    def test_download_url_is_quoted(self, tmp_path):
        result = ConversionResult(output_path=tmp_path / "compressed-my file.jpg", original_size=1, compressed_size=1)
        assert result.download_reference == "compressed-my file.jpg"
        assert result.download_url == "/download?file=compressed-my%20file.jpg"


class TestConversionRequest:

    def _request(self):
        source = UploadedFile(stored_path=Path("/tmp/1-abcdef01-a.png"), original_name="a.png", size_bytes=3)
        return ConversionRequest(kind=MediaKind.IMAGE, quality="80", source=source)

    def test_starts_received(self):
        assert self._request().state == JobState.RECEIVED

    def test_terminal_states_are_final(self):
        request = self._request()
        request.advance(JobState.CONVERTING)
        request.advance(JobState.FAILED)
        with pytest.raises(RuntimeError):
            request.advance(JobState.SUCCEEDED)

    def test_stored_name(self):
        assert self._request().source.stored_name == "1-abcdef01-a.png"
