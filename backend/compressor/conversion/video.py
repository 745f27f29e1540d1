"""Video transcode via the ffmpeg binary."""
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from compressor.conversion.base import Converter
from compressor.conversion.models import MediaKind
from compressor.exceptions import ConversionFailedError

logger = logging.getLogger("compressor.conversion.video")


@dataclass(frozen=True)
class VideoTier:
    bitrate: str
    size: str  # WxH

    @property
    def scale_filter(self) -> str:
        width, height = self.size.split("x", 1)
        return f"scale={width}:{height}"


# NOTE: "high" maps to the smallest output and "low" to the largest. This is the
# historical mapping clients depend on; confirm intent before swapping it.
VIDEO_TIERS = {
    "high": VideoTier(bitrate="500k", size="640x360"),
    "medium": VideoTier(bitrate="1000k", size="854x480"),
    "low": VideoTier(bitrate="2000k", size="1280x720"),
}
DEFAULT_TIER = "medium"


def select_video_tier(quality: Optional[str]) -> VideoTier:
    """Unknown or missing tier names fall back to medium."""
    name = (quality or "").strip().lower()
    return VIDEO_TIERS.get(name, VIDEO_TIERS[DEFAULT_TIER])


class VideoConverter(Converter):
    kind = MediaKind.VIDEO

    def __init__(self, ffmpeg_binary: str = "ffmpeg", timeout: int = 600):
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout

    def build_command(self, source: Path, destination: Path, tier: VideoTier) -> list[str]:
        return [
            self.ffmpeg_binary, "-y", "-i", str(source),
            "-b:v", tier.bitrate,
            "-vf", tier.scale_filter,
            str(destination),
        ]

    def _convert(self, source: Path, destination: Path, quality: Optional[str]) -> None:
        tier = select_video_tier(quality)
        cmd = self.build_command(source, destination, tier)
        logger.info("Transcoding %s at %s / %s", source.name, tier.bitrate, tier.size)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            logger.error("ffmpeg not found (%s). Install ffmpeg for video compression.", self.ffmpeg_binary)
            raise ConversionFailedError("ffmpeg not installed", original_error=e) from e
        except subprocess.TimeoutExpired as e:
            raise ConversionFailedError(f"ffmpeg timed out after {self.timeout}s", original_error=e) from e
        if result.returncode != 0:
            raise ConversionFailedError((result.stderr or result.stdout or "ffmpeg failed").strip()[-2000:])
