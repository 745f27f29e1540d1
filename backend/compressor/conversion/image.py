"""Image re-encode via Pillow. Output is always JPEG at the requested quality."""
import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from compressor.conversion.base import Converter
from compressor.conversion.models import MediaKind
from compressor.exceptions import InvalidQualityError

logger = logging.getLogger("compressor.conversion.image")

MIN_QUALITY = 1
MAX_QUALITY = 100


def parse_image_quality(quality: Optional[str], default: int) -> int:
    """Quality is an integer 1-100; blank means ``default``."""
    if quality is None or not str(quality).strip():
        return default
    try:
        value = int(str(quality).strip())
    except ValueError:
        raise InvalidQualityError(f"Image quality must be an integer, got {quality!r}") from None
    if not MIN_QUALITY <= value <= MAX_QUALITY:
        raise InvalidQualityError(f"Image quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {value}")
    return value


class ImageConverter(Converter):
    kind = MediaKind.IMAGE
    output_suffix = ".jpg"

    def __init__(self, default_quality: int = 80):
        self.default_quality = default_quality

    def _convert(self, source: Path, destination: Path, quality: Optional[str]) -> None:
        q = parse_image_quality(quality, self.default_quality)
        with Image.open(source) as img:
            if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
                # JPEG has no alpha: flatten onto white
                rgba = img.convert("RGBA")
                work = Image.new("RGB", rgba.size, (255, 255, 255))
                work.paste(rgba, mask=rgba.getchannel("A"))
            elif img.mode != "RGB":
                work = img.convert("RGB")
            else:
                work = img
            work.save(str(destination), format="JPEG", quality=q, optimize=True)
        logger.info("Re-encoded %s as JPEG (quality=%s)", source.name, q)
