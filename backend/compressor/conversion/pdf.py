"""PDF rewrite via pypdf: load, copy pages, re-deflate content streams, save."""
import logging
from pathlib import Path
from typing import Optional

from pypdf import PdfReader, PdfWriter

from compressor.conversion.base import Converter
from compressor.conversion.models import MediaKind

logger = logging.getLogger("compressor.conversion.pdf")


class PdfConverter(Converter):
    kind = MediaKind.PDF

    def _convert(self, source: Path, destination: Path, quality: Optional[str]) -> None:
        if quality:
            # Rewrite is lossless; the level is accepted for API compatibility only.
            logger.debug("Ignoring quality=%s for %s", quality, source.name)
        reader = PdfReader(str(source))
        if reader.is_encrypted:
            raise ValueError("PDF is password-protected")
        writer = PdfWriter()
        for page in reader.pages:
            new_page = writer.add_page(page)
            if new_page.get_contents() is not None:
                new_page.compress_content_streams()
        if reader.metadata:
            writer.add_metadata(dict(reader.metadata))
        with open(destination, "wb") as f:
            writer.write(f)
        logger.info("Rewrote PDF %s (%s pages)", source.name, len(reader.pages))
