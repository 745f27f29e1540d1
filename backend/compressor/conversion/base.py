"""Converter contract shared by the PDF, image and video variants."""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from compressor.conversion.models import MediaKind
from compressor.exceptions import CompressorError, ConversionFailedError

logger = logging.getLogger("compressor.conversion")


class Converter(ABC):
    """
    Turns one input file into one compressed output file.

    Implementations:
    - block until the output is completely written, or raise;
    - raise ConversionFailedError (with the upstream message) for any library failure;
    - write only to ``destination``; the caller decides where that is and cleans it up on failure.
    """

    kind: MediaKind
    # None keeps the input's suffix
    output_suffix: Optional[str] = None

    def output_name(self, stored_name: str, prefix: str = "compressed-") -> str:
        name = f"{prefix}{stored_name}"
        if self.output_suffix:
            name = str(Path(name).with_suffix(self.output_suffix))
        return name

    def convert(self, source: Path, destination: Path, quality: Optional[str] = None) -> Path:
        try:
            self._convert(source, destination, quality)
        except CompressorError:
            raise
        except Exception as e:
            logger.exception("%s conversion failed for %s: %s", self.kind.value, source.name, e)
            raise ConversionFailedError(str(e) or e.__class__.__name__, original_error=e) from e
        if not destination.is_file():
            raise ConversionFailedError(f"{self.kind.value} converter produced no output")
        return destination

    @abstractmethod
    def _convert(self, source: Path, destination: Path, quality: Optional[str]) -> None:
        ...
