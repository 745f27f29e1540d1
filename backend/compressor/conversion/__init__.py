from .base import Converter
from .image import ImageConverter
from .models import ConversionRequest, ConversionResult, JobState, MediaKind, UploadedFile
from .pdf import PdfConverter
from .video import VideoConverter

__all__ = [
    "Converter",
    "ConversionRequest",
    "ConversionResult",
    "ImageConverter",
    "JobState",
    "MediaKind",
    "PdfConverter",
    "UploadedFile",
    "VideoConverter",
]
