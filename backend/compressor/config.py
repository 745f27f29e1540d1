"""Application configuration. Loads from environment and .env file."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env
load_dotenv()
load_dotenv(BASE_DIR / ".env")

# Storage areas, relative to the process working directory unless absolute
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "compressed"))
STATIC_DIR = Path(os.getenv("STATIC_DIR", "public"))

# Limits
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "500"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024

# Conversion options
DEFAULT_IMAGE_QUALITY = int(os.getenv("DEFAULT_IMAGE_QUALITY", "80"))
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
FFMPEG_TIMEOUT = int(os.getenv("FFMPEG_TIMEOUT", "600"))

# Concurrency
MAX_WORKERS = int(os.getenv("MAX_WORKERS", str(min(32, (os.cpu_count() or 4) + 4))))

# Orphaned artifacts: processed files older than the TTL are swept. Interval 0 disables the sweep.
ARTIFACT_TTL_SECONDS = int(os.getenv("ARTIFACT_TTL_SECONDS", "3600"))
SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", "300"))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
# CORS: comma-separated origins, "*" for any
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("compressor")


@dataclass(frozen=True)
class Settings:
    """Runtime settings handed to the app factory. Defaults come from the environment."""

    upload_dir: Path = UPLOAD_DIR
    output_dir: Path = OUTPUT_DIR
    static_dir: Path = STATIC_DIR
    max_upload_bytes: int = MAX_UPLOAD_SIZE_BYTES
    default_image_quality: int = DEFAULT_IMAGE_QUALITY
    ffmpeg_binary: str = FFMPEG_BINARY
    ffmpeg_timeout: int = FFMPEG_TIMEOUT
    max_workers: int = MAX_WORKERS
    artifact_ttl_seconds: int = ARTIFACT_TTL_SECONDS
    sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS
    cors_origins: tuple[str, ...] = tuple(CORS_ORIGINS)
