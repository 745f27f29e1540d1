"""FastAPI application entry point."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from compressor.api.errors import register_error_handlers
from compressor.api.routes import download_router, router
from compressor.config import Settings, logger as config_logger
from compressor.conversion import ImageConverter, MediaKind, PdfConverter, VideoConverter
from compressor.conversion.dispatcher import ConversionDispatcher
from compressor.storage import StorageAreas

logging.getLogger("uvicorn").setLevel(logging.INFO)
logger = logging.getLogger("compressor.main")


async def sweep_forever(storage: StorageAreas, interval: float, ttl: int) -> None:
    """Remove artifacts nobody downloaded."""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(storage.sweep, ttl)
        except OSError as e:
            logger.warning("Artifact sweep failed: %s", e)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    storage = StorageAreas(
        incoming=settings.upload_dir,
        processed=settings.output_dir,
        max_upload_bytes=settings.max_upload_bytes,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage.ensure()
        dispatcher = ConversionDispatcher(
            storage,
            {
                MediaKind.PDF: PdfConverter(),
                MediaKind.IMAGE: ImageConverter(default_quality=settings.default_image_quality),
                MediaKind.VIDEO: VideoConverter(
                    ffmpeg_binary=settings.ffmpeg_binary,
                    timeout=settings.ffmpeg_timeout,
                ),
            },
            max_workers=settings.max_workers,
        )
        app.state.storage = storage
        app.state.dispatcher = dispatcher
        sweeper = None
        if settings.sweep_interval_seconds > 0:
            sweeper = asyncio.create_task(
                sweep_forever(storage, settings.sweep_interval_seconds, settings.artifact_ttl_seconds)
            )
        config_logger.info("Compressor API started")
        yield
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
        dispatcher.shutdown()
        config_logger.info("Compressor API shutting down")

    app = FastAPI(
        title="File Compressor API",
        description="Compress PDFs, images and videos and download the result once.",
        version="1.0.0",
        lifespan=lifespan,
    )
    origins = list(settings.cors_origins) or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    app.include_router(download_router)
    if settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from compressor.config import HOST, PORT
    uvicorn.run("compressor.main:app", host=HOST, port=PORT)
