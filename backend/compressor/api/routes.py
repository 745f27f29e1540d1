"""API routes for compression and one-time download."""
import logging
from pathlib import Path
from typing import Optional

import anyio
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse

from compressor.conversion.dispatcher import ConversionDispatcher
from compressor.conversion.models import MediaKind
from compressor.storage import StorageAreas, display_name_for

logger = logging.getLogger("compressor.api")
router = APIRouter(prefix="/api", tags=["compress"])
download_router = APIRouter(tags=["download"])


def get_dispatcher(request: Request) -> ConversionDispatcher:
    return request.app.state.dispatcher


def get_storage(request: Request) -> StorageAreas:
    return request.app.state.storage


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/compress-pdf")
async def compress_pdf(
    file: Optional[UploadFile] = File(None),
    quality: Optional[str] = Form(None),
    dispatcher: ConversionDispatcher = Depends(get_dispatcher),
):
    """Rewrite a PDF. ``quality`` is accepted but the rewrite is lossless."""
    result = await dispatcher.dispatch(MediaKind.PDF, file, quality)
    return result.to_response()


@router.post("/compress-image")
async def compress_image(
    file: Optional[UploadFile] = File(None),
    quality: Optional[str] = Form(None, description="JPEG quality 1-100"),
    dispatcher: ConversionDispatcher = Depends(get_dispatcher),
):
    """Re-encode an image as JPEG at the given quality."""
    result = await dispatcher.dispatch(MediaKind.IMAGE, file, quality)
    return result.to_response()


@router.post("/compress-video")
async def compress_video(
    file: Optional[UploadFile] = File(None),
    quality: Optional[str] = Form(None, description="high | medium | low"),
    dispatcher: ConversionDispatcher = Depends(get_dispatcher),
):
    """Transcode a video to the bitrate and frame size of the requested tier."""
    result = await dispatcher.dispatch(MediaKind.VIDEO, file, quality)
    return result.to_response()


class OneShotFileResponse(FileResponse):
    """Streams a claimed artifact once.

    The artifact is deleted only after the last body chunk went out with the
    client still connected. A disconnect, or any error while sending, puts it
    back under its download name so the client can retry. Range requests are
    served as a full transfer.
    """

    def __init__(self, claimed: Path, name: str, storage: StorageAreas):
        super().__init__(claimed, filename=display_name_for(name))
        self.headers["accept-ranges"] = "none"
        self.claimed = claimed
        self.artifact_name = name
        self.storage = storage

    async def __call__(self, scope, receive, send):
        scope = {
            **scope,
            "headers": [(k, v) for k, v in scope.get("headers", []) if k.lower() not in (b"range", b"if-range")],
        }
        state = {"disconnected": False, "completed": False}

        async def tracked_send(message):
            final = (
                message["type"] == "http.response.pathsend"
                or (message["type"] == "http.response.body" and not message.get("more_body", False))
            )
            if final and not state["disconnected"]:
                state["completed"] = True
            await send(message)

        error = None
        try:
            async with anyio.create_task_group() as task_group:

                async def watch_disconnect():
                    while True:
                        message = await receive()
                        if message["type"] == "http.disconnect":
                            if not state["completed"]:
                                state["disconnected"] = True
                                task_group.cancel_scope.cancel()
                            return

                task_group.start_soon(watch_disconnect)
                try:
                    await super().__call__(scope, receive, tracked_send)
                except Exception as e:
                    error = e
                task_group.cancel_scope.cancel()
        except BaseException:
            self.storage.release_artifact(self.claimed, self.artifact_name)
            raise

        if error is not None:
            self.storage.release_artifact(self.claimed, self.artifact_name)
            raise error
        if state["completed"]:
            self.storage.discard(self.claimed)
        else:
            self.storage.release_artifact(self.claimed, self.artifact_name)


@download_router.get("/download")
def download(
    file: Optional[str] = Query(None, description="Download reference returned by a compress call"),
    storage: StorageAreas = Depends(get_storage),
):
    """Serve a processed artifact once. A second request for the same name gets 404."""
    name = file or ""
    claimed = storage.claim_artifact(name)
    logger.info("Serving %s", name)
    return OneShotFileResponse(claimed, name, storage)
