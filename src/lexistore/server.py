"""Disk server that keeps lexicon.sqlite on disk for the sync client.

Routes:
    GET  /status          report whether a stored file exists
    GET  /lexicon.sqlite  download the stored file (404 when absent)
    POST /lexicon.sqlite  replace the stored file with the raw request body

Run:
    lexistore serve
"""

from pathlib import Path

import aiofiles.os
import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from lexistore.services.local_cache import write_atomic

logger = structlog.get_logger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 100 * 1024 * 1024


def create_app(lexicon_path: Path, max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES) -> FastAPI:
    """Build the disk server app around a single stored file.

    Args:
        lexicon_path: File the server reads and overwrites.
        max_upload_bytes: Largest accepted POST body.
    """
    lexicon_path = Path(lexicon_path)
    app = FastAPI(title="lexistore disk server")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/status")
    async def status() -> dict:
        exists = await aiofiles.os.path.isfile(lexicon_path)
        return {"lexiconExists": exists}

    @app.get("/lexicon.sqlite")
    async def download_lexicon() -> FileResponse:
        if not await aiofiles.os.path.isfile(lexicon_path):
            raise HTTPException(status_code=404, detail="lexicon.sqlite not found")
        return FileResponse(lexicon_path, media_type="application/octet-stream")

    @app.post("/lexicon.sqlite")
    async def upload_lexicon(request: Request) -> dict:
        too_large = HTTPException(
            status_code=413,
            detail=f"Body too large. Maximum size is {max_upload_bytes} bytes",
        )
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > max_upload_bytes:
            raise too_large

        body = bytearray()
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > max_upload_bytes:
                raise too_large
        if not body:
            raise HTTPException(status_code=400, detail="Request body is empty")

        try:
            await write_atomic(lexicon_path, bytes(body))
        except OSError as e:
            logger.error("lexicon_write_failed", path=str(lexicon_path), error=str(e))
            raise HTTPException(status_code=500, detail=str(e)) from e

        logger.info("lexicon_written", path=str(lexicon_path), size_bytes=len(body))
        return {"success": True, "message": "lexicon.sqlite updated"}

    return app
