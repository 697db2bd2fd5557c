"""HTTP routes: upload ingress and health check."""
import logging
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.responses import JSONResponse

from ..models import FilePayload, ObjectStoreDestination
from ..orchestrator import UploadOrchestrator
from ..settings import Settings
from ..utils.keys import build_object_key
from .responses import error_response, result_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@router.post("/upload")
async def upload(request: Request, file: Optional[UploadFile] = File(None)) -> JSONResponse:
    """Store the multipart field ``file`` in S3 and IPFS."""
    if file is None:
        logger.info("Upload request without a file field")
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "NoFileError",
            "No file found in upload request",
        )

    settings: Settings = request.app.state.settings
    orchestrator: UploadOrchestrator = request.app.state.orchestrator

    destination = ObjectStoreDestination(
        bucket=settings.s3_bucket,
        key=build_object_key(settings.s3_key_prefix, file.filename),
    )
    payload = FilePayload.from_reader(
        file,
        filename=file.filename,
        content_type=file.content_type,
        declared_length=getattr(file, "size", None),
    )

    try:
        result = await orchestrator.upload(payload, destination)
    finally:
        await file.close()

    return result_response(result)
