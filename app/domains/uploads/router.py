import logging
from typing import Optional

import httpx
from fastapi import APIRouter, File, UploadFile
from pydantic import BaseModel

from app.core.errors import UpstreamUnavailable, ValidationError
from app.shared import pinata_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


class UploadOut(BaseModel):
    cid: str


@router.post("/upload", response_model=UploadOut)
async def upload_file(file: Optional[UploadFile] = File(None)):
    """
    Pin an image or metadata file to IPFS through Pinata

    **Possible errors:**
    - 400: No file
    - 502: Pinata rejected the upload or is unreachable
    """
    if file is None:
        raise ValidationError("No file")

    file_bytes = await file.read()
    try:
        res = await pinata_client.pin_file_to_ipfs(
            file_bytes=file_bytes,
            filename=file.filename or "upload.bin",
        )
        return UploadOut(cid=res["IpfsHash"])
    except (httpx.HTTPError, KeyError) as e:
        logger.error("Pinata upload failed for %s: %s", file.filename, e)
        raise UpstreamUnavailable("Upload failed") from e
