# app/shared/pinata_client.py
import json
import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings

PINATA_BASE = "https://api.pinata.cloud/pinning"

logger = logging.getLogger(__name__)


def _auth_headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.pinata_jwt}",
    }


async def pin_file_to_ipfs(
    file_bytes: bytes, filename: str, metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Pinata pinFileToIPFS
    """
    url = f"{PINATA_BASE}/pinFileToIPFS"
    files = {"file": (filename, file_bytes)}
    if metadata:
        files["pinataMetadata"] = (None, json.dumps(metadata), "application/json")

    logger.info("Pinning file to IPFS: %s (%d bytes)", filename, len(file_bytes))

    async with httpx.AsyncClient(timeout=60) as client:
        resp = await client.post(url, headers=_auth_headers(), files=files)
        resp.raise_for_status()
        return resp.json()  # { IpfsHash, PinSize, Timestamp }


def fetch_gateway_json(cid: str, timeout: float, gateway: Optional[str] = None) -> Any:
    """
    Fetch a pinned JSON document through the public gateway.

    Raises httpx.HTTPError / ValueError; callers decide whether that is fatal.
    """
    url = f"{gateway or settings.pinata_gateway}/{cid}"
    resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    resp.raise_for_status()
    return resp.json()
