import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends
from pydantic import BaseModel

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class SigningSession(BaseModel):
    uuid: str
    link: str


class PayloadStatus(BaseModel):
    resolved: bool = False
    signed: bool = False
    expired: bool = False
    account: Optional[str] = None
    txid: Optional[str] = None


class XummClient:
    """Thin client for the Xumm/Xaman platform payload API."""

    def __init__(self, config: Settings):
        self.config = config

    def _headers(self) -> Dict[str, str]:
        return {
            "X-API-Key": self.config.xumm_api_key,
            "X-API-Secret": self.config.xumm_api_secret,
            "Content-Type": "application/json",
        }

    def create_payload(self, txjson: Dict[str, Any]) -> SigningSession:
        body = {
            "txjson": txjson,
            "options": {
                "return_url": {
                    "web": self.config.creator_page_url,
                    "app": self.config.creator_page_url,
                }
            },
        }
        try:
            resp = httpx.post(
                f"{self.config.xumm_api_url}/payload",
                headers=self._headers(),
                json=body,
                timeout=self.config.xumm_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
            session = SigningSession(uuid=data["uuid"], link=data["next"]["always"])
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error("Xumm payload creation failed for %s: %s", txjson.get("TransactionType"), e)
            raise UpstreamUnavailable("Signing service unavailable") from e

        logger.info("Created %s signing payload %s", txjson.get("TransactionType"), session.uuid)
        return session

    def get_payload(self, uuid: str) -> PayloadStatus:
        try:
            resp = httpx.get(
                f"{self.config.xumm_api_url}/payload/{uuid}",
                headers=self._headers(),
                timeout=self.config.xumm_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Xumm payload lookup failed for %s: %s", uuid, e)
            raise UpstreamUnavailable("Signing service unavailable") from e

        meta = data.get("meta") or {}
        response = data.get("response") or {}
        return PayloadStatus(
            resolved=bool(meta.get("resolved")),
            signed=bool(meta.get("signed")),
            expired=bool(meta.get("expired")),
            account=response.get("account"),
            txid=response.get("txid"),
        )


def get_signing_gateway(config: Settings = Depends(get_settings)) -> XummClient:
    return XummClient(config)
