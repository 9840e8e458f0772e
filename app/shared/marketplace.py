import logging
from typing import Any, Dict

import httpx
from fastapi import Depends

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class MarketplaceClient:
    def __init__(self, config: Settings):
        self.config = config

    def notify(self, fields: Dict[str, Any]) -> Any:
        """Register a minted submission with the marketplace backend."""
        logger.info("Sending NFT to marketplace: submission %s", fields.get("submission_id"))
        resp = httpx.post(
            self.config.marketplace_url,
            json=fields,
            timeout=self.config.marketplace_timeout,
        )
        resp.raise_for_status()
        return resp.json() if resp.content else None


def get_marketplace(config: Settings = Depends(get_settings)) -> MarketplaceClient:
    return MarketplaceClient(config)
