import logging
from typing import List, Optional

from xrpl.utils import hex_to_str

from app.core.config import Settings
from app.core.errors import UpstreamUnavailable, ValidationError
from app.domains.creators import schemas
from app.shared.xrpl import build_set_regular_key_tx_json
from app.shared.xumm_client import SigningSession

logger = logging.getLogger(__name__)


def _decode_uri(uri_hex: Optional[str]) -> Optional[str]:
    if not uri_hex:
        return None
    try:
        return hex_to_str(uri_hex)
    except ValueError:
        return None


class CreatorService:
    def __init__(self, config: Settings, signer=None, ledger=None):
        self.config = config
        self.signer = signer
        self.ledger = ledger

    def request_regular_key(self, wallet: Optional[str]) -> SigningSession:
        """One-time approval letting the marketplace key act for the creator."""
        if not wallet:
            raise ValidationError("Missing wallet")
        if not self.config.marketplace_regular_key:
            raise UpstreamUnavailable("Marketplace regular key is not configured")

        tx_json = build_set_regular_key_tx_json(wallet, self.config.marketplace_regular_key)
        session = self.signer.create_payload(tx_json)
        logger.info("SetRegularKey session %s opened for %s", session.uuid, wallet)
        return session

    def list_nfts(self, wallet: str) -> List[schemas.CreatorNFT]:
        return [
            schemas.CreatorNFT(
                nftoken_id=token["NFTokenID"],
                issuer=token.get("Issuer"),
                uri=_decode_uri(token.get("URI")),
                taxon=token.get("NFTokenTaxon"),
                flags=token.get("Flags"),
            )
            for token in self.ledger.account_tokens(wallet)
            if token.get("NFTokenID")
        ]
