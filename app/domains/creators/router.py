from typing import List

from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings
from app.domains.creators import schemas
from app.domains.creators.service import CreatorService
from app.shared.xrpl import XRPLService, get_ledger
from app.shared.xumm_client import SigningSession, XummClient, get_signing_gateway

router = APIRouter(prefix="/creators", tags=["creators"])


def get_creator_service(
    config: Settings = Depends(get_settings),
    signer: XummClient = Depends(get_signing_gateway),
    ledger: XRPLService = Depends(get_ledger),
) -> CreatorService:
    return CreatorService(config, signer=signer, ledger=ledger)


@router.post("/set-regular-key", response_model=SigningSession)
def set_regular_key(
    body: schemas.RegularKeyRequest,
    service: CreatorService = Depends(get_creator_service),
):
    """
    Sign a SetRegularKey for the marketplace (one-time creator approval)

    **Possible errors:**
    - 400: Missing wallet
    - 502: Signing service unavailable or marketplace key not configured
    """
    return service.request_regular_key(body.wallet)


@router.get("/{wallet}/nfts", response_model=List[schemas.CreatorNFT])
def list_wallet_nfts(
    wallet: str,
    service: CreatorService = Depends(get_creator_service),
):
    """NFTokens currently held by a wallet, read from the validated ledger"""
    return service.list_nfts(wallet)
