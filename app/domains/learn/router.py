from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.domains.learn import schemas
from app.domains.learn.service import RewardLedgerService
from app.shared.database.connection import get_db
from app.shared.xrpl import XRPLService, get_ledger

router = APIRouter(tags=["learn-to-earn"])


def get_reward_service(
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
    ledger: XRPLService = Depends(get_ledger),
) -> RewardLedgerService:
    return RewardLedgerService(db, config, ledger=ledger)


@router.post("/learn/track", response_model=schemas.TrackResponse)
def track(
    body: schemas.TrackRequest,
    service: RewardLedgerService = Depends(get_reward_service),
):
    """
    Record a learner action. Replaying the same
    (wallet, submission_id, action_type, action_ref) returns
    ``already_recorded`` and awards nothing.

    **Possible errors:**
    - 400: Missing required fields
    """
    return service.track(body.wallet, body.submission_id, body.action_type, body.action_ref)


@router.get("/learn/summary/{wallet}", response_model=schemas.RewardSummary)
def reward_summary(
    wallet: str,
    service: RewardLedgerService = Depends(get_reward_service),
):
    return service.summary(wallet)


@router.get("/admin/learn-activity", response_model=List[schemas.LedgerEntryResponse])
def learn_activity(
    password: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    service: RewardLedgerService = Depends(get_reward_service),
):
    return service.list_activity(password, limit=limit)


@router.post("/admin/payout-learn-rewards", response_model=schemas.PayoutReport)
def payout_learn_rewards(
    body: schemas.PayoutRequest,
    service: RewardLedgerService = Depends(get_reward_service),
):
    """
    Pay unpaid CFC rewards, oldest first

    **Possible errors:**
    - 403: Wrong admin password
    - 502: Distributor wallet not configured
    """
    return service.payout(body.password, batch_limit=body.limit)
