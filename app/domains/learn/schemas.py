from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class TrackRequest(BaseModel):
    wallet: Optional[str] = None
    submission_id: Optional[int] = None
    action_type: Optional[str] = None
    action_ref: Optional[str] = None


class TrackResponse(BaseModel):
    ok: bool = True
    already_recorded: bool = False
    tokens_earned: Optional[Decimal] = None


class LedgerEntryResponse(BaseModel):
    id: int
    wallet: str
    submission_id: int
    action_type: str
    action_ref: str
    tokens_earned: Decimal
    tokens_paid: Decimal
    tx_hash: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RewardSummary(BaseModel):
    wallet: str
    entries: int
    tokens_earned: Decimal
    tokens_paid: Decimal
    outstanding: Decimal


class PayoutRequest(BaseModel):
    password: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1, le=500)


class PayoutOutcome(BaseModel):
    entry_id: int
    wallet: str
    amount: Decimal
    paid: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None


class PayoutReport(BaseModel):
    ok: bool = True
    attempted: int
    paid: int
    outcomes: List[PayoutOutcome]
