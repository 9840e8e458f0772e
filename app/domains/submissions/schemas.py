import json
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .lifecycle import MintStatus, ModerationStatus, PaymentStatus


class SubmissionCreate(BaseModel):
    wallet: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    image_cid: Optional[str] = Field(default=None, alias="imageCid")
    metadata_cid: Optional[str] = Field(default=None, alias="metadataCid")
    quantity: int = Field(default=1, ge=1)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=500)
    terms: Optional[str] = None
    price_xrp: Optional[str] = None
    price_rlusd: Optional[str] = None
    # Legacy clients send terms/prices inside a JSON-encoded metadata string
    metadata: Optional[str] = None

    @field_validator("email", "website", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def merge_legacy_metadata(self):
        if not self.metadata:
            return self
        parsed = json.loads(self.metadata)
        if not isinstance(parsed, dict):
            raise ValueError("metadata must be a JSON object")
        terms = parsed.get("terms")
        if terms is not None and not isinstance(terms, str):
            raise ValueError("metadata.terms must be a string")
        self.terms = self.terms or terms
        self.price_xrp = self.price_xrp or _as_str(parsed.get("price_xrp"), "price_xrp")
        self.price_rlusd = self.price_rlusd or _as_str(parsed.get("price_rlusd"), "price_rlusd")
        return self

    class Config:
        populate_by_name = True


def _as_str(value, field: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"metadata.{field} must be a number or string")
    return str(value)


class SubmitResponse(BaseModel):
    submitted: bool = True
    id: int


class SubmissionResponse(BaseModel):
    id: int
    creator_wallet: str
    name: Optional[str]
    description: Optional[str]
    email: Optional[str]
    website: Optional[str]
    image_cid: Optional[str]
    metadata_cid: str
    batch_qty: int
    terms: Optional[str]
    price_xrp: Optional[str]
    price_rlusd: Optional[str]
    moderation_status: ModerationStatus
    payment_status: PaymentStatus
    mint_status: MintStatus
    is_delisted: bool
    rejection_reason: Optional[str]
    payment_session_id: Optional[str]
    mint_session_id: Optional[str]
    payment_tx_id: Optional[str]
    mint_tx_id: Optional[str]
    nftoken_id: Optional[str]
    sent_to_marketplace: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MarketplaceItem(BaseModel):
    id: int
    creator_wallet: str
    name: Optional[str]
    description: Optional[str]
    website: Optional[str]
    image_cid: Optional[str]
    metadata_cid: str
    batch_qty: int
    terms: Optional[str]
    price_xrp: Optional[str]
    price_rlusd: Optional[str]
    nftoken_id: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ModerationRequest(BaseModel):
    id: int
    password: Optional[str] = None
    reason: Optional[str] = None


class PaymentRequest(BaseModel):
    submission_id: int = Field(..., alias="submissionId")

    class Config:
        populate_by_name = True


class MintRequest(BaseModel):
    id: int


class ConfirmRequest(BaseModel):
    id: int
    uuid: str = Field(..., min_length=1)


class DelistRequest(BaseModel):
    submission_id: int
    delist: bool


class ConfirmationResponse(BaseModel):
    submission_id: int
    status: Literal["pending", "confirmed", "declined"]
    payment_status: PaymentStatus
    mint_status: MintStatus
