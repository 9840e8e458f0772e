from typing import Optional

from pydantic import BaseModel, Field


class RegularKeyRequest(BaseModel):
    wallet: Optional[str] = None


class CreatorNFT(BaseModel):
    nftoken_id: str = Field(..., description="XRPL NFToken ID")
    issuer: Optional[str] = None
    uri: Optional[str] = Field(None, description="Decoded token URI, e.g. ipfs://<cid>")
    taxon: Optional[int] = None
    flags: Optional[int] = None
