from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.sql import func

from app.shared.database.connection import Base

from .lifecycle import MintStatus, ModerationStatus, PaymentStatus


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    creator_wallet = Column(String(128), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)

    image_cid = Column(String(128), nullable=True)
    metadata_cid = Column(String(128), nullable=False)

    batch_qty = Column(Integer, nullable=False, default=1)
    terms = Column(Text, nullable=True)
    price_xrp = Column(String(64), nullable=True)
    price_rlusd = Column(String(64), nullable=True)

    moderation_status = Column(
        Enum(ModerationStatus), nullable=False, default=ModerationStatus.PENDING
    )
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.UNPAID)
    mint_status = Column(Enum(MintStatus), nullable=False, default=MintStatus.PENDING)
    is_delisted = Column(Boolean, nullable=False, default=False)
    rejection_reason = Column(Text, nullable=True)

    payment_session_id = Column(String(64), nullable=True)  # Xumm payload uuid
    mint_session_id = Column(String(64), nullable=True)
    payment_tx_id = Column(String(128), nullable=True)
    mint_tx_id = Column(String(128), nullable=True)
    nftoken_id = Column(String(128), nullable=True)
    sent_to_marketplace = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def public_fields(self) -> dict:
        """Fields shared with the marketplace once minted."""
        return {
            "submission_id": self.id,
            "name": self.name,
            "description": self.description or "",
            "category": "all",
            "image_cid": self.image_cid,
            "metadata_cid": self.metadata_cid,
            "price_xrp": self.price_xrp,
            "price_rlusd": self.price_rlusd,
            "creator_wallet": self.creator_wallet,
            "terms": self.terms or "",
            "website": self.website or "",
            "nftoken_id": self.nftoken_id,
            "quantity": self.batch_qty,
        }
