from sqlalchemy import Column, DateTime, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.sql import func

from app.shared.database.connection import Base


class RewardLedgerEntry(Base):
    __tablename__ = "learn_rewards_ledger"

    id = Column(Integer, primary_key=True, index=True)
    wallet = Column(String(128), nullable=False, index=True)
    submission_id = Column(Integer, nullable=False, index=True)
    action_type = Column(String(64), nullable=False)
    action_ref = Column(String(255), nullable=False)
    tokens_earned = Column(Numeric(20, 8), nullable=False, default=0)
    tokens_paid = Column(Numeric(20, 8), nullable=False, default=0)  # never above tokens_earned
    tx_hash = Column(String(128), nullable=True)  # settlement payment
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        # One reward per learner action; replays hit this constraint
        UniqueConstraint(
            "wallet", "submission_id", "action_type", "action_ref",
            name="uq_learn_reward_action",
        ),
    )
