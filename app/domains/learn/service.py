import logging
from decimal import Decimal
from typing import Any, Callable, List, Optional

import httpx
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import UpstreamUnavailable, ValidationError
from app.domains.auth.service import AdminAuthService
from app.domains.learn import models, schemas
from app.domains.submissions.models import Submission
from app.shared.pinata_client import fetch_gateway_json

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# tokens_earned is Numeric(20, 8): at most 12 integer digits
MAX_REWARD = Decimal("1e12")


class RewardLedgerService:
    """Learn-to-earn: record learner actions once, pay CFC out in batches."""

    def __init__(
        self,
        db: Session,
        config: Settings,
        ledger=None,
        fetch_document: Callable[..., Any] = fetch_gateway_json,
    ):
        self.db = db
        self.config = config
        self.ledger = ledger
        self.fetch_document = fetch_document
        self.admin = AdminAuthService(config)

    def _find(
        self, wallet: str, submission_id: int, action_type: str, action_ref: str
    ) -> Optional[models.RewardLedgerEntry]:
        return (
            self.db.query(models.RewardLedgerEntry)
            .filter(models.RewardLedgerEntry.wallet == wallet)
            .filter(models.RewardLedgerEntry.submission_id == submission_id)
            .filter(models.RewardLedgerEntry.action_type == action_type)
            .filter(models.RewardLedgerEntry.action_ref == action_ref)
            .first()
        )

    # ----------------------------
    # Reward rules
    # ----------------------------
    def _rule_override(self, submission_id: int, action_type: str) -> Optional[Decimal]:
        """Creator-defined ``learn`` rules from the submission's metadata document."""
        row = (
            self.db.query(Submission.metadata_cid)
            .filter(Submission.id == submission_id)
            .first()
        )
        if row is None or not row.metadata_cid:
            return None

        try:
            document = self.fetch_document(
                row.metadata_cid,
                timeout=self.config.reward_rules_timeout,
                gateway=self.config.pinata_gateway,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.info("Reward rules unavailable for submission %s: %s", submission_id, e)
            return None

        rules = document.get("learn") if isinstance(document, dict) else None
        if not isinstance(rules, dict):
            return None
        value = rules.get(action_type)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        try:
            amount = Decimal(str(value))
        except ValueError:
            # int too long to render as a string
            amount = None
        if amount is None or not amount.is_finite() or amount < 0 or amount >= MAX_REWARD:
            logger.warning(
                "Ignoring invalid %s reward for submission %s", action_type, submission_id
            )
            return None
        return amount

    def reward_for(self, submission_id: int, action_type: str) -> Decimal:
        override = self._rule_override(submission_id, action_type)
        if override is not None:
            return override
        return Decimal(self.config.default_learn_rewards.get(action_type, ZERO))

    # ----------------------------
    # Track
    # ----------------------------
    def track(
        self, wallet: str, submission_id: int, action_type: str, action_ref: str
    ) -> schemas.TrackResponse:
        if not wallet or not submission_id or not action_type or not action_ref:
            raise ValidationError("Missing required fields")

        existing = self._find(wallet, submission_id, action_type, action_ref)
        if existing is not None:
            return schemas.TrackResponse(
                already_recorded=True, tokens_earned=existing.tokens_earned
            )

        tokens_earned = self.reward_for(submission_id, action_type)
        entry = models.RewardLedgerEntry(
            wallet=wallet,
            submission_id=submission_id,
            action_type=action_type,
            action_ref=action_ref,
            tokens_earned=tokens_earned,
            tokens_paid=ZERO,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            # a concurrent request recorded the same action first
            self.db.rollback()
            existing = self._find(wallet, submission_id, action_type, action_ref)
            return schemas.TrackResponse(
                already_recorded=True,
                tokens_earned=existing.tokens_earned if existing else None,
            )

        logger.info(
            "Recorded %s/%s for %s on submission %s: %s tokens",
            action_type, action_ref, wallet, submission_id, tokens_earned,
        )
        return schemas.TrackResponse(tokens_earned=tokens_earned)

    # ----------------------------
    # Reads
    # ----------------------------
    def list_activity(
        self, admin_password: Optional[str], limit: int = 200
    ) -> List[models.RewardLedgerEntry]:
        self.admin.require_admin(admin_password)
        return (
            self.db.query(models.RewardLedgerEntry)
            .order_by(
                models.RewardLedgerEntry.created_at.desc(),
                models.RewardLedgerEntry.id.desc(),
            )
            .limit(limit)
            .all()
        )

    def summary(self, wallet: str) -> schemas.RewardSummary:
        entries = (
            self.db.query(models.RewardLedgerEntry)
            .filter(models.RewardLedgerEntry.wallet == wallet)
            .all()
        )
        earned = sum((Decimal(e.tokens_earned) for e in entries), ZERO)
        paid = sum((Decimal(e.tokens_paid) for e in entries), ZERO)
        return schemas.RewardSummary(
            wallet=wallet,
            entries=len(entries),
            tokens_earned=earned,
            tokens_paid=paid,
            outstanding=earned - paid,
        )

    # ----------------------------
    # Payout
    # ----------------------------
    def payout(
        self, admin_password: Optional[str], batch_limit: Optional[int] = None
    ) -> schemas.PayoutReport:
        """
        Pay outstanding rewards, oldest first, one entry at a time.

        A failed entry is logged and reported; the batch moves on to the next.
        """
        self.admin.require_admin(admin_password)
        if not self.config.cfc_distributor_seed or not self.config.cfc_issuer:
            raise UpstreamUnavailable("CFC distributor wallet is not configured")

        limit = batch_limit or self.config.payout_batch_limit
        entries = (
            self.db.query(models.RewardLedgerEntry)
            .filter(models.RewardLedgerEntry.tokens_earned > models.RewardLedgerEntry.tokens_paid)
            .order_by(
                models.RewardLedgerEntry.created_at.asc(),
                models.RewardLedgerEntry.id.asc(),
            )
            .limit(limit)
            .all()
        )

        outcomes: List[schemas.PayoutOutcome] = []
        for entry in entries:
            entry_id, wallet = entry.id, entry.wallet
            amount = Decimal(entry.tokens_earned) - Decimal(entry.tokens_paid)
            if amount <= 0:
                continue

            try:
                tx_hash = self.ledger.send_token_payment(wallet, amount)
            except Exception as e:
                logger.error("Payout of %s CFC to %s (entry %s) failed: %s", amount, wallet, entry_id, e)
                outcomes.append(
                    schemas.PayoutOutcome(
                        entry_id=entry_id, wallet=wallet, amount=amount, paid=False, error=str(e)
                    )
                )
                continue

            try:
                (
                    self.db.query(models.RewardLedgerEntry)
                    .filter(models.RewardLedgerEntry.id == entry_id)
                    .filter(
                        models.RewardLedgerEntry.tokens_earned
                        > models.RewardLedgerEntry.tokens_paid
                    )
                    .update(
                        {
                            models.RewardLedgerEntry.tokens_paid: models.RewardLedgerEntry.tokens_earned,
                            models.RewardLedgerEntry.tx_hash: tx_hash,
                        },
                        synchronize_session=False,
                    )
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    "Payout %s for entry %s was sent but not recorded: %s", tx_hash, entry_id, e
                )
                outcomes.append(
                    schemas.PayoutOutcome(
                        entry_id=entry_id, wallet=wallet, amount=amount, paid=True,
                        tx_hash=tx_hash, error="payment sent but not recorded",
                    )
                )
                continue

            logger.info("Paid %s CFC to %s for entry %s (%s)", amount, wallet, entry_id, tx_hash)
            outcomes.append(
                schemas.PayoutOutcome(
                    entry_id=entry_id, wallet=wallet, amount=amount, paid=True, tx_hash=tx_hash
                )
            )

        paid = sum(1 for o in outcomes if o.paid)
        logger.info("Payout batch finished: %d/%d entries paid", paid, len(outcomes))
        return schemas.PayoutReport(attempted=len(outcomes), paid=paid, outcomes=outcomes)
