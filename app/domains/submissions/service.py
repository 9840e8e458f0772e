import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session
from xrpl.utils import xrp_to_drops

from app.core.config import Settings
from app.core.errors import NotFound, NotReady, SessionMismatch, ValidationError
from app.domains.auth.service import AdminAuthService
from app.domains.submissions import lifecycle, models, schemas
from app.domains.submissions.lifecycle import (
    MintStatus,
    ModerationDecision,
    ModerationStatus,
    PaymentStatus,
    SigningOutcome,
    TransitionName,
)
from app.shared.xrpl import (
    build_mint_tx_json,
    build_payment_tx_json,
    extract_nftoken_id,
    transaction_result,
    tx_json_of,
)
from app.shared.xumm_client import SigningSession

logger = logging.getLogger(__name__)

Hook = Callable[[models.Submission], None]


class SubmissionService:
    """
    Submission lifecycle: create, moderate, pay, mint, delist.

    Every state change that must happen at most once is written as a
    conditional UPDATE and checked by row count. Post-commit hooks registered
    with ``on()`` run only for the call that applied the transition.
    """

    def __init__(
        self,
        db: Session,
        config: Settings,
        signer=None,
        marketplace=None,
        ledger=None,
    ):
        self.db = db
        self.config = config
        self.signer = signer
        self.marketplace = marketplace
        self.ledger = ledger
        self.admin = AdminAuthService(config)
        self._hooks: Dict[TransitionName, List[Hook]] = {name: [] for name in TransitionName}
        if marketplace is not None:
            self.on(TransitionName.MINT_CONFIRMED, self._notify_marketplace)

    # ----------------------------
    # Hooks
    # ----------------------------
    def on(self, transition: TransitionName, hook: Hook) -> None:
        self._hooks[transition].append(hook)

    def _run_hooks(self, transition: TransitionName, submission: models.Submission) -> None:
        for hook in self._hooks[transition]:
            try:
                hook(submission)
            except Exception:
                logger.exception(
                    "%s hook %s failed for submission %s",
                    transition.value,
                    getattr(hook, "__name__", repr(hook)),
                    submission.id,
                )
                self.db.rollback()

    def _notify_marketplace(self, submission: models.Submission) -> None:
        response = self.marketplace.notify(submission.public_fields())
        (
            self.db.query(models.Submission)
            .filter(models.Submission.id == submission.id)
            .update({models.Submission.sent_to_marketplace: True}, synchronize_session=False)
        )
        self.db.commit()
        logger.info("Marketplace accepted submission %s: %s", submission.id, response)

    # ----------------------------
    # Queries
    # ----------------------------
    def _query(self):
        return self.db.query(models.Submission)

    def get(self, submission_id: int) -> models.Submission:
        submission = self._query().filter(models.Submission.id == submission_id).first()
        if submission is None:
            raise NotFound()
        return submission

    def list_all(self, admin_password: Optional[str]) -> List[models.Submission]:
        self.admin.require_admin(admin_password)
        return self._query().order_by(models.Submission.id.desc()).all()

    def list_for_creator(self, wallet: str) -> List[models.Submission]:
        return (
            self._query()
            .filter(models.Submission.creator_wallet == wallet)
            .order_by(models.Submission.id.desc())
            .all()
        )

    def list_marketplace(self) -> List[models.Submission]:
        return (
            self._query()
            .filter(models.Submission.moderation_status == ModerationStatus.APPROVED)
            .filter(models.Submission.mint_status == MintStatus.MINTED)
            .filter(models.Submission.is_delisted.is_(False))
            .order_by(models.Submission.id.desc())
            .all()
        )

    # ----------------------------
    # Create / moderate / delist
    # ----------------------------
    def create(self, payload: schemas.SubmissionCreate) -> models.Submission:
        if not payload.wallet or not payload.metadata_cid:
            raise ValidationError("Missing wallet or metadataCid")

        submission = models.Submission(
            creator_wallet=payload.wallet,
            name=payload.name,
            description=payload.description,
            email=payload.email,
            website=payload.website,
            image_cid=payload.image_cid,
            metadata_cid=payload.metadata_cid,
            batch_qty=payload.quantity,
            terms=payload.terms,
            price_xrp=payload.price_xrp,
            price_rlusd=payload.price_rlusd,
            moderation_status=ModerationStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            mint_status=MintStatus.PENDING,
            is_delisted=False,
        )
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        logger.info("Submission %s created by %s", submission.id, submission.creator_wallet)
        return submission

    def moderate(
        self,
        submission_id: int,
        decision: ModerationDecision,
        admin_password: Optional[str],
        reason: Optional[str] = None,
    ) -> models.Submission:
        self.admin.require_admin(admin_password)
        submission = self.get(submission_id)

        transition = lifecycle.moderate(submission.moderation_status, decision)
        submission.moderation_status = transition.state
        submission.rejection_reason = reason if decision is ModerationDecision.REJECT else None
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)

        logger.info(
            "Submission %s moderated: %s%s",
            submission_id,
            transition.state.value,
            "" if transition.changed else " (unchanged)",
        )
        return submission

    def toggle_delist(self, submission_id: int, delisted: bool) -> models.Submission:
        submission = self.get(submission_id)
        submission.is_delisted = bool(delisted)
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        logger.info("Submission %s delisted=%s", submission_id, submission.is_delisted)
        return submission

    # ----------------------------
    # Payment
    # ----------------------------
    def _payment_amount(self, submission: models.Submission) -> Decimal:
        return self.config.mint_fee_xrp * (submission.batch_qty or 1)

    def request_payment(self, submission_id: int) -> SigningSession:
        submission = self.get(submission_id)
        lifecycle.check_payment_request(
            submission.moderation_status,
            submission.payment_status,
            self.config.require_approval_before_payment,
        )

        tx_json = build_payment_tx_json(
            self.config.payment_destination, self._payment_amount(submission)
        )
        session = self.signer.create_payload(tx_json)

        # A new payment attempt replaces the previous session, but only while unpaid
        updated = (
            self._query()
            .filter(models.Submission.id == submission_id)
            .filter(models.Submission.payment_status == PaymentStatus.UNPAID)
            .update(
                {models.Submission.payment_session_id: session.uuid},
                synchronize_session=False,
            )
        )
        self.db.commit()
        if not updated:
            raise NotReady("Submission is already paid")

        logger.info("Payment session %s opened for submission %s", session.uuid, submission_id)
        return session

    def confirm_payment(self, submission_id: int, session_id: str) -> schemas.ConfirmationResponse:
        submission = self.get(submission_id)
        if not session_id or submission.payment_session_id != session_id:
            logger.warning("Payment session mismatch for submission %s", submission_id)
            raise SessionMismatch()
        if submission.payment_status is PaymentStatus.PAID:
            return self._confirmation(submission, "confirmed")

        status = self.signer.get_payload(session_id)
        outcome = lifecycle.signing_outcome(status.resolved, status.signed, status.expired)
        if outcome is SigningOutcome.SIGNED and self.config.verify_on_ledger:
            if not status.txid:
                logger.warning(
                    "Payment session %s signed without a tx hash; cannot verify on ledger",
                    session_id,
                )
                return self._confirmation(submission, "pending")
            tx = self.ledger.get_transaction(status.txid)
            outcome = self._ledger_outcome(
                tx,
                destination=self.config.payment_destination,
                min_drops=xrp_to_drops(self._payment_amount(submission)),
            )

        if outcome is SigningOutcome.PENDING:
            return self._confirmation(submission, "pending")
        if outcome is SigningOutcome.DECLINED:
            logger.info("Payment session %s declined for submission %s", session_id, submission_id)
            return self._confirmation(submission, "declined")

        transition = lifecycle.confirm_payment(submission.payment_status)
        applied = (
            self._query()
            .filter(models.Submission.id == submission_id)
            .filter(models.Submission.payment_status == PaymentStatus.UNPAID)
            .filter(models.Submission.payment_session_id == session_id)
            .update(
                {
                    models.Submission.payment_status: transition.state,
                    models.Submission.payment_tx_id: status.txid,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()

        submission = self.get(submission_id)
        if applied:
            logger.info("Submission %s marked paid (tx %s)", submission_id, status.txid)
            self._run_hooks(TransitionName.PAYMENT_CONFIRMED, submission)
        elif (
            submission.payment_status is not PaymentStatus.PAID
            or submission.payment_session_id != session_id
        ):
            # session replaced between our read and the update
            raise SessionMismatch()
        return self._confirmation(submission, "confirmed")

    # ----------------------------
    # Mint
    # ----------------------------
    def request_mint(self, submission_id: int) -> SigningSession:
        submission = self.get(submission_id)
        lifecycle.check_mint_request(submission.payment_status, submission.mint_status)

        tx_json = build_mint_tx_json(submission.creator_wallet, submission.metadata_cid)
        session = self.signer.create_payload(tx_json)

        # At most one outstanding mint session: a new request replaces the old one
        updated = (
            self._query()
            .filter(models.Submission.id == submission_id)
            .filter(models.Submission.payment_status == PaymentStatus.PAID)
            .filter(models.Submission.mint_status == MintStatus.PENDING)
            .update(
                {models.Submission.mint_session_id: session.uuid},
                synchronize_session=False,
            )
        )
        self.db.commit()
        if not updated:
            raise NotReady("Submission is already minted")

        logger.info("Mint session %s opened for submission %s", session.uuid, submission_id)
        return session

    def confirm_mint(self, submission_id: int, session_id: str) -> schemas.ConfirmationResponse:
        submission = self.get(submission_id)
        if not session_id or submission.mint_session_id != session_id:
            logger.warning("Mint session mismatch for submission %s", submission_id)
            raise SessionMismatch()
        if submission.mint_status is MintStatus.MINTED:
            return self._confirmation(submission, "confirmed")

        transition = lifecycle.confirm_mint(submission.payment_status, submission.mint_status)

        status = self.signer.get_payload(session_id)
        outcome = lifecycle.signing_outcome(status.resolved, status.signed, status.expired)
        nftoken_id = None
        if outcome is SigningOutcome.SIGNED and self.config.verify_on_ledger:
            if not status.txid:
                logger.warning(
                    "Mint session %s signed without a tx hash; cannot verify on ledger",
                    session_id,
                )
                return self._confirmation(submission, "pending")
            tx = self.ledger.get_transaction(status.txid)
            outcome = self._ledger_outcome(tx)
            nftoken_id = extract_nftoken_id(tx)

        if outcome is SigningOutcome.PENDING:
            return self._confirmation(submission, "pending")
        if outcome is SigningOutcome.DECLINED:
            logger.info("Mint session %s declined for submission %s", session_id, submission_id)
            return self._confirmation(submission, "declined")

        applied = (
            self._query()
            .filter(models.Submission.id == submission_id)
            .filter(models.Submission.payment_status == PaymentStatus.PAID)
            .filter(models.Submission.mint_status == MintStatus.PENDING)
            .filter(models.Submission.mint_session_id == session_id)
            .update(
                {
                    models.Submission.mint_status: transition.state,
                    models.Submission.mint_tx_id: status.txid,
                    models.Submission.nftoken_id: nftoken_id,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()

        submission = self.get(submission_id)
        if applied:
            logger.info("Submission %s marked minted (tx %s)", submission_id, status.txid)
            self._run_hooks(TransitionName.MINT_CONFIRMED, submission)
            submission = self.get(submission_id)
        elif (
            submission.mint_status is not MintStatus.MINTED
            or submission.mint_session_id != session_id
        ):
            raise SessionMismatch()
        return self._confirmation(submission, "confirmed")

    # ----------------------------
    # Helpers
    # ----------------------------
    @staticmethod
    def _ledger_outcome(
        tx: Dict[str, Any],
        destination: Optional[str] = None,
        min_drops: Optional[str] = None,
    ) -> SigningOutcome:
        if not tx.get("validated"):
            return SigningOutcome.PENDING
        if transaction_result(tx) != "tesSUCCESS":
            return SigningOutcome.DECLINED
        if destination is not None and tx_json_of(tx).get("Destination") != destination:
            return SigningOutcome.DECLINED
        if min_drops is not None:
            delivered = (tx.get("meta") or {}).get("delivered_amount")
            # issued-currency deliveries come back as dicts and never satisfy an XRP fee
            if not isinstance(delivered, str) or int(delivered) < int(min_drops):
                return SigningOutcome.DECLINED
        return SigningOutcome.SIGNED

    @staticmethod
    def _confirmation(submission: models.Submission, status: str) -> schemas.ConfirmationResponse:
        return schemas.ConfirmationResponse(
            submission_id=submission.id,
            status=status,
            payment_status=submission.payment_status,
            mint_status=submission.mint_status,
        )
