"""
Submission state machine.

A submission moves along three independent axes (moderation, payment, mint)
plus the orthogonal ``is_delisted`` flag. The functions here are pure: they
take the current variant(s) and an event and either return the next variant
or raise ``NotReady``. Persisting a transition at most once is the service's
job, done with conditional updates.
"""
import enum
from typing import NamedTuple

from app.core.errors import NotReady


class ModerationStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class MintStatus(enum.Enum):
    PENDING = "pending"
    MINTED = "minted"


class ModerationDecision(enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class SigningOutcome(enum.Enum):
    PENDING = "pending"
    SIGNED = "signed"
    DECLINED = "declined"


class TransitionName(enum.Enum):
    PAYMENT_CONFIRMED = "payment_confirmed"
    MINT_CONFIRMED = "mint_confirmed"


class Transition(NamedTuple):
    state: enum.Enum
    changed: bool


def moderate(current: ModerationStatus, decision: ModerationDecision) -> Transition:
    target = (
        ModerationStatus.APPROVED
        if decision is ModerationDecision.APPROVE
        else ModerationStatus.REJECTED
    )
    return Transition(target, current is not target)


def check_payment_request(
    moderation: ModerationStatus,
    payment: PaymentStatus,
    require_approval: bool = True,
) -> None:
    if payment is PaymentStatus.PAID:
        raise NotReady("Submission is already paid")
    if require_approval and moderation is not ModerationStatus.APPROVED:
        raise NotReady("Submission must be approved before payment")


def confirm_payment(current: PaymentStatus) -> Transition:
    return Transition(PaymentStatus.PAID, current is PaymentStatus.UNPAID)


def check_mint_request(payment: PaymentStatus, mint: MintStatus) -> None:
    if payment is not PaymentStatus.PAID:
        raise NotReady("Submission not ready for mint")
    if mint is MintStatus.MINTED:
        raise NotReady("Submission is already minted")


def confirm_mint(payment: PaymentStatus, mint: MintStatus) -> Transition:
    if payment is not PaymentStatus.PAID:
        raise NotReady("Submission not ready for mint")
    return Transition(MintStatus.MINTED, mint is MintStatus.PENDING)


def signing_outcome(resolved: bool, signed: bool, expired: bool = False) -> SigningOutcome:
    if signed:
        return SigningOutcome.SIGNED
    if resolved or expired:
        return SigningOutcome.DECLINED
    return SigningOutcome.PENDING
