from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.domains.submissions import schemas
from app.domains.submissions.lifecycle import ModerationDecision
from app.domains.submissions.service import SubmissionService
from app.shared.database.connection import get_db
from app.shared.marketplace import MarketplaceClient, get_marketplace
from app.shared.utils.response import SuccessResponse
from app.shared.xrpl import XRPLService, get_ledger
from app.shared.xumm_client import SigningSession, XummClient, get_signing_gateway

router = APIRouter(tags=["submissions"])


def get_submission_service(
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
    signer: XummClient = Depends(get_signing_gateway),
    marketplace: MarketplaceClient = Depends(get_marketplace),
    ledger: XRPLService = Depends(get_ledger),
) -> SubmissionService:
    return SubmissionService(
        db, config, signer=signer, marketplace=marketplace, ledger=ledger
    )


@router.post("/submit", response_model=schemas.SubmitResponse)
def submit(
    payload: schemas.SubmissionCreate,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Create a submission (pending moderation, unpaid, not minted)

    **Possible errors:**
    - 400: Missing wallet or metadataCid
    - 422: Malformed body
    """
    submission = service.create(payload)
    return schemas.SubmitResponse(id=submission.id)


@router.get("/submissions/{submission_id}", response_model=schemas.SubmissionResponse)
def get_submission(
    submission_id: int,
    service: SubmissionService = Depends(get_submission_service),
):
    return service.get(submission_id)


@router.get(
    "/submissions/creator/{wallet}", response_model=List[schemas.SubmissionResponse]
)
def list_creator_submissions(
    wallet: str,
    service: SubmissionService = Depends(get_submission_service),
):
    return service.list_for_creator(wallet)


@router.get("/marketplace", response_model=List[schemas.MarketplaceItem])
def list_marketplace(service: SubmissionService = Depends(get_submission_service)):
    """Approved, minted and listed submissions"""
    return service.list_marketplace()


@router.post("/pay-xrp", response_model=SigningSession)
def pay_mint_fee(
    body: schemas.PaymentRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Open a Xaman signing session for the mint fee

    **Possible errors:**
    - 404: Submission not found
    - 409: Not approved yet, or already paid
    - 502: Signing service unavailable
    """
    return service.request_payment(body.submission_id)


@router.post("/mark-paid", response_model=schemas.ConfirmationResponse)
def mark_paid(
    body: schemas.ConfirmRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Confirm the mint fee payment. Safe to call repeatedly: ``pending`` until the
    payload is signed, then ``confirmed``.

    **Possible errors:**
    - 404: Submission not found
    - 409: uuid does not match the submission's payment session
    - 502: Signing service or XRPL unavailable
    """
    return service.confirm_payment(body.id, body.uuid)


@router.post("/start-mint", response_model=SigningSession)
def start_mint(
    body: schemas.MintRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Open a Xaman signing session for NFTokenMint

    **Possible errors:**
    - 404: Submission not found
    - 409: Not paid yet, or already minted
    - 502: Signing service unavailable
    """
    return service.request_mint(body.id)


@router.post("/mark-minted", response_model=schemas.ConfirmationResponse)
def mark_minted(
    body: schemas.ConfirmRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    Confirm the mint. The marketplace is notified once, after the mint is
    recorded; a marketplace failure does not fail this request.
    """
    return service.confirm_mint(body.id, body.uuid)


@router.post("/toggle-delist", response_model=SuccessResponse)
def toggle_delist(
    body: schemas.DelistRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    submission = service.toggle_delist(body.submission_id, body.delist)
    return SuccessResponse(
        message="Delisted" if submission.is_delisted else "Relisted",
        data={"id": submission.id, "is_delisted": submission.is_delisted},
    )


# ----------------------------
# Admin
# ----------------------------
@router.get("/admin/submissions", response_model=List[schemas.SubmissionResponse])
def admin_list_submissions(
    password: Optional[str] = Query(None),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.list_all(password)


@router.post("/admin/approve", response_model=SuccessResponse)
def admin_approve(
    body: schemas.ModerationRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    """
    **Possible errors:**
    - 403: Wrong admin password
    - 404: Submission not found
    """
    submission = service.moderate(body.id, ModerationDecision.APPROVE, body.password)
    return SuccessResponse(
        message="Submission approved",
        data={"id": submission.id, "status": submission.moderation_status.value},
    )


@router.post("/admin/reject", response_model=SuccessResponse)
def admin_reject(
    body: schemas.ModerationRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    submission = service.moderate(
        body.id, ModerationDecision.REJECT, body.password, reason=body.reason
    )
    return SuccessResponse(
        message="Submission rejected",
        data={
            "id": submission.id,
            "status": submission.moderation_status.value,
            "reason": submission.rejection_reason,
        },
    )
