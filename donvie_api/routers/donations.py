"""Donation endpoints.

Endpoints:
- POST /api/donations                    record a donation (anonymous or authenticated)
- GET  /api/donations/email/{email}      donations made with the caller's own email
- GET  /api/donations/user               donations made while logged in
- GET  /api/donations/association        donations to the caller's association
- GET  /api/donations/{id}/receipt       receipt projection (donor, owner or receipt token)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from donvie_api.auth.identity import attach_principal, require_association_owner, require_principal
from donvie_api.auth.principal import Principal
from donvie_api.auth.tokens import generate_token
from donvie_api.db.session import get_db
from donvie_api.errors import ForbiddenError
from donvie_api.ledger.donations import DonationLedger
from donvie_api.ledger.receipts import ReceiptAssembler
from donvie_api.schemas import DonationCreate, DonationCreatedOut, DonationOut, ReceiptOut

router = APIRouter(prefix="/api/donations", tags=["donations"])


@router.post("", response_model=DonationCreatedOut, status_code=status.HTTP_201_CREATED)
def create_donation(
    body: DonationCreate,
    principal: Optional[Principal] = Depends(attach_principal),
    db: Session = Depends(get_db),
):
    """Record a donation and return its receipt data.

    receiptToken is returned once; send it back as X-Receipt-Token (or
    ?token=) to fetch the receipt again without an account.
    """
    receipt_token = generate_token(24)
    donation = DonationLedger(db).create(body, principal=principal, receipt_token=receipt_token)
    receipt = ReceiptAssembler(db).build(donation)
    return DonationCreatedOut.model_validate(
        {
            "donation": receipt.donation,
            "association": receipt.association,
            "donor_info": receipt.donor_info,
            "tax_benefit": receipt.tax_benefit,
            "real_cost": receipt.real_cost,
            "receipt_token": receipt_token,
        }
    )


@router.get("/email/{email}", response_model=list[DonationOut])
def donations_by_email(
    email: str,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    """Only the owner of the email address may list its donations."""
    if not principal.email or principal.email.lower() != email.strip().lower():
        raise ForbiddenError("You can only view donations made with your own email address")
    return DonationLedger(db).by_email(email)


@router.get("/user", response_model=list[DonationOut])
def donations_of_current_user(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return DonationLedger(db).by_user_id(principal.id)


@router.get("/association", response_model=list[DonationOut])
def donations_to_my_association(
    principal: Principal = Depends(require_association_owner),
    db: Session = Depends(get_db),
):
    return DonationLedger(db).by_association(principal.association_id)


@router.get("/{donation_id}/receipt", response_model=ReceiptOut)
def donation_receipt(
    donation_id: int,
    token: Optional[str] = Query(default=None, description="Receipt token returned at creation"),
    x_receipt_token: Optional[str] = Header(default=None),
    principal: Optional[Principal] = Depends(attach_principal),
    db: Session = Depends(get_db),
):
    """Receipt projection.

    Returns:
        404 if the donation does not exist, 403 if the caller is neither the
        donor, the receiving association's owner, nor holding its receipt token
    """
    donation = DonationLedger(db).by_id(donation_id)
    assembler = ReceiptAssembler(db)
    assembler.authorize(donation, principal, receipt_token=x_receipt_token or token)
    return ReceiptOut.model_validate(assembler.build(donation))
