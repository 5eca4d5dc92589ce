"""Receipt Assembler.

Composes the projection consumed by the receipt PDF renderer, and owns the
French tax-deduction arithmetic (66% of the donation, whole euros).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.orm import Session

from donvie_api.auth.principal import Principal
from donvie_api.auth.tokens import verify_token
from donvie_api.db.models import Association, Donation
from donvie_api.db.repo_associations import AssociationRepository
from donvie_api.db.repo_donations import DonationRepository
from donvie_api.errors import ForbiddenError, NotFoundError, donation_not_found
from donvie_api.utils.money import round_to_euro, to_decimal

logger = logging.getLogger(__name__)

TAX_DEDUCTION_RATE = Decimal("0.66")

Amount = Union[Decimal, int, str]


def tax_benefit(amount: Amount) -> Decimal:
    """66% of the amount, rounded to the nearest euro (halves up).

    >>> tax_benefit("100")
    Decimal('66')
    >>> tax_benefit("25")
    Decimal('17')
    """
    return round_to_euro(to_decimal(amount) * TAX_DEDUCTION_RATE)


def real_cost(amount: Amount) -> Decimal:
    """What the donation costs after deduction; real_cost + tax_benefit == amount."""
    value = to_decimal(amount)
    return value - tax_benefit(value)


@dataclass(frozen=True)
class DonorInfo:
    first_name: str
    last_name: str
    email: str
    address: str
    postal_code: str
    city: str


@dataclass(frozen=True)
class ReceiptData:
    donation: Donation
    association: Association
    donor_info: DonorInfo
    tax_benefit: Decimal
    real_cost: Decimal


class ReceiptAssembler:
    def __init__(self, db: Session):
        self.db = db
        self.donations = DonationRepository(db)
        self.associations = AssociationRepository(db)

    def build(self, donation: Donation) -> ReceiptData:
        """Receipt for an already-loaded donation.

        Donor info always comes from the donation row, never the User row.
        """
        association = self.associations.get_by_id(donation.association_id)
        if association is None:
            raise NotFoundError(f"Association for donation {donation.id} not found")

        return ReceiptData(
            donation=donation,
            association=association,
            donor_info=DonorInfo(
                first_name=donation.donor_first_name,
                last_name=donation.donor_last_name,
                email=donation.donor_email,
                address=donation.donor_address,
                postal_code=donation.donor_postal_code,
                city=donation.donor_city,
            ),
            tax_benefit=tax_benefit(donation.amount),
            real_cost=real_cost(donation.amount),
        )

    def assemble(self, donation_id: int) -> ReceiptData:
        """Raises NotFoundError when the donation or its association is missing."""
        donation = self.donations.get_by_id(donation_id)
        if donation is None:
            raise donation_not_found(donation_id)
        return self.build(donation)

    def authorize(
        self,
        donation: Donation,
        principal: Optional[Principal],
        receipt_token: Optional[str] = None,
    ) -> None:
        """Allow the donor, the receiving association's owner, or a valid receipt token.

        Raises:
            ForbiddenError: None of the above
        """
        if receipt_token and donation.receipt_token_hash:
            if verify_token(receipt_token, donation.receipt_token_hash):
                return

        if principal is not None:
            if donation.donor_user_id and donation.donor_user_id == principal.id:
                return
            if principal.email and principal.email.lower() == donation.donor_key:
                return
            if principal.owns_association(donation.association_id):
                return

        logger.warning(
            "Receipt access denied",
            extra={
                "event": "receipt.forbidden",
                "donation_id": donation.id,
                "authenticated": principal is not None,
            },
        )
        raise ForbiddenError("You are not allowed to view this receipt")
