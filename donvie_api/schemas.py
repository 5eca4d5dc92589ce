"""Pydantic schemas for API requests/responses.

Wire format is camelCase (donorFirstName, totalRaised, ...); Python code
uses snake_case field names. Amounts are serialized as 2dp strings.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from donvie_api.errors import ValidationError
from donvie_api.utils.money import parse_eur_amount

Category = Literal[
    "health",
    "education",
    "environment",
    "social",
    "culture",
    "sport",
    "humanitarian",
    "animals",
    "other",
]
CATEGORIES: tuple[str, ...] = get_args(Category)

UserType = Literal["donor", "association"]

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
_SIRET_RE = re.compile(r"^\d{14}$")


class CamelModel(BaseModel):
    """Base model: camelCase aliases, snake_case attributes, ORM-friendly."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _non_blank(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def to_validation_error(exc: PydanticValidationError, detail: str = "Invalid request body") -> ValidationError:
    """Convert a pydantic ValidationError into the domain ValidationError."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())) or "body",
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return ValidationError(detail, errors)


# ============================================================================
# Associations
# ============================================================================


class AssociationCreate(CamelModel):
    """Request body for POST /api/associations.

    Unknown keys are rejected; verified, donorCount and totalRaised are
    never accepted from clients.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    mission: str = Field(..., min_length=1, max_length=500)
    full_mission: str = Field(..., min_length=1, max_length=10000)
    category: Category
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: str = Field(..., min_length=1, max_length=40)
    website: Optional[str] = Field(default=None, max_length=300)
    address: str = Field(..., min_length=1, max_length=500)
    siret: str

    strip_text = field_validator("name", "mission", "full_mission", "phone", "address")(_non_blank)

    blank_website = field_validator("website")(_blank_to_none)

    @field_validator("siret", mode="before")
    @classmethod
    def _check_siret(cls, value: Any) -> str:
        digits = re.sub(r"\s+", "", str(value))
        if not _SIRET_RE.match(digits):
            raise ValueError("SIRET must be exactly 14 digits")
        return digits


class AssociationUpdate(CamelModel):
    """Request body for PATCH /api/associations/{id} (presentation fields only)."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    mission: Optional[str] = Field(default=None, min_length=1, max_length=500)
    full_mission: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    category: Optional[Category] = None
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=40)
    website: Optional[str] = Field(default=None, max_length=300)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)

    strip_text = field_validator("name", "mission", "full_mission", "phone", "address")(_non_blank)
    blank_website = field_validator("website")(_blank_to_none)


class AssociationOut(CamelModel):
    id: int
    name: str
    mission: str
    full_mission: str
    category: str
    email: str
    phone: str
    website: Optional[str] = None
    address: str
    siret: str
    verified: bool
    donor_count: int
    total_raised: Decimal
    created_at: datetime


# ============================================================================
# Donations
# ============================================================================


class DonationCreate(CamelModel):
    """Request body for POST /api/donations.

    Client-sent transactionId, status or donorUserId are ignored: the ledger
    generates the first two and takes the last from the authenticated principal.
    """

    association_id: int = Field(..., ge=1)
    donor_first_name: str = Field(..., min_length=1, max_length=100)
    donor_last_name: str = Field(..., min_length=1, max_length=100)
    donor_email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254)
    donor_phone: Optional[str] = Field(default=None, max_length=40)
    donor_address: str = Field(..., min_length=1, max_length=500)
    donor_postal_code: str = Field(..., min_length=1, max_length=20)
    donor_city: str = Field(..., min_length=1, max_length=100)
    amount: Decimal

    strip_text = field_validator(
        "donor_first_name",
        "donor_last_name",
        "donor_address",
        "donor_postal_code",
        "donor_city",
    )(_non_blank)

    @field_validator("donor_email", mode="before")
    @classmethod
    def _strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    blank_phone = field_validator("donor_phone")(_blank_to_none)

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: Decimal) -> Decimal:
        parse_eur_amount(value)
        return value

    @property
    def amount_cents(self) -> int:
        return parse_eur_amount(self.amount)


class DonationOut(CamelModel):
    id: int
    association_id: int
    donor_first_name: str
    donor_last_name: str
    donor_email: str
    donor_phone: Optional[str] = None
    donor_address: str
    donor_postal_code: str
    donor_city: str
    donor_user_id: Optional[str] = None
    amount: Decimal
    transaction_id: str
    status: str
    created_at: datetime


class DonorInfo(CamelModel):
    first_name: str
    last_name: str
    email: str
    address: str
    postal_code: str
    city: str


class ReceiptOut(CamelModel):
    """Receipt projection consumed by the PDF renderer."""

    donation: DonationOut
    association: AssociationOut
    donor_info: DonorInfo
    tax_benefit: Decimal
    real_cost: Decimal


class DonationCreatedOut(ReceiptOut):
    """Response for POST /api/donations.

    receipt_token is shown once; it lets an anonymous donor fetch the
    receipt again via X-Receipt-Token.
    """

    receipt_token: str


class AssociationStatsOut(CamelModel):
    total_raised: Decimal
    donor_count: int
    donation_count: int
    avg_donation: Decimal
    this_month_amount: Decimal
    this_month_count: int


# ============================================================================
# Auth / users
# ============================================================================


class RegisterRequest(CamelModel):
    """Request body for POST /api/auth/register."""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    user_type: Optional[UserType] = None
    association: Optional[AssociationCreate] = None

    strip_text = field_validator("first_name", "last_name")(_non_blank)


class LoginRequest(CamelModel):
    """Request body for POST /api/auth/login."""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UpdateUserTypeRequest(CamelModel):
    user_type: UserType


class UserOut(CamelModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    user_type: Optional[str] = None
    association_id: Optional[int] = None
    auth_provider: str
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Errors
# ============================================================================


class FieldError(BaseModel):
    field: str
    message: str


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors.

    detail can be either a string or a structured object (dict).
    errors is present on 400 validation failures.
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation or structured error details")
    instance: Optional[str] = Field(None, description="URI reference identifying the specific occurrence")
    errors: Optional[list[FieldError]] = Field(None, description="Field-level validation errors")
