"""SQLAlchemy ORM Models for DonVie."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BIGINT,
    BOOLEAN,
    TEXT,
    TIMESTAMP,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from donvie_api.utils.money import cents_to_decimal

# BIGINT identity on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
ID_TYPE = BIGINT().with_variant(Integer, "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Association(Base):
    """Registered charitable association.

    donor_count and total_raised_cents are cached aggregates over the
    donations table, maintained inside the donation-creation transaction.
    """

    __tablename__ = "associations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    mission: Mapped[str] = mapped_column(TEXT, nullable=False)
    full_mission: Mapped[str] = mapped_column(TEXT, nullable=False)
    category: Mapped[str] = mapped_column(TEXT, nullable=False)
    email: Mapped[str] = mapped_column(TEXT, nullable=False)
    phone: Mapped[str] = mapped_column(TEXT, nullable=False)
    website: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    address: Mapped[str] = mapped_column(TEXT, nullable=False)
    siret: Mapped[str] = mapped_column(TEXT, nullable=False)
    verified: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)

    # Aggregates (only moved by donation creation)
    donor_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_raised_cents: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_associations_category", "category"),
        CheckConstraint("donor_count >= 0", name="ck_associations_donor_count_nonneg"),
        CheckConstraint("total_raised_cents >= 0", name="ck_associations_total_raised_nonneg"),
    )

    @property
    def total_raised(self) -> Decimal:
        return cents_to_decimal(self.total_raised_cents or 0)


class Donation(Base):
    """Immutable ledger entry."""

    __tablename__ = "donations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    association_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("associations.id"), nullable=False
    )

    donor_first_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    donor_last_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    donor_email: Mapped[str] = mapped_column(TEXT, nullable=False)
    # Lower-cased donor_email: the donor identity used for distinct-donor counting
    donor_key: Mapped[str] = mapped_column(TEXT, nullable=False)
    donor_phone: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    donor_address: Mapped[str] = mapped_column(TEXT, nullable=False)
    donor_postal_code: Mapped[str] = mapped_column(TEXT, nullable=False)
    donor_city: Mapped[str] = mapped_column(TEXT, nullable=False)
    donor_user_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("users.id"), nullable=True
    )

    amount_cents: Mapped[int] = mapped_column(BIGINT, nullable=False)
    transaction_id: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="completed")

    # HMAC of the receipt capability token (raw token is returned once)
    receipt_token_hash: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_donations_association", "association_id"),
        Index("idx_donations_association_donor", "association_id", "donor_key"),
        Index("idx_donations_donor_key", "donor_key"),
        Index("idx_donations_donor_user", "donor_user_id"),
        CheckConstraint("amount_cents > 0", name="ck_donations_amount_positive"),
    )

    @property
    def amount(self) -> Decimal:
        return cents_to_decimal(self.amount_cents)


class User(Base):
    """Platform user (donor or association account)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True, unique=True)
    first_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    user_type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)  # donor/association
    association_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("associations.id"), nullable=True
    )
    password_hash: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    auth_provider: Mapped[str] = mapped_column(TEXT, nullable=False, default="replit")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (UniqueConstraint("association_id", name="uq_users_association"),)


class AuthSession(Base):
    """Local login session (SQL session backend)."""

    __tablename__ = "auth_sessions"

    token_hash: Mapped[str] = mapped_column(TEXT, primary_key=True)
    user_id: Mapped[str] = mapped_column(TEXT, ForeignKey("users.id"), nullable=False)
    user_agent: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (Index("idx_auth_sessions_user", "user_id"),)
