import enum
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RegistrationStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"


class Company(Base):
    """Company data gathered from public registries for a tax id."""

    __tablename__ = "companies"
    __table_args__ = (Index("ix_companies_tax_id", "tax_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tax_id: Mapped[str] = mapped_column(String(14), nullable=False)
    legal_name: Mapped[str] = mapped_column(String(200), nullable=False)
    trade_name: Mapped[str | None] = mapped_column(String(200))
    registration_status: Mapped[str | None] = mapped_column(String(80))
    company_size: Mapped[str | None] = mapped_column(String(80))
    legal_nature: Mapped[str | None] = mapped_column(String(160))
    founded_on: Mapped[str | None] = mapped_column(String(20))
    state_registration: Mapped[str | None] = mapped_column(String(40))
    suframa_registration: Mapped[str | None] = mapped_column(String(40))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    addresses = relationship("CompanyAddress", back_populates="company")
    contacts = relationship("CompanyContact", back_populates="company")


class CompanyAddress(Base):
    __tablename__ = "company_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    street: Mapped[str | None] = mapped_column(String(200))
    number: Mapped[str | None] = mapped_column(String(20))
    complement: Mapped[str | None] = mapped_column(String(120))
    district: Mapped[str | None] = mapped_column(String(120))
    city: Mapped[str | None] = mapped_column(String(120))
    state: Mapped[str | None] = mapped_column(String(2))
    postal_code: Mapped[str | None] = mapped_column(String(10))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    company = relationship("Company", back_populates="addresses")


class CompanyContact(Base):
    __tablename__ = "company_contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    # Lists of strings; older rows may hold JSON-encoded text
    landline_phones: Mapped[list | str | None] = mapped_column(JSON)
    mobile_phones: Mapped[list | str | None] = mapped_column(JSON)
    emails: Mapped[list | str | None] = mapped_column(JSON)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    company = relationship("Company", back_populates="contacts")


# ── Registration form catalogs ───────────────────────────────────
# Each catalog row carries the ERP code for the selection in ``code``.


class ActivityBranch(Base):
    __tablename__ = "activity_branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class CarrierCode(Base):
    __tablename__ = "carrier_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class PriceList(Base):
    __tablename__ = "price_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class BillingMethod(Base):
    __tablename__ = "billing_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Seller(Base):
    __tablename__ = "sellers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ClientRegistration(Base):
    """A customer registration request and its ERP binding.

    ``erp_customer_id`` is the authoritative external binding for the tax id.
    Once set it is only replaced explicitly; conflicting ids reported by later
    lookups land in ``erp_conflict_customer_id``.
    """

    __tablename__ = "client_registrations"
    __table_args__ = (
        UniqueConstraint("tax_id", name="uq_client_registrations_tax_id"),
        UniqueConstraint("erp_customer_id", name="uq_client_registrations_erp_customer"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tax_id: Mapped[str] = mapped_column(String(18), nullable=False)
    legal_name: Mapped[str] = mapped_column(String(200), nullable=False)
    trade_name: Mapped[str | None] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(200))
    status: Mapped[RegistrationStatus] = mapped_column(
        Enum(RegistrationStatus), default=RegistrationStatus.submitted, nullable=False
    )

    activity_branch_id: Mapped[int | None] = mapped_column(ForeignKey("activity_branches.id"))
    carrier_code_id: Mapped[int | None] = mapped_column(ForeignKey("carrier_codes.id"))
    price_list_id: Mapped[int | None] = mapped_column(ForeignKey("price_lists.id"))
    billing_method_id: Mapped[int | None] = mapped_column(ForeignKey("billing_methods.id"))
    seller_id: Mapped[int | None] = mapped_column(ForeignKey("sellers.id"))

    payment_condition_id: Mapped[str | None] = mapped_column(String(40))
    credit_limit: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    # ERP binding
    erp_customer_id: Mapped[int | None] = mapped_column(Integer)
    erp_response_json: Mapped[str | None] = mapped_column(Text)
    erp_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    erp_last_error: Mapped[str | None] = mapped_column(Text)
    erp_conflict_customer_id: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    activity_branch = relationship("ActivityBranch")
    carrier_code = relationship("CarrierCode")
    price_list = relationship("PriceList")
    billing_method = relationship("BillingMethod")
    seller = relationship("Seller")
