"""Read-only value objects exchanged between the ERP sync stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CompanyData:
    tax_id: str
    legal_name: str
    trade_name: str | None = None
    registration_status: str | None = None
    company_size: str | None = None
    state_registration: str | None = None
    suframa_registration: str | None = None


@dataclass(frozen=True)
class AddressData:
    street: str | None = None
    number: str | None = None
    complement: str | None = None
    district: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class ContactData:
    phones: tuple[str, ...] = ()
    emails: tuple[str, ...] = ()

    @property
    def primary_phone(self) -> str:
        return self.phones[0] if self.phones else ""

    @property
    def primary_email(self) -> str:
        return self.emails[0] if self.emails else ""


@dataclass(frozen=True)
class FormSelections:
    """Choices made on the registration form.

    ``*_code`` holds the ERP code read from the catalog row; ``*_id`` is the
    local catalog row id, used when the row carries no numeric code.
    """

    activity_code: str | None = None
    activity_branch_id: int | None = None
    carrier_code: str | None = None
    carrier_code_id: int | None = None
    price_list_code: str | None = None
    price_list_id: int | None = None
    billing_method_code: str | None = None
    billing_method_id: int | None = None
    seller_code: str | None = None


@dataclass(frozen=True)
class ConsolidatedBusinessEntity:
    """Everything known locally about a company, assembled for one sync."""

    company: CompanyData
    address: AddressData = field(default_factory=AddressData)
    contact: ContactData = field(default_factory=ContactData)
    form: FormSelections | None = None

    @property
    def tax_id(self) -> str:
        return self.company.tax_id


@dataclass(frozen=True)
class SyncOutcome:
    """Result of a create/lookup call, as handed to the reconciler."""

    success: bool
    external_id: int | None = None
    raw_response: Any = None
    error_message: str | None = None

    @classmethod
    def failed(cls, error_message: str, raw_response: Any = None) -> SyncOutcome:
        return cls(success=False, error_message=error_message, raw_response=raw_response)
