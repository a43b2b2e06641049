"""Assemble a ``ConsolidatedBusinessEntity`` from the local tables."""

from __future__ import annotations

import json
import logging

from sqlalchemy.orm import Session

from app.models.registration import ClientRegistration, CompanyAddress, CompanyContact
from app.services.erp.entities import (
    AddressData,
    CompanyData,
    ConsolidatedBusinessEntity,
    ContactData,
    FormSelections,
)
from app.services.erp.locator import normalize_tax_id
from app.services.erp.store import RegistrationRepository

logger = logging.getLogger(__name__)


def _string_list(value) -> tuple[str, ...]:
    """Contact columns hold a list, JSON text of a list, or a bare string."""
    if value is None:
        return ()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ()
        try:
            value = json.loads(text)
        except ValueError:
            value = text.split(",")
        if isinstance(value, str):
            value = [value]
    if not isinstance(value, list | tuple):
        return ()
    return tuple(str(item).strip() for item in value if item is not None and str(item).strip())


def _code(catalog) -> str | None:
    return catalog.code if catalog is not None else None


def form_selections(registration: ClientRegistration | None) -> FormSelections | None:
    if registration is None:
        return None
    return FormSelections(
        activity_code=_code(registration.activity_branch),
        activity_branch_id=registration.activity_branch_id,
        carrier_code=_code(registration.carrier_code),
        carrier_code_id=registration.carrier_code_id,
        price_list_code=_code(registration.price_list),
        price_list_id=registration.price_list_id,
        billing_method_code=_code(registration.billing_method),
        billing_method_id=registration.billing_method_id,
        seller_code=_code(registration.seller),
    )


def load_entity(db: Session, tax_id: str) -> ConsolidatedBusinessEntity | None:
    """Return the consolidated view of ``tax_id``, or None without a company row."""
    normalized = normalize_tax_id(tax_id)
    repository = RegistrationRepository(db)
    company = repository.latest_company(normalized)
    if company is None:
        logger.warning("No company data for tax_id=%s", normalized)
        return None

    address = (
        db.query(CompanyAddress)
        .filter(CompanyAddress.company_id == company.id)
        .order_by(CompanyAddress.updated_at.desc(), CompanyAddress.id.desc())
        .first()
    )
    contact = (
        db.query(CompanyContact)
        .filter(CompanyContact.company_id == company.id)
        .order_by(CompanyContact.updated_at.desc(), CompanyContact.id.desc())
        .first()
    )
    registration = repository.find_by_tax_id(normalized)

    phones: tuple[str, ...] = ()
    emails: tuple[str, ...] = ()
    if contact is not None:
        phones = _string_list(contact.landline_phones) + _string_list(contact.mobile_phones)
        emails = _string_list(contact.emails)
    if registration is not None and registration.email and registration.email not in emails:
        emails = emails + (registration.email,)

    return ConsolidatedBusinessEntity(
        company=CompanyData(
            tax_id=normalize_tax_id(company.tax_id),
            legal_name=company.legal_name,
            trade_name=company.trade_name,
            registration_status=company.registration_status,
            company_size=company.company_size,
            state_registration=company.state_registration,
            suframa_registration=company.suframa_registration,
        ),
        address=AddressData(
            street=address.street,
            number=address.number,
            complement=address.complement,
            district=address.district,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            latitude=address.latitude,
            longitude=address.longitude,
        )
        if address is not None
        else AddressData(),
        contact=ContactData(phones=phones, emails=emails),
        form=form_selections(registration),
    )
