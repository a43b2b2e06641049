"""Storage surface the ERP sync needs over ``client_registrations`` and its catalogs."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.registration import (
    ActivityBranch,
    BillingMethod,
    CarrierCode,
    ClientRegistration,
    Company,
    PriceList,
    Seller,
)
from app.services.erp.locator import normalize_tax_id

CATALOG_MODELS: dict[str, type] = {
    "activity_branch_id": ActivityBranch,
    "carrier_code_id": CarrierCode,
    "price_list_id": PriceList,
    "billing_method_id": BillingMethod,
    "seller_id": Seller,
}


def _digits_expr(column):
    return func.replace(func.replace(func.replace(column, ".", ""), "-", ""), "/", "")


class RegistrationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, registration_id: int) -> ClientRegistration | None:
        return self.db.get(ClientRegistration, registration_id)

    def find_by_external_id(self, external_id: int) -> ClientRegistration | None:
        return (
            self.db.query(ClientRegistration)
            .filter(ClientRegistration.erp_customer_id == external_id)
            .first()
        )

    def find_by_tax_id(self, tax_id: str) -> ClientRegistration | None:
        """Match on digits only, so stored punctuation does not matter."""
        normalized = normalize_tax_id(tax_id)
        if not normalized:
            return None
        return (
            self.db.query(ClientRegistration)
            .filter(_digits_expr(ClientRegistration.tax_id) == normalized)
            .order_by(ClientRegistration.updated_at.desc(), ClientRegistration.id.desc())
            .first()
        )

    def insert(self, **values: Any) -> ClientRegistration:
        registration = ClientRegistration(**values)
        self.db.add(registration)
        self.db.flush()
        return registration

    def update(self, registration: ClientRegistration, **values: Any) -> ClientRegistration:
        for key, value in values.items():
            setattr(registration, key, value)
        self.db.flush()
        return registration

    def catalog_exists(self, field_name: str, row_id: int | None) -> bool:
        if row_id is None:
            return False
        model = CATALOG_MODELS[field_name]
        return self.db.get(model, row_id) is not None

    def latest_company(self, tax_id: str) -> Company | None:
        normalized = normalize_tax_id(tax_id)
        if not normalized:
            return None
        return (
            self.db.query(Company)
            .filter(_digits_expr(Company.tax_id) == normalized)
            .order_by(Company.updated_at.desc(), Company.id.desc())
            .first()
        )
