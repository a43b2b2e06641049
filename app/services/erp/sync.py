"""Register local companies as ERP customers and keep the binding in sync."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.services.erp.client import CallResult, ResilientClient, build_client
from app.services.erp.config import ERPConfig
from app.services.erp.consolidation import load_entity
from app.services.erp.entities import SyncOutcome
from app.services.erp.errors import ConfigurationError
from app.services.erp.faults import ERP, NOT_FOUND, TRANSIENT, VALIDATION
from app.services.erp.locator import CustomerLocator, ExternalCustomerRecord, normalize_tax_id
from app.services.erp.locks import KeyedLock
from app.services.erp.mapper import MunicipalityResolver, PayloadMapper
from app.services.erp.municipalities import MunicipalityDirectory
from app.services.erp.reconciler import CONFLICT, FAILED, ResponseReconciler
from app.services.erp.store import RegistrationRepository

logger = logging.getLogger(__name__)

CREATE_PATH = "/servico/integracaoterceiros/CadastroGeral"
UPDATE_PATH = "/servico/integracaoterceiros/EditarCadastroGeral"

# Shared by every RegistrationSync in the process
_registration_locks = KeyedLock()


class SyncStatus(str, Enum):
    synced = "synced"
    already_registered = "already_registered"
    pending = "pending"
    failed = "failed"


@dataclass
class SyncReport:
    """Result of registering one company in the ERP."""

    tax_id: str
    status: SyncStatus
    external_id: int | None = None
    type_code: str | None = None
    action: str | None = None
    message: str | None = None
    error_type: str | None = None
    warnings: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def has_errors(self) -> bool:
        return self.status == SyncStatus.failed


@lru_cache(maxsize=1)
def default_municipality_directory() -> MunicipalityDirectory:
    return MunicipalityDirectory(settings.municipality_codes_file)


def extract_external_id(data: Any) -> int | None:
    """Pull the new customer id out of a create response."""
    if isinstance(data, bool):
        return None
    if isinstance(data, int):
        return data
    if isinstance(data, str):
        text = data.strip().strip('"')
        return int(text) if text.isdigit() else None
    if isinstance(data, dict):
        for key in ("ID", "Id", "id", "CodigoDoCadastro", "Codigo"):
            value = extract_external_id(data.get(key))
            if value is not None:
                return value
        content = data.get("Content")
        if content is not None:
            return extract_external_id(content)
    return None


class RegistrationSync:
    """Push client registrations to the ERP.

    One instance per request/job; the HTTP client is created lazily and must be
    released with ``close()`` (or by using the instance as a context manager).
    """

    def __init__(
        self,
        db: Session,
        config: ERPConfig | None = None,
        client: ResilientClient | None = None,
        municipality_resolver: MunicipalityResolver | None = None,
    ):
        self.db = db
        self.config = config or ERPConfig.from_settings()
        self._client = client
        self._owns_client = client is None
        self.mapper = PayloadMapper(
            self.config,
            municipality_resolver if municipality_resolver is not None else default_municipality_directory(),
        )
        self.reconciler = ResponseReconciler(db, self.config)
        self.repository = RegistrationRepository(db)

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            self._client = build_client(self.config)
        return self._client

    @property
    def locator(self) -> CustomerLocator:
        return CustomerLocator(self.client)

    def close(self):
        if self._client and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def search_customer(self, tax_id: str) -> ExternalCustomerRecord | None:
        self.config.require_configured()
        return self.locator.search(tax_id)

    def register_company(self, tax_id: str, registration_id: int | None = None) -> SyncReport:
        """Find or create the ERP customer for ``tax_id`` and record the binding locally."""
        start_time = datetime.now(UTC)
        normalized = normalize_tax_id(tax_id)
        report = SyncReport(tax_id=normalized, status=SyncStatus.failed)

        if not normalized:
            report.message = "Tax id is required"
            return report

        try:
            self.config.require_configured()
        except ConfigurationError as exc:
            logger.warning("ERP sync skipped for tax_id=%s: %s", normalized, exc.message)
            report.status = SyncStatus.pending
            report.message = "Saved locally, not synced with the ERP"
            report.warnings.append(exc.message)
            return report

        with _registration_locks.hold(normalized):
            self._register(normalized, registration_id, report)

        report.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            "ERP registration tax_id=%s status=%s external_id=%s action=%s",
            normalized,
            report.status.value,
            report.external_id,
            report.action,
        )
        return report

    def _register(self, tax_id: str, registration_id: int | None, report: SyncReport) -> None:
        existing = self.locator.search(tax_id)
        if existing is not None:
            report.status = SyncStatus.already_registered
            report.external_id = existing.external_id
            report.type_code = existing.type_code
            report.message = "Customer already registered in the ERP"
            if existing.external_id is None:
                logger.warning("ERP record for tax_id=%s type=%s has no customer id", tax_id, existing.type_code)
                report.warnings.append(
                    f"ERP record found under type {existing.type_code} carries no customer id; binding not recorded"
                )
            outcome = SyncOutcome(success=True, external_id=existing.external_id, raw_response=existing.raw)
            self._record(tax_id, outcome, registration_id, report)
            return

        entity = load_entity(self.db, tax_id)
        if entity is None:
            report.status = SyncStatus.failed
            report.error_type = ERP
            report.message = "Company data not found locally"
            return

        payload = self.mapper.map(entity)
        logger.info("Creating ERP customer tax_id=%s type=%s", tax_id, payload["tipoDeCadastro"])
        result = self.client.post(CREATE_PATH, payload)

        if result.success:
            external_id = extract_external_id(result.data)
            if external_id is None:
                report.warnings.append("ERP accepted the customer but returned no id")
            outcome = SyncOutcome(success=True, external_id=external_id, raw_response=result.data)
            report.status = SyncStatus.synced
            report.external_id = external_id
            report.type_code = payload["tipoDeCadastro"]
            report.message = "Customer registered in the ERP"
        else:
            outcome = SyncOutcome.failed(result.error or "ERP create failed", raw_response=result.data)
            report.error_type = result.error_type
            report.message = result.error
            report.status = SyncStatus.pending if result.error_type == TRANSIENT else SyncStatus.failed

        self._record(tax_id, outcome, registration_id, report)

    def _record(self, tax_id: str, outcome: SyncOutcome, registration_id: int | None, report: SyncReport) -> None:
        """Reconcile ``outcome`` and commit; the reconciler itself never commits."""
        report.action = self.reconciler.persist(tax_id, outcome, local_id=registration_id)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            logger.error("ERP outcome not committed tax_id=%s error=%s", tax_id, exc)
            self.db.rollback()
            report.action = FAILED
        self._note_action(report)

    @staticmethod
    def _note_action(report: SyncReport) -> None:
        if report.action == CONFLICT:
            report.warnings.append(
                f"Local registration is bound to a different ERP customer; id {report.external_id} recorded as conflict"
            )
        elif report.action == FAILED:
            report.warnings.append("ERP result could not be saved locally")

    def get_customer(self, external_id: int) -> Any:
        """Return the ERP record for ``external_id``; raises the matching ``ERPError`` on failure."""
        self.config.require_configured()
        result = self.locator.fetch(external_id)
        result.raise_for_error()
        return result.data

    def update_financial_data(
        self,
        external_id: int,
        tax_id: str,
        payment_condition_id: str | None = None,
        credit_limit: Decimal | float | None = None,
        carrier_code: int | None = None,
        billing_method_code: int | None = None,
    ) -> CallResult:
        """Send payment condition, credit limit, wallet and billing codes to the ERP."""
        self.config.require_configured()
        if not external_id:
            return CallResult.failure("ERP customer id is required", VALIDATION)

        entity = load_entity(self.db, tax_id)
        if entity is None:
            return CallResult.failure("Company data not found locally", NOT_FOUND)

        payload = self.mapper.map_financial_update(
            external_id,
            entity,
            payment_condition_id=payment_condition_id,
            credit_limit=credit_limit,
            carrier_code=carrier_code,
            billing_method_code=billing_method_code,
        )
        result = self.client.put(UPDATE_PATH, payload)
        if not result.success:
            logger.error("ERP financial update failed external_id=%s error=%s", external_id, result.error)
            return result

        registration = self.repository.find_by_tax_id(tax_id)
        if registration is not None:
            values: dict[str, Any] = {}
            if payment_condition_id:
                values["payment_condition_id"] = payment_condition_id
            if credit_limit is not None:
                values["credit_limit"] = Decimal(str(credit_limit))
            if values:
                self.repository.update(registration, **values)
                self.db.commit()
        logger.info("ERP financial data updated external_id=%s", external_id)
        return result
