"""Write ERP sync outcomes back onto local ``client_registrations`` rows.

Match order:

1. the row id the caller already knows;
2. the row already bound to the outcome's external id;
3. the row with the same (digits-only) tax id;
4. a new row.

A row bound to one external id is never re-bound to another by this path. The
rejected id is kept in ``erp_conflict_customer_id`` for manual review.

Every attempt runs in a savepoint. The session transaction belongs to the
caller, which commits once the outcome is recorded.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.registration import ClientRegistration
from app.services.erp.config import ERPConfig
from app.services.erp.entities import SyncOutcome
from app.services.erp.errors import PersistenceConflictError
from app.services.erp.locator import normalize_tax_id
from app.services.erp.store import RegistrationRepository

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
CONFLICT = "conflict"
FAILED = "failed"

FOREIGN_KEY = "foreign_key"
UNIQUE = "unique"
OTHER = "other"


def classify_integrity_error(exc: Exception) -> str:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == "23503":
        return FOREIGN_KEY
    if sqlstate == "23505":
        return UNIQUE
    message = str(orig or exc).lower()
    if "foreign key" in message:
        return FOREIGN_KEY
    if "unique" in message or "duplicate" in message:
        return UNIQUE
    return OTHER


def _as_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def _serialize(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False, default=str)


class ResponseReconciler:
    def __init__(self, db: Session, config: ERPConfig, repository: RegistrationRepository | None = None):
        self.db = db
        self.config = config
        self.repository = repository or RegistrationRepository(db)

    # ── binding ──────────────────────────────────────────────────

    def _apply(self, registration: ClientRegistration, outcome: SyncOutcome) -> str:
        bound = registration.erp_customer_id
        if outcome.external_id is not None and bound is not None and bound != outcome.external_id:
            logger.warning(
                "ERP binding conflict registration=%s tax_id=%s bound=%s rejected=%s",
                registration.id,
                registration.tax_id,
                bound,
                outcome.external_id,
            )
            self.repository.update(registration, erp_conflict_customer_id=outcome.external_id)
            return CONFLICT

        values: dict[str, Any] = {}
        if outcome.raw_response is not None:
            values["erp_response_json"] = _serialize(outcome.raw_response)
        if outcome.success:
            if outcome.external_id is not None:
                values["erp_customer_id"] = outcome.external_id
            values["erp_synced_at"] = datetime.now(UTC)
            values["erp_last_error"] = None
        else:
            values["erp_last_error"] = outcome.error_message or "ERP sync failed"
        self.repository.update(registration, **values)
        return UPDATED

    def _insert(self, tax_id: str, outcome: SyncOutcome) -> str:
        company = self.repository.latest_company(tax_id)
        raw = outcome.raw_response if isinstance(outcome.raw_response, dict) else {}
        legal_name = (
            (company.legal_name if company else None)
            or raw.get("RazaoSocial")
            or tax_id
        )
        trade_name = (company.trade_name if company else None) or raw.get("NomeFantasia")

        catalog_ids = {
            "carrier_code_id": _as_int(self.config.carrier_code),
            "price_list_id": _as_int(self.config.price_list_code),
            "billing_method_id": _as_int(self.config.billing_method_code),
            "activity_branch_id": _as_int(self.config.activity_code),
        }
        for field_name, row_id in list(catalog_ids.items()):
            if row_id is not None and not self.repository.catalog_exists(field_name, row_id):
                logger.warning("Catalog %s=%s does not exist; storing NULL", field_name, row_id)
                catalog_ids[field_name] = None

        now = datetime.now(UTC)
        values: dict[str, Any] = {
            "tax_id": tax_id,
            "legal_name": legal_name,
            "trade_name": trade_name,
            "erp_response_json": _serialize(outcome.raw_response),
            **catalog_ids,
        }
        if outcome.success:
            values.update(erp_customer_id=outcome.external_id, erp_synced_at=now, erp_last_error=None)
        else:
            values["erp_last_error"] = outcome.error_message or "ERP sync failed"
        self.repository.insert(**values)
        return CREATED

    # ── savepoint handling ───────────────────────────────────────

    def _in_savepoint(self, work: Callable[[], str]) -> str:
        savepoint = self.db.begin_nested()
        try:
            action = work()
            savepoint.commit()
            return action
        except IntegrityError as exc:
            savepoint.rollback()
            kind = classify_integrity_error(exc)
            raise PersistenceConflictError(str(exc.orig or exc), kind=kind) from exc
        except SQLAlchemyError:
            savepoint.rollback()
            raise

    def _match_and_write(self, tax_id: str, outcome: SyncOutcome, local_id: int | None) -> str:
        if local_id is not None:
            registration = self.repository.get_by_id(local_id)
            if registration is not None:
                return self._apply(registration, outcome)
            logger.warning("Registration %s not found; matching by ERP id / tax id", local_id)

        if outcome.external_id is not None:
            registration = self.repository.find_by_external_id(outcome.external_id)
            if registration is not None:
                return self._apply(registration, outcome)

        registration = self.repository.find_by_tax_id(tax_id)
        if registration is not None:
            return self._apply(registration, outcome)

        return self._insert(tax_id, outcome)

    def _retry_as_update(self, tax_id: str, outcome: SyncOutcome) -> str:
        registration = self.repository.find_by_tax_id(tax_id)
        if registration is None and outcome.external_id is not None:
            registration = self.repository.find_by_external_id(outcome.external_id)
        if registration is None:
            logger.error("Duplicate key for tax_id=%s but no row to update", tax_id)
            return FAILED
        return self._apply(registration, outcome)

    def persist(self, tax_id: str, outcome: SyncOutcome, local_id: int | None = None) -> str:
        """Record ``outcome`` for ``tax_id``; returns the action taken.

        Never raises: database errors are logged and reported as ``"failed"``.
        Only the failed savepoint is rolled back; nothing is committed here.
        """
        normalized = normalize_tax_id(tax_id)
        if not normalized:
            logger.error("Cannot persist ERP outcome without a tax id")
            return FAILED

        try:
            try:
                action = self._in_savepoint(lambda: self._match_and_write(normalized, outcome, local_id))
            except PersistenceConflictError as exc:
                if exc.kind != UNIQUE:
                    raise
                logger.warning("Duplicate key persisting ERP outcome tax_id=%s; retrying as update", normalized)
                action = self._in_savepoint(lambda: self._retry_as_update(normalized, outcome))
        except PersistenceConflictError as exc:
            logger.error("ERP outcome not persisted tax_id=%s kind=%s error=%s", normalized, exc.kind, exc.message)
            return FAILED
        except SQLAlchemyError as exc:
            logger.error("ERP outcome not persisted tax_id=%s error=%s", normalized, exc)
            return FAILED

        logger.info(
            "ERP outcome persisted tax_id=%s action=%s external_id=%s success=%s",
            normalized,
            action,
            outcome.external_id,
            outcome.success,
        )
        return action
