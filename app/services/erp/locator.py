"""Find an existing ERP customer record for a tax id."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from app.services.erp.client import CallResult, ResilientClient
from app.services.erp.type_codes import TYPE_CODES, TypeCode

logger = logging.getLogger(__name__)

SEARCH_PATH = "/servico/integracaoterceiros/ObterCadastrosGerais/{code}/{tax_id}"
FETCH_PATH = "/servico/integracaoterceiros/ObterCadastroGeralPorId/{external_id}"

_NON_DIGITS = re.compile(r"\D")


def normalize_tax_id(value: str | int | None) -> str:
    """Strip everything but digits (``11.222.333/0001-81`` -> ``11222333000181``)."""
    if value is None:
        return ""
    return _NON_DIGITS.sub("", str(value))


def _as_int(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class ExternalCustomerRecord:
    """A customer as returned by the ERP search endpoint."""

    external_id: int | None
    tax_id: str
    legal_name: str | None = None
    trade_name: str | None = None
    raw_type: str | None = None
    type_code: str | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Any, type_code: str | None = None) -> ExternalCustomerRecord | None:
        """Build a record from a search response body (object or one-item list)."""
        if isinstance(payload, list):
            payload = next((item for item in payload if isinstance(item, dict)), None)
        if not isinstance(payload, dict) or not payload:
            return None
        return cls(
            external_id=_as_int(payload.get("ID") or payload.get("Id") or payload.get("id")),
            tax_id=normalize_tax_id(payload.get("CpfCgc") or payload.get("cpfCnpj")),
            legal_name=payload.get("RazaoSocial"),
            trade_name=payload.get("NomeFantasia"),
            raw_type=payload.get("TipoDePessoa"),
            type_code=payload.get("TipoDeCadastro") or type_code,
            raw=payload,
        )


class TypeCodeProbe:
    """Look up a tax id in one type-code sub-table."""

    def __init__(self, type_code: TypeCode):
        self.type_code = type_code

    @property
    def code(self) -> str:
        return self.type_code.code

    def path(self, tax_id: str) -> str:
        return SEARCH_PATH.format(code=self.code, tax_id=tax_id)

    def __call__(self, client: ResilientClient, tax_id: str) -> CallResult:
        return client.get(self.path(tax_id))

    def __repr__(self) -> str:
        return f"TypeCodeProbe({self.code!r})"


def default_probes() -> list[TypeCodeProbe]:
    return [TypeCodeProbe(type_code) for type_code in TYPE_CODES]


class CustomerLocator:
    """Probe the type-code catalog until a customer record turns up.

    The first non-empty successful response wins. Failures of any kind move on
    to the next probe, so a tax id that exists nowhere costs exactly one call
    per probe.
    """

    def __init__(self, client: ResilientClient, probes: Sequence[TypeCodeProbe] | None = None):
        self.client = client
        self.probes = list(probes) if probes is not None else default_probes()

    def search(self, tax_id: str | None) -> ExternalCustomerRecord | None:
        normalized = normalize_tax_id(tax_id)
        if not normalized:
            logger.info("ERP customer search skipped: blank tax id")
            return None

        for probe in self.probes:
            result = probe(self.client, normalized)
            if not result.success:
                logger.debug(
                    "ERP probe miss tax_id=%s type=%s error_type=%s error=%s",
                    normalized,
                    probe.code,
                    result.error_type,
                    result.error,
                )
                continue
            if not result.has_body:
                continue

            record = ExternalCustomerRecord.from_payload(result.data, type_code=probe.code)
            if record is None:
                continue
            if not record.tax_id:
                record = replace(record, tax_id=normalized)
            logger.info(
                "ERP customer found tax_id=%s type=%s external_id=%s",
                normalized,
                probe.code,
                record.external_id,
            )
            return record

        logger.info("ERP customer not found tax_id=%s after %d type codes", normalized, len(self.probes))
        return None

    def fetch(self, external_id: int | str) -> CallResult:
        """Retrieve the full ERP record for an external id."""
        return self.client.get(FETCH_PATH.format(external_id=external_id))
