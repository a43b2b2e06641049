"""Translate local registration data into ERP request payloads."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from app.services.erp.config import ERPConfig
from app.services.erp.entities import ConsolidatedBusinessEntity, FormSelections

logger = logging.getLogger(__name__)

MunicipalityResolver = Callable[[str, str], str | None]

WIRE_FIELDS: tuple[str, ...] = (
    "UtilizaSequenciaDaAtak",
    "tipoDeCadastro",
    "CodigoDaFilial",
    "RazaoSocial",
    "nomeFantasia",
    "tipoDePessoa",
    "cpfCnpj",
    "identificadorEstadual",
    "observacao",
    "codigoDaSituacao",
    "codigoDoRamoDaAtividade",
    "codigoDoPercursoDaRotaDeEntrega",
    "uf",
    "indicadorMicroEmpresa",
    "suframa",
    "Enderecos",
    "Financeiro",
)

# F fiscal, C billing, E delivery, R pickup, T sorting
ADDRESS_KINDS: tuple[str, ...] = ("F", "C", "E", "R", "T")
ADDRESS_FIELDS: tuple[str, ...] = (
    "IdDoPais",
    "UF",
    "ConteudoEndereco",
    "Bairro",
    "CodigoIBGECidade",
    "Cidade",
    "Telefone",
    "Email",
    "CEP",
    "Numero",
    "Observacao",
    "Latitude",
    "Longitude",
)
FINANCIAL_FIELDS: tuple[str, ...] = (
    "CodigoDaListaDePreco",
    "CodigoDaCarteira",
    "CodigoFormaDeCobranca",
    "CodigoDoVendedor",
)

COUNTRY_CODE = "BR"

_NON_DIGITS = re.compile(r"\D")

# Checked in order; inactive terms first so "INATIVA" is not read as "ATIVA"
_SITUATION_TERMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("I", ("BAIXADA", "CANCELADA", "INATIVA", "INATIVO", "NULA")),
    ("B", ("SUSPENSA", "BLOQUEADO", "BLOQUEADA")),
    ("A", ("ATIVA", "APROVADO", "APROVADA")),
)


def digits_only(value: Any) -> str:
    if value is None:
        return ""
    return _NON_DIGITS.sub("", str(value))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = re.match(r"\s*(-?\d+)", str(value))
    return int(match.group(1)) if match else None


def resolve_code(code: Any, fallback_id: int | None, default: int) -> int:
    """Explicit code, then the local catalog row id, then the configured default."""
    parsed = _parse_int(code)
    if parsed is not None:
        return parsed
    if fallback_id:
        return fallback_id
    return default


def situation_code(status: str | None) -> str:
    """Map a registry status to the ERP situation code (A active, B blocked, I inactive)."""
    if not status or not status.strip():
        return "A"
    upper = status.strip().upper()
    if upper in ("A", "B", "I"):
        return upper
    for code, terms in _SITUATION_TERMS:
        if any(term in upper for term in terms):
            return code
    return "A"


def micro_enterprise_flag(company_size: str | None) -> str:
    if not company_size:
        return "N"
    upper = company_size.upper()
    return "S" if "MICRO" in upper or "PEQUENO" in upper else "N"


class PayloadMapper:
    """Build ERP payloads from a ``ConsolidatedBusinessEntity``.

    ``map`` is pure: the entity is never modified and every wire field is always
    present, with empty strings where no value is known.
    """

    def __init__(self, config: ERPConfig, municipality_resolver: MunicipalityResolver | None = None):
        self.config = config
        self.municipality_resolver = municipality_resolver

    def _municipality_code(self, city: str | None, state: str | None) -> str:
        if not self.municipality_resolver or not _text(city) or not _text(state):
            return ""
        code = self.municipality_resolver(_text(city), _text(state))
        if not code:
            logger.warning("No municipality code for city=%s state=%s", city, state)
            return ""
        return str(code)

    def activity_code(self, form: FormSelections | None) -> str:
        if form is not None:
            explicit = _text(form.activity_code)
            if explicit:
                return explicit.zfill(3)
            if form.activity_branch_id:
                return str(form.activity_branch_id).zfill(3)
        configured = _text(self.config.activity_code)
        return configured.zfill(3) if configured else "037"

    def financial_codes(self, form: FormSelections | None) -> dict[str, int]:
        form = form or FormSelections()
        return {
            "CodigoDaListaDePreco": resolve_code(form.price_list_code, form.price_list_id, self.config.price_list_code),
            "CodigoDaCarteira": resolve_code(form.carrier_code, form.carrier_code_id, self.config.carrier_code),
            "CodigoFormaDeCobranca": resolve_code(
                form.billing_method_code, form.billing_method_id, self.config.billing_method_code
            ),
            "CodigoDoVendedor": resolve_code(form.seller_code, None, self.config.seller_code),
        }

    def _addresses(self, entity: ConsolidatedBusinessEntity) -> dict[str, str]:
        address = entity.address
        block = {
            "IdDoPais": COUNTRY_CODE,
            "UF": _text(address.state).upper(),
            "ConteudoEndereco": _text(address.street),
            "Bairro": _text(address.district),
            "CodigoIBGECidade": self._municipality_code(address.city, address.state),
            "Cidade": _text(address.city),
            "Telefone": digits_only(entity.contact.primary_phone),
            "Email": _text(entity.contact.primary_email),
            "CEP": digits_only(address.postal_code),
            "Numero": _text(address.number),
            "Observacao": _text(address.complement),
            "Latitude": "" if address.latitude is None else str(address.latitude),
            "Longitude": "" if address.longitude is None else str(address.longitude),
        }
        return {f"{name}{kind}": block[name] for kind in ADDRESS_KINDS for name in ADDRESS_FIELDS}

    def map(self, entity: ConsolidatedBusinessEntity) -> dict[str, Any]:
        """Build the ``CadastroGeral`` create payload."""
        company = entity.company
        tax_id = digits_only(company.tax_id)
        legal_name = _text(company.legal_name)

        return {
            "UtilizaSequenciaDaAtak": True,
            "tipoDeCadastro": self.config.registration_type or "G",
            "CodigoDaFilial": self.config.branch_code or "001",
            "RazaoSocial": legal_name,
            "nomeFantasia": _text(company.trade_name) or legal_name,
            "tipoDePessoa": "J" if len(tax_id) == 14 else "F",
            "cpfCnpj": tax_id,
            "identificadorEstadual": 1 if _text(company.state_registration) else 9,
            "observacao": "",
            "codigoDaSituacao": situation_code(company.registration_status),
            "codigoDoRamoDaAtividade": self.activity_code(entity.form),
            "codigoDoPercursoDaRotaDeEntrega": self.config.delivery_route_code or "",
            "uf": _text(entity.address.state).upper(),
            "indicadorMicroEmpresa": micro_enterprise_flag(company.company_size),
            "suframa": _text(company.suframa_registration),
            "Enderecos": self._addresses(entity),
            "Financeiro": self.financial_codes(entity.form),
        }

    def map_financial_update(
        self,
        external_id: int,
        entity: ConsolidatedBusinessEntity,
        payment_condition_id: str | None = None,
        credit_limit: Decimal | float | None = None,
        carrier_code: int | None = None,
        billing_method_code: int | None = None,
    ) -> dict[str, Any]:
        """Build the ``EditarCadastroGeral`` payload.

        Wallet and billing codes not given explicitly come from the
        registration form, then from configuration.
        """
        form = entity.form or FormSelections()
        legal_name = _text(entity.company.legal_name) or _text(entity.company.trade_name)
        trade_name = _text(entity.company.trade_name) or legal_name

        payload: dict[str, Any] = {
            "ID": external_id,
            "RazaoSocial": legal_name,
            "NomeFantasia": trade_name,
            "Nome": legal_name or trade_name,
            "CodigoDaCarteira": carrier_code
            or resolve_code(form.carrier_code, form.carrier_code_id, self.config.carrier_code),
            "CodFormaDeCobranca": billing_method_code
            or resolve_code(form.billing_method_code, form.billing_method_id, self.config.billing_method_code),
        }
        if _text(payment_condition_id):
            payload["CodCondicaoPagamento"] = _text(payment_condition_id)
        if credit_limit is not None:
            payload["LimiteCredito"] = float(credit_limit)
        if form.price_list_code or form.price_list_id:
            payload["CodLista"] = resolve_code(form.price_list_code, form.price_list_id, self.config.price_list_code)
        return payload
