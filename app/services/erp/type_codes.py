"""ERP customer type codes ("tipos de cadastro").

The ERP keeps each customer kind in its own sub-table and has no lookup by tax
id across all of them. Lookups probe the codes below in order; the order is the
lookup priority.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TypeCode:
    code: str
    label: str


TYPE_CODES: tuple[TypeCode, ...] = (
    TypeCode("B", "CONTAS CAIXA X BANCO"),
    TypeCode("C", "CLIENTE CONSUMIDOR FINAL"),
    TypeCode("D", "PRESTADORES DE SERVIÇOS P.FÍSICA"),
    TypeCode("E", "PRESTADORES DE SERVICO P.JURÍDICA"),
    TypeCode("F", "FORNECEDORES ALMOXARIFADO"),
    TypeCode("G", "CLIENTES MERCADO INTERNO"),
    TypeCode("H", "EMPRESAS DO GRUPO (FILIAIS)"),
    TypeCode("I", "FORNECEDOR REVENDA"),
    TypeCode("J", "FORNECEDOR DIVERSOS"),
    TypeCode("K", "PLANO DE CONTAS"),
    TypeCode("M", "MOTORISTAS"),
    TypeCode("N", "A PAGAR FORNC. DIVERSOS(IMPOSTOS, TAXAS, E OUTROS)"),
    TypeCode("O", "PERFIL PARTICIPANTE"),
    TypeCode("S", "SISTEMA"),
    TypeCode("T", "TRANSPORTADOR"),
    TypeCode("U", "FUNCIONARIO/DEPARTAMENTOS"),
    TypeCode("V", "VENDEDOR"),
    TypeCode("X", "CLIENTES MERCADO EXTERNO"),
    TypeCode("Y", "FORNECEDOR MATERIA PRIMA"),
    TypeCode("Z", "PROSPECT"),
)

_BY_CODE = {type_code.code: type_code for type_code in TYPE_CODES}


def get_type_code(code: str | None) -> TypeCode | None:
    if not code:
        return None
    return _BY_CODE.get(code.strip().upper())


def type_label(code: str | None) -> str:
    type_code = get_type_code(code)
    return type_code.label if type_code else (code or "")
