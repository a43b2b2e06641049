"""Tests for assembling entities from local tables and municipality lookup."""

import pytest

from app.models.registration import Company, CompanyContact
from app.services.erp.consolidation import _string_list, load_entity
from app.services.erp.municipalities import MunicipalityDirectory, normalize_name

TAX_ID = "11222333000181"


# ---------------------------------------------------------------------------
# load_entity
# ---------------------------------------------------------------------------


class TestLoadEntity:
    def test_without_company(self, db_session, registration):
        assert load_entity(db_session, TAX_ID) is None

    def test_company_address_and_contact(self, db_session, company):
        entity = load_entity(db_session, "11.222.333/0001-81")

        assert entity.tax_id == TAX_ID
        assert entity.company.legal_name == "Mercado Exemplo LTDA"
        assert entity.company.company_size == "MICRO EMPRESA"
        assert entity.address.city == "Chapecó"
        assert entity.address.postal_code == "89801-000"
        assert entity.contact.phones == ("(49) 3322-1100", "(49) 99999-0000")
        assert entity.contact.primary_email == "compras@exemplo.com.br"
        assert entity.form is None

    def test_registration_form_and_email(self, db_session, company, registration):
        entity = load_entity(db_session, TAX_ID)

        assert entity.contact.emails == ("compras@exemplo.com.br", "financeiro@exemplo.com.br")
        assert entity.form.activity_code == "12"
        assert entity.form.activity_branch_id == 12
        assert entity.form.carrier_code == "205"
        assert entity.form.price_list_code == "7"
        assert entity.form.billing_method_code == "2"
        assert entity.form.seller_code == "31"

    def test_company_without_address_or_contact(self, db_session):
        db_session.add(Company(tax_id="12345678909", legal_name="Fulano de Tal"))
        db_session.commit()

        entity = load_entity(db_session, "123.456.789-09")

        assert entity.address.street is None
        assert entity.contact.phones == ()
        assert entity.contact.primary_phone == ""

    def test_latest_contact_is_used(self, db_session, company):
        newer = CompanyContact(company_id=company.id, landline_phones=["(49) 3000-0000"], emails=[])
        db_session.add(newer)
        db_session.commit()

        entity = load_entity(db_session, TAX_ID)

        assert entity.contact.primary_phone == "(49) 3000-0000"


class TestStringList:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ()),
            ("", ()),
            (["a", " b ", "", None], ("a", "b")),
            ('["(49) 1", "(49) 2"]', ("(49) 1", "(49) 2")),
            ('"solo@x.com"', ("solo@x.com",)),
            ("a@x.com, b@x.com", ("a@x.com", "b@x.com")),
            (42, ()),
        ],
    )
    def test_string_list(self, value, expected):
        assert _string_list(value) == expected


# ---------------------------------------------------------------------------
# Municipality directory
# ---------------------------------------------------------------------------


@pytest.fixture()
def codes_file(tmp_path):
    path = tmp_path / "municipalities.csv"
    path.write_text(
        "code,name,state\n"
        "4204202,Chapecó,SC\n"
        "3550308,São Paulo,SP\n"
        "2927408,Salvador,BA\n",
        encoding="utf-8",
    )
    return path


class TestMunicipalityDirectory:
    def test_accent_insensitive_lookup(self, codes_file):
        directory = MunicipalityDirectory(codes_file)

        assert directory.lookup("Chapeco", "sc") == "4204202"
        assert directory("SÃO  PAULO", "SP") == "3550308"

    def test_state_must_match(self, codes_file):
        assert MunicipalityDirectory(codes_file).lookup("Salvador", "SC") is None

    def test_lookup_without_state(self, codes_file):
        assert MunicipalityDirectory(codes_file).lookup("Salvador") == "2927408"

    def test_results_are_cached(self, codes_file):
        directory = MunicipalityDirectory(codes_file)
        assert directory.lookup("Chapecó", "SC") == "4204202"

        codes_file.write_text("code,name,state\n", encoding="utf-8")

        assert directory.lookup("Chapecó", "SC") == "4204202"

    def test_missing_file(self, tmp_path):
        directory = MunicipalityDirectory(tmp_path / "absent.csv")
        assert directory.lookup("Chapecó", "SC") is None

    def test_blank_city(self, codes_file):
        assert MunicipalityDirectory(codes_file).lookup("", "SC") is None

    def test_normalize_name(self):
        assert normalize_name("  São   José dos Pinhais ") == "SAO JOSE DOS PINHAIS"
