"""Tests for the ERP client's token handling and bounded reauthentication."""

import httpx
import pytest

from app.services.erp.auth import AUTH_PATH
from app.services.erp.client import CallResult, build_client
from app.services.erp.config import ERPConfig
from app.services.erp.errors import (
    AuthenticationError,
    ConfigurationError,
    ERPError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)

PATH = "/servico/integracaoterceiros/ObterCadastroGeralPorId/10"
TOKEN_FAULT = "~EXCEPTION_MESSAGE(TOKEN_INVALIDO_USUARIO_EM_TERMINAL_DIFERENTE) Token inválido para o request~"


def _auth_header(request: httpx.Request) -> str:
    return request.headers["Authorization"]


# ---------------------------------------------------------------------------
# Token acquisition
# ---------------------------------------------------------------------------


class TestTokenAcquisition:
    def test_empty_store_authenticates_once_before_first_request(self, erp_client, fake_erp):
        fake_erp.on("GET", PATH, (200, {"ID": 10}))

        result = erp_client.get(PATH)

        assert result.success is True
        assert fake_erp.auth_calls == 1
        assert [r.url.path for r in fake_erp.requests] == [AUTH_PATH, PATH]
        assert _auth_header(fake_erp.requests[1]) == "Bearer token-1"
        assert result.authenticated is True

    def test_stored_token_is_reused(self, erp_client, fake_erp):
        erp_client.token_store.set("stored")
        fake_erp.on("GET", PATH, (200, {"ID": 10}))

        erp_client.get(PATH)
        erp_client.get(PATH)

        assert fake_erp.auth_calls == 0
        assert all(_auth_header(r) == "Bearer stored" for r in fake_erp.api_requests())

    def test_blank_token_on_disk_is_never_sent(self, erp_client, erp_config, fake_erp):
        with open(erp_config.token_file, "w") as handle:
            handle.write("ERP_TOKEN=\n")
        fake_erp.on("GET", PATH, (200, {"ID": 10}))

        erp_client.get(PATH)

        assert fake_erp.requests[0].url.path == AUTH_PATH
        assert _auth_header(fake_erp.api_requests()[0]) == "Bearer token-1"

    def test_no_token_without_retry_fails_fast(self, erp_client, fake_erp):
        result = erp_client.get(PATH, allow_retry=False)

        assert result.success is False
        assert result.error_type == "authentication"
        assert fake_erp.requests == []

    def test_failed_lazy_authentication(self, erp_client, fake_erp):
        fake_erp.on_auth((401, {"Message": "Usuário ou senha inválidos"}))

        result = erp_client.get(PATH)

        assert result.success is False
        assert result.error_type == "authentication"
        assert result.status_code == 401
        assert fake_erp.api_requests() == []

    def test_missing_configuration_raises(self, tmp_path, fake_erp):
        config = ERPConfig(token_file=str(tmp_path / ".env"))
        client = build_client(config, transport=fake_erp.transport)

        with pytest.raises(ConfigurationError) as exc_info:
            client.get(PATH)

        assert "ERP_USERNAME" in exc_info.value.message
        assert "ERP_PASSWORD" in exc_info.value.message
        assert "ERP_BASE_URL" in exc_info.value.message
        assert fake_erp.requests == []


# ---------------------------------------------------------------------------
# Reauthentication
# ---------------------------------------------------------------------------


class TestReauthentication:
    def test_single_fault_reauthenticates_and_retries_once(self, erp_client, fake_erp):
        erp_client.token_store.set("stale")
        fake_erp.on("GET", PATH, (200, TOKEN_FAULT), (200, {"ID": 10}))

        result = erp_client.get(PATH)

        assert result.success is True
        assert result.data == {"ID": 10}
        assert result.attempts == 2
        assert fake_erp.auth_calls == 1
        api = fake_erp.api_requests()
        assert len(api) == 2
        assert _auth_header(api[0]) == "Bearer stale"
        assert _auth_header(api[1]) == "Bearer token-1"
        assert erp_client.token_store.get() == "token-1"

    def test_second_consecutive_fault_is_final(self, erp_client, fake_erp):
        erp_client.token_store.set("stale")
        fake_erp.on("GET", PATH, (200, TOKEN_FAULT))

        result = erp_client.get(PATH)

        assert result.success is False
        assert result.error_type == "authentication"
        assert result.error == "Token inválido para o request"
        assert result.attempts == 2
        assert fake_erp.auth_calls == 1
        assert len(fake_erp.api_requests()) == 2

    def test_fresh_token_rejected_reauthenticates_once(self, erp_client, fake_erp):
        fake_erp.on("GET", PATH, (200, TOKEN_FAULT), (200, {"ID": 10}))

        result = erp_client.get(PATH)

        assert result.success is True
        assert result.data == {"ID": 10}
        assert result.attempts == 2
        assert fake_erp.auth_calls == 2
        api = fake_erp.api_requests()
        assert len(api) == 2
        assert _auth_header(api[0]) == "Bearer token-1"
        assert _auth_header(api[1]) == "Bearer token-2"

    def test_empty_store_is_bounded_to_two_attempts(self, erp_client, fake_erp):
        fake_erp.on("GET", PATH, (200, TOKEN_FAULT))

        result = erp_client.get(PATH)

        assert result.success is False
        assert result.error_type == "authentication"
        assert fake_erp.auth_calls == 2
        assert len(fake_erp.api_requests()) == 2

    def test_unauthorized_status_triggers_reauth(self, erp_client, fake_erp):
        erp_client.token_store.set("stale")
        fake_erp.on("GET", PATH, (401, "Unauthorized"), (200, {"ID": 10}))

        result = erp_client.get(PATH)

        assert result.success is True
        assert fake_erp.auth_calls == 1

    def test_retry_disabled_makes_auth_fault_final(self, erp_client, fake_erp):
        erp_client.token_store.set("stale")
        fake_erp.on("GET", PATH, (200, TOKEN_FAULT))

        result = erp_client.get(PATH, allow_retry=False)

        assert result.error_type == "authentication"
        assert fake_erp.auth_calls == 0
        assert len(fake_erp.api_requests()) == 1

    def test_failed_reauthentication_is_reported(self, erp_client, fake_erp):
        erp_client.token_store.set("stale")
        fake_erp.on_auth((401, {"Message": "Usuário ou senha inválidos"}))
        fake_erp.on("GET", PATH, (200, TOKEN_FAULT))

        result = erp_client.get(PATH)

        assert result.success is False
        assert result.error_type == "authentication"
        assert fake_erp.auth_calls == 1
        assert len(fake_erp.api_requests()) == 1
        assert erp_client.token_store.get() is None


# ---------------------------------------------------------------------------
# Non-auth faults
# ---------------------------------------------------------------------------


class TestOtherFaults:
    @pytest.mark.parametrize(
        "reply,error_type",
        [
            ((400, {"Message": "CNPJ inválido"}), "validation"),
            ((422, {"Message": "Campo obrigatório"}), "validation"),
            ((404, {"Message": "Not found"}), "not_found"),
            ((500, {"Message": "Internal error"}), "transient"),
            ((200, {"Erro": "Cadastro duplicado"}), "erp"),
        ],
    )
    def test_fault_is_final_without_reauth(self, erp_client, fake_erp, reply, error_type):
        erp_client.token_store.set("tok")
        fake_erp.on("GET", PATH, reply)

        result = erp_client.get(PATH)

        assert result.success is False
        assert result.error_type == error_type
        assert fake_erp.auth_calls == 0
        assert len(fake_erp.api_requests()) == 1

    def test_timeout_is_transient(self, erp_client, fake_erp):
        erp_client.token_store.set("tok")
        fake_erp.on("GET", PATH, httpx.ReadTimeout)

        result = erp_client.get(PATH)

        assert result.success is False
        assert result.error_type == "transient"
        assert result.status_code is None
        assert fake_erp.auth_calls == 0

    def test_post_sends_json_body(self, erp_client, fake_erp):
        erp_client.token_store.set("tok")
        fake_erp.on("POST", "/servico/integracaoterceiros/CadastroGeral", (200, {"ID": 77}))

        result = erp_client.post("/servico/integracaoterceiros/CadastroGeral", {"RazaoSocial": "X"})

        assert result.success is True
        assert fake_erp.json_body() == {"RazaoSocial": "X"}

    def test_request_fn_exception_becomes_result(self, erp_client):
        erp_client.token_store.set("tok")

        def broken(http, headers):
            raise RuntimeError("boom")

        result = erp_client.execute(broken)

        assert result.success is False
        assert result.error_type == "erp"
        assert "boom" in result.error


# ---------------------------------------------------------------------------
# CallResult
# ---------------------------------------------------------------------------


class TestCallResult:
    @pytest.mark.parametrize(
        "error_type,exc_class",
        [
            ("authentication", AuthenticationError),
            ("validation", ValidationError),
            ("not_found", NotFoundError),
            ("transient", TransientNetworkError),
            ("erp", ERPError),
        ],
    )
    def test_raise_for_error(self, error_type, exc_class):
        result = CallResult.failure("nope", error_type, status_code=418)
        with pytest.raises(exc_class) as exc_info:
            result.raise_for_error()
        assert exc_info.value.status_code == 418

    def test_success_does_not_raise(self):
        CallResult(success=True, data={"ID": 1}).raise_for_error()

    @pytest.mark.parametrize("data,expected", [(None, False), ("", False), ([], False), ({}, False), ({"a": 1}, True)])
    def test_has_body(self, data, expected):
        assert CallResult(success=True, data=data).has_body is expected
