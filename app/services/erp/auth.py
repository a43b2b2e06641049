"""Credential exchange against the ERP integration endpoint."""

from __future__ import annotations

import logging

import httpx

from app.services.erp.config import ERPConfig
from app.services.erp.errors import AuthenticationError
from app.services.erp.faults import classify_exception, extract_fault, parse_body
from app.services.erp.token_store import TokenStore

logger = logging.getLogger(__name__)

AUTH_PATH = "/auth-integracao.axd"


class Authenticator:
    """Exchange the configured credentials for a bearer token.

    Concurrent callers are not de-duplicated: each one may authenticate on its
    own. The exchange is idempotent and every caller gets a usable token.
    """

    def __init__(
        self,
        config: ERPConfig,
        token_store: TokenStore,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config
        self.token_store = token_store
        self._transport = transport

    @staticmethod
    def _extract_token(body: object | None) -> str | None:
        if isinstance(body, str):
            token = body.strip().strip('"').strip()
            return token or None
        if isinstance(body, dict):
            for key in ("token", "Token", "access_token", "Content"):
                value = body.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        return None

    def authenticate(self) -> str:
        """Return a fresh token and persist it in the token store.

        Raises:
            ConfigurationError: credentials or base URL missing.
            AuthenticationError: the ERP refused the credentials or returned no token.
        """
        self.config.require_configured()
        base_url = (self.config.base_url or "").rstrip("/")
        logger.info("Authenticating with ERP base_url=%s user=%s", base_url, self.config.username)

        try:
            with httpx.Client(
                base_url=base_url,
                timeout=self.config.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            ) as client:
                response = client.post(
                    AUTH_PATH,
                    json={
                        "usuario": self.config.username,
                        "senha": self.config.password,
                        "idDispositivo": None,
                        "idAplicativo": 0,
                    },
                )
        except httpx.HTTPError as exc:
            fault = classify_exception(exc)
            logger.error("ERP authentication request failed: %s", fault.message)
            raise AuthenticationError(f"Authentication request failed: {fault.message}") from exc

        fault = extract_fault(response)
        if fault is not None:
            logger.error("ERP authentication rejected status=%s message=%s", response.status_code, fault.message)
            raise AuthenticationError(
                f"Authentication failed: {fault.message}",
                status_code=response.status_code,
                response=parse_body(response),
            )

        token = self._extract_token(parse_body(response))
        if not token:
            raise AuthenticationError(
                "Authentication succeeded but no token was returned",
                status_code=response.status_code,
            )

        self.token_store.set(token)
        logger.info("ERP authentication succeeded (token length=%d)", len(token))
        return token
