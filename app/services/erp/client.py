"""HTTP client for the ERP integration API.

Every outbound call goes through :meth:`ResilientClient.execute`, which attaches
the bearer token, inspects the response for embedded faults (the ERP reports
some errors as HTTP 200) and reauthenticates at most once when the token turns
out to be invalid.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from app.services.erp.auth import Authenticator
from app.services.erp.config import ERPConfig
from app.services.erp.errors import (
    AuthenticationError,
    ERPError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)
from app.services.erp.faults import (
    AUTHENTICATION,
    ERP,
    NOT_FOUND,
    TRANSIENT,
    VALIDATION,
    Fault,
    classify_exception,
    extract_fault,
    parse_body,
)
from app.services.erp.token_store import TokenStore

logger = logging.getLogger(__name__)

RequestFn = Callable[[httpx.Client, dict[str, str]], httpx.Response]

_ERROR_CLASSES: dict[str, type[ERPError]] = {
    AUTHENTICATION: AuthenticationError,
    VALIDATION: ValidationError,
    NOT_FOUND: NotFoundError,
    TRANSIENT: TransientNetworkError,
}


@dataclass
class CallResult:
    """Outcome of one logical ERP call."""

    success: bool
    data: Any = None
    error: str | None = None
    error_type: str | None = None
    status_code: int | None = None
    attempts: int = 0
    authenticated: bool = False

    @property
    def has_body(self) -> bool:
        if self.data is None:
            return False
        if isinstance(self.data, str | dict | list):
            return len(self.data) > 0
        return True

    def raise_for_error(self) -> None:
        """Raise the ``ERPError`` subclass matching ``error_type`` on failure."""
        if self.success:
            return
        exc_class = _ERROR_CLASSES.get(self.error_type or "", ERPError)
        raise exc_class(self.error or "ERP request failed", status_code=self.status_code, response=self.data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_type: str,
        status_code: int | None = None,
        attempts: int = 0,
        authenticated: bool = False,
    ) -> CallResult:
        return cls(
            success=False,
            error=error,
            error_type=error_type,
            status_code=status_code,
            attempts=attempts,
            authenticated=authenticated,
        )


class ResilientClient:
    """
    HTTP client for the ERP REST API.

    Features:
    - Bearer token read from a shared ``TokenStore`` before every call
    - Lazy authentication when no token is stored
    - Fault detection on every response, whatever the status code
    - One reauthenticate-and-retry when the token is rejected

    No generic network retry/backoff is applied: transient failures are
    surfaced to the caller as ``error_type == "transient"``.
    """

    DEFAULT_TIMEOUT = 30.0
    USER_AGENT = "Cadastros-ERP-Sync/1.0"

    def __init__(
        self,
        config: ERPConfig,
        token_store: TokenStore,
        authenticator: Authenticator,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config
        self.token_store = token_store
        self.authenticator = authenticator
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=(self.config.base_url or "").rstrip("/"),
                timeout=self.config.timeout or self.DEFAULT_TIMEOUT,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": self.USER_AGENT,
                },
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _attempt(self, request_fn: RequestFn, token: str) -> tuple[Fault | None, httpx.Response | None]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = request_fn(self._get_client(), headers)
        except httpx.HTTPError as exc:
            fault = classify_exception(exc)
            logger.warning("ERP request failed before a response: %s", fault.message)
            return fault, None
        except Exception as exc:
            logger.exception("Unexpected error issuing ERP request")
            return Fault(message=f"Unexpected error: {exc}", kind=ERP), None

        fault = extract_fault(response)
        if fault is not None:
            logger.warning(
                "ERP API fault: status=%s kind=%s message=%s",
                response.status_code,
                fault.kind,
                fault.message,
            )
        return fault, response

    def _authenticate(self) -> str:
        self.token_store.clear()
        return self.authenticator.authenticate()

    def execute(self, request_fn: RequestFn, allow_retry: bool = True) -> CallResult:
        """
        Run one logical ERP call.

        Args:
            request_fn: Issues the request on the given ``httpx.Client`` using
                the given auth headers and returns the response.
            allow_retry: Permit (re)authentication. When False a missing token
                fails fast and an auth fault is final. A lazy authentication
                before the first attempt does not use up the single reauthentication.

        Returns:
            CallResult. Only ``ConfigurationError`` is raised.
        """
        self.config.require_configured()

        authenticated = False
        reauthenticated = False
        token = self.token_store.get()
        if not token:
            if not allow_retry:
                return CallResult.failure("No ERP token available", AUTHENTICATION)
            logger.info("No stored ERP token; authenticating before the first request")
            try:
                token = self._authenticate()
            except AuthenticationError as exc:
                return CallResult.failure(exc.message, AUTHENTICATION, exc.status_code)
            authenticated = True

        attempts = 0
        while True:
            attempts += 1
            fault, response = self._attempt(request_fn, token)
            status_code = response.status_code if response is not None else None

            if fault is None:
                return CallResult(
                    success=True,
                    data=parse_body(response),
                    status_code=status_code,
                    attempts=attempts,
                    authenticated=authenticated,
                )

            if fault.is_auth and allow_retry and not reauthenticated:
                logger.warning("ERP token rejected (%s); reauthenticating once", fault.message)
                try:
                    token = self._authenticate()
                except AuthenticationError as exc:
                    return CallResult.failure(
                        exc.message, AUTHENTICATION, exc.status_code, attempts=attempts, authenticated=True
                    )
                authenticated = True
                reauthenticated = True
                continue

            return CallResult.failure(
                fault.message,
                fault.kind,
                status_code=fault.status_code or status_code,
                attempts=attempts,
                authenticated=authenticated,
            )

    def _call(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json_data: dict | list | None = None,
        allow_retry: bool = True,
    ) -> CallResult:
        def request_fn(http: httpx.Client, headers: dict[str, str]) -> httpx.Response:
            return http.request(method=method, url=path, params=params, json=json_data, headers=headers)

        return self.execute(request_fn, allow_retry=allow_retry)

    def get(self, path: str, params: dict | None = None, allow_retry: bool = True) -> CallResult:
        return self._call("GET", path, params=params, allow_retry=allow_retry)

    def post(self, path: str, json_data: dict | list, allow_retry: bool = True) -> CallResult:
        return self._call("POST", path, json_data=json_data, allow_retry=allow_retry)

    def put(self, path: str, json_data: dict | list, allow_retry: bool = True) -> CallResult:
        return self._call("PUT", path, json_data=json_data, allow_retry=allow_retry)


def build_client(config: ERPConfig | None = None, transport: httpx.BaseTransport | None = None) -> ResilientClient:
    """Wire a token store, authenticator and client from configuration."""
    config = config or ERPConfig.from_settings()
    token_store = TokenStore(config.token_file)
    authenticator = Authenticator(config, token_store, transport=transport)
    return ResilientClient(config, token_store, authenticator, transport=transport)
