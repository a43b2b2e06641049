"""Fault classification for ERP responses.

The ERP does not reliably use HTTP status codes: a 200 response may carry an
error in its body. Every call site goes through :func:`extract_fault` or
:func:`classify_exception`; nothing else should match on upstream error text.

Classification order:

1. transport exception text (:func:`classify_exception`);
2. known error fields on a structured JSON body;
3. a text body wrapped in the ``~EXCEPTION_MESSAGE(...)`` marker, from which
   the trailing human-readable segment is extracted.

Auth phrases found anywhere in the body also count as a fault, because the ERP
sometimes embeds them in otherwise well-formed payloads.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

import httpx

# Substrings that mean the bearer token was rejected, expired, or taken over by
# another terminal logging in with the same account. Extend as new ones show up.
AUTH_FAULT_PHRASES: tuple[str, ...] = (
    "Token inválido para o request",
    "TOKEN_INVALIDO_USUARIO_EM_TERMINAL_DIFERENTE",
    "Verifique se o mesmo usuário não está sendo utilizado em um terminal diferente",
    "Token inválido",
    "Unauthorized",
    "TOKEN_INVALIDO",
)

FAULT_MARKER = "~EXCEPTION"
_MARKER_MESSAGE_RE = re.compile(r"~EXCEPTION_MESSAGE\([^)]+\)\s*([^~]+)")
_TOKEN_MESSAGE_RE = re.compile(r"Token inválido[^<\"]+")

# Fields that carry an error even on a 2xx response
_EMBEDDED_ERROR_FIELDS = ("Erro", "Error", "error", "ExceptionMessage")
# Fields to read a message from when the status code already says "error"
_ERROR_MESSAGE_FIELDS = (
    "Message",
    "ExceptionMessage",
    "Content",
    "ReasonPhrase",
    "Erro",
    "Error",
    "error",
    "detail",
    "message",
)

AUTHENTICATION = "authentication"
VALIDATION = "validation"
NOT_FOUND = "not_found"
TRANSIENT = "transient"
ERP = "erp"


@dataclass(frozen=True)
class Fault:
    message: str
    kind: str
    status_code: int | None = None

    @property
    def is_auth(self) -> bool:
        return self.kind == AUTHENTICATION


def is_auth_fault(text: str | None) -> bool:
    """True if ``text`` contains a phrase that indicates a rejected token."""
    if not isinstance(text, str) or not text:
        return False
    return any(phrase in text for phrase in AUTH_FAULT_PHRASES)


def extract_marker_message(text: str | None) -> str | None:
    """Pull the human-readable part out of a ``~EXCEPTION_MESSAGE(..)`` body."""
    if not isinstance(text, str) or not text:
        return None
    match = _MARKER_MESSAGE_RE.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    match = _TOKEN_MESSAGE_RE.search(text)
    if match:
        return match.group(0).strip()
    if FAULT_MARKER in text:
        return text.strip()
    return None


def parse_body(response: httpx.Response) -> object | None:
    """Decode a response body as JSON, falling back to text (None when empty)."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        text = response.text
        return text if text.strip() else None


def _body_text(body: object | None) -> str:
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(body)


def _first_field(data: dict, fields: tuple[str, ...]) -> str | None:
    for key in fields:
        value = data.get(key)
        if value is None or value == "" or isinstance(value, bool):
            continue
        if isinstance(value, dict | list):
            return _body_text(value)
        return str(value)
    return None


def fault_kind(message: str, status_code: int | None = None) -> str:
    if is_auth_fault(message) or status_code in (401, 403):
        return AUTHENTICATION
    if status_code in (400, 422):
        return VALIDATION
    if status_code == 404:
        return NOT_FOUND
    if status_code is not None and (status_code >= 500 or status_code in (408, 429)):
        return TRANSIENT
    return ERP


def _fault(message: str, status_code: int | None) -> Fault:
    return Fault(message=message, kind=fault_kind(message, status_code), status_code=status_code)


def classify_body(body: object | None, status_code: int, reason: str = "") -> Fault | None:
    """Return the fault encoded in a decoded body, or None for a clean response."""
    ok_status = 200 <= status_code < 300
    text = _body_text(body)

    if isinstance(body, dict):
        if body.get("IsSuccessStatusCode") is False:
            message = _first_field(body, ("Content", "Erro", "ReasonPhrase", "Message")) or "ERP reported failure"
            return _fault(extract_marker_message(message) or message, status_code)
        embedded = _first_field(body, _EMBEDDED_ERROR_FIELDS)
        if embedded:
            return _fault(extract_marker_message(embedded) or embedded, status_code)
        if not ok_status:
            message = _first_field(body, _ERROR_MESSAGE_FIELDS)
            if message:
                return _fault(extract_marker_message(message) or message, status_code)

    marker_message = extract_marker_message(text) if FAULT_MARKER in text else None
    if marker_message:
        return _fault(marker_message, status_code)

    if is_auth_fault(text):
        return _fault(extract_marker_message(text) or text.strip(), status_code)

    if not ok_status:
        if isinstance(body, str) and body.strip():
            return _fault(body.strip(), status_code)
        return _fault(f"HTTP {status_code} {reason}".strip(), status_code)

    return None


def extract_fault(response: httpx.Response) -> Fault | None:
    return classify_body(parse_body(response), response.status_code, response.reason_phrase)


def classify_exception(exc: Exception) -> Fault:
    message = str(exc) or exc.__class__.__name__
    if is_auth_fault(message):
        return Fault(message=message, kind=AUTHENTICATION)
    if isinstance(exc, httpx.TimeoutException | httpx.NetworkError | httpx.RemoteProtocolError):
        return Fault(message=f"{exc.__class__.__name__}: {message}", kind=TRANSIENT)
    return Fault(message=message, kind=ERP)
