"""ERP integration: customer registration sync against the ERP integration API."""

from app.services.erp.auth import Authenticator
from app.services.erp.client import CallResult, ResilientClient, build_client
from app.services.erp.config import ERPConfig
from app.services.erp.errors import (
    AuthenticationError,
    ConfigurationError,
    ERPError,
    NotFoundError,
    PersistenceConflictError,
    TransientNetworkError,
    ValidationError,
)
from app.services.erp.locator import CustomerLocator, ExternalCustomerRecord, TypeCodeProbe
from app.services.erp.mapper import PayloadMapper
from app.services.erp.reconciler import ResponseReconciler
from app.services.erp.sync import RegistrationSync, SyncReport, SyncStatus
from app.services.erp.token_store import TokenStore
from app.services.erp.type_codes import TYPE_CODES, TypeCode

__all__ = [
    "Authenticator",
    "CallResult",
    "ResilientClient",
    "build_client",
    "ERPConfig",
    "ERPError",
    "AuthenticationError",
    "ConfigurationError",
    "NotFoundError",
    "PersistenceConflictError",
    "TransientNetworkError",
    "ValidationError",
    "CustomerLocator",
    "ExternalCustomerRecord",
    "TypeCodeProbe",
    "PayloadMapper",
    "ResponseReconciler",
    "RegistrationSync",
    "SyncReport",
    "SyncStatus",
    "TokenStore",
    "TYPE_CODES",
    "TypeCode",
]
