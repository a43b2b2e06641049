"""ERP integration settings projected from ``app.config.Settings``."""

from __future__ import annotations

from dataclasses import dataclass

from app.config import Settings, settings
from app.services.erp.errors import ConfigurationError


@dataclass(frozen=True)
class ERPConfig:
    base_url: str | None = None
    username: str | None = None
    password: str | None = None
    timeout: float = 30.0
    token_file: str = ".env"

    registration_type: str = "G"
    branch_code: str = "001"
    activity_code: str = "037"
    carrier_code: int = 101
    price_list_code: int = 1
    billing_method_code: int = 1
    seller_code: int = 1
    delivery_route_code: str = ""

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> ERPConfig:
        s = source or settings
        return cls(
            base_url=s.erp_base_url,
            username=s.erp_username,
            password=s.erp_password,
            timeout=float(s.erp_timeout_seconds),
            token_file=s.erp_token_file,
            registration_type=s.erp_registration_type,
            branch_code=s.erp_branch_code,
            activity_code=s.erp_activity_code,
            carrier_code=s.erp_carrier_code,
            price_list_code=s.erp_price_list_code,
            billing_method_code=s.erp_billing_method_code,
            seller_code=s.erp_seller_code,
            delivery_route_code=s.erp_delivery_route_code,
        )

    def missing_settings(self) -> list[str]:
        missing = []
        if not (self.username or "").strip():
            missing.append("ERP_USERNAME")
        if not (self.password or "").strip():
            missing.append("ERP_PASSWORD")
        if not (self.base_url or "").strip():
            missing.append("ERP_BASE_URL")
        return missing

    @property
    def is_configured(self) -> bool:
        return not self.missing_settings()

    def require_configured(self) -> None:
        """Raise ``ConfigurationError`` unless the credential pair and base URL are set."""
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(f"ERP integration not configured (missing {', '.join(missing)})")
