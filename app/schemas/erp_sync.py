from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.services.erp.sync import SyncStatus


class SyncReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax_id: str
    status: SyncStatus
    external_id: int | None = None
    type_code: str | None = None
    action: str | None = None
    message: str | None = None
    error_type: str | None = None
    warnings: list[str] = Field(default_factory=list)


class CustomerRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    external_id: int | None = None
    tax_id: str
    legal_name: str | None = None
    trade_name: str | None = None
    raw_type: str | None = None
    type_code: str | None = None


class CustomerSearchResponse(BaseModel):
    found: bool
    customer: CustomerRecordRead | None = None


class FinancialUpdateRequest(BaseModel):
    tax_id: str = Field(min_length=11, max_length=18)
    payment_condition_id: str | None = Field(default=None, max_length=40)
    credit_limit: Decimal | None = Field(default=None, ge=0)
    carrier_code: int | None = Field(default=None, ge=1)
    billing_method_code: int | None = Field(default=None, ge=1)


class FinancialUpdateResponse(BaseModel):
    success: bool
    external_id: int
    message: str | None = None
    data: Any = None
