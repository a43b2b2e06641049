from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_registration_sync
from app.schemas.erp_sync import (
    CustomerRecordRead,
    CustomerSearchResponse,
    FinancialUpdateRequest,
    FinancialUpdateResponse,
    SyncReportRead,
)
from app.services.erp.errors import (
    AuthenticationError,
    ConfigurationError,
    ERPError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)
from app.services.erp.sync import RegistrationSync

router = APIRouter(prefix="/erp", tags=["erp-sync"])


def _http_error(exc: ERPError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail=exc.message)
    if isinstance(exc, TransientNetworkError):
        return HTTPException(status_code=504, detail=exc.message)
    if isinstance(exc, AuthenticationError):
        return HTTPException(status_code=502, detail=f"ERP authentication failed: {exc.message}")
    return HTTPException(status_code=502, detail=exc.message)


@router.post("/registrations/{tax_id}/sync", response_model=SyncReportRead)
def sync_registration(
    tax_id: str,
    registration_id: int | None = None,
    service: RegistrationSync = Depends(get_registration_sync),
):
    return service.register_company(tax_id, registration_id=registration_id)


@router.get("/customers/search/{tax_id}", response_model=CustomerSearchResponse)
def search_customer(tax_id: str, service: RegistrationSync = Depends(get_registration_sync)):
    try:
        record = service.search_customer(tax_id)
    except ConfigurationError as exc:
        raise _http_error(exc) from exc
    if record is None:
        return CustomerSearchResponse(found=False)
    return CustomerSearchResponse(found=True, customer=CustomerRecordRead.model_validate(record))


@router.get("/customers/{external_id}")
def get_customer(external_id: int, service: RegistrationSync = Depends(get_registration_sync)):
    try:
        return service.get_customer(external_id)
    except ERPError as exc:
        raise _http_error(exc) from exc


@router.put("/customers/{external_id}/financial", response_model=FinancialUpdateResponse)
def update_financial_data(
    external_id: int,
    payload: FinancialUpdateRequest,
    service: RegistrationSync = Depends(get_registration_sync),
):
    try:
        result = service.update_financial_data(
            external_id,
            payload.tax_id,
            payment_condition_id=payload.payment_condition_id,
            credit_limit=payload.credit_limit,
            carrier_code=payload.carrier_code,
            billing_method_code=payload.billing_method_code,
        )
    except ConfigurationError as exc:
        # Local data is already saved by the caller; only the ERP update is skipped
        return FinancialUpdateResponse(
            success=False,
            external_id=external_id,
            message=f"Saved locally, not synced with the ERP: {exc.message}",
        )
    if not result.success:
        try:
            result.raise_for_error()
        except ERPError as exc:
            raise _http_error(exc) from exc
    return FinancialUpdateResponse(success=True, external_id=external_id, data=result.data)
