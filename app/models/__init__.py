from app.models.registration import (  # noqa: F401
    ActivityBranch,
    BillingMethod,
    CarrierCode,
    ClientRegistration,
    Company,
    CompanyAddress,
    CompanyContact,
    PriceList,
    RegistrationStatus,
    Seller,
)
