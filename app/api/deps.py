from collections.abc import Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.services.erp.sync import RegistrationSync


def get_registration_sync(db: Session = Depends(get_db)) -> Iterator[RegistrationSync]:
    """Request-scoped ERP sync service; override in tests to inject a fake ERP."""
    service = RegistrationSync(db)
    try:
        yield service
    finally:
        service.close()


__all__ = ["get_db", "get_registration_sync"]
