from fastapi import FastAPI

from app.api.erp_sync import router as erp_sync_router
from app.logging import configure_logging

configure_logging()

app = FastAPI(title="Cadastros ERP Sync")

app.include_router(erp_sync_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
