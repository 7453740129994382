from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from clinicflow.api import router as api_router, get_service
from clinicflow.config import CLINIC_NAME
import logging
import os

logging.basicConfig(
    level=os.getenv("CLINICFLOW_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("clinicflow")

app = FastAPI(
    title=f"{CLINIC_NAME} Scheduler",
    version="0.1.0"
)

# CORS: the front desk UI is served from a separate origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CLINICFLOW_CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/ping")
def ping():
    return {"status": "ok"}


@app.on_event("startup")
def startup_event():
    svc = get_service()
    logger.info(
        f"{CLINIC_NAME} scheduler started (patients={len(svc.patients)}, films={svc.ledger.film_count})"
    )
    if svc.ledger.is_low_stock:
        logger.warning(f"X-ray film stock is low: {svc.ledger.film_count} remaining")


@app.on_event("shutdown")
def shutdown_event():
    logger.info(f"{CLINIC_NAME} scheduler stopped")


# ======================
# API ROUTES
# ======================
app.include_router(api_router, prefix="/api")


def main():
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("CLINICFLOW_HOST", "127.0.0.1"),
        port=int(os.getenv("CLINICFLOW_PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()
