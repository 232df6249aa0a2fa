from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.logging import configure_logging
from app.models import bank_transaction, business_settings, expense, quote, reconciliation_link  # noqa: F401
from app.routers.auth import router as auth_router
from app.routers.bank_transactions import router as bank_transactions_router
from app.routers.expenses import router as expenses_router
from app.routers.quotes import router as quotes_router
from app.routers.reconciliation import router as reconciliation_router
from app.routers.settings import router as settings_router
from app.routers.subscription import router as subscription_router
from app.routers.vat import router as vat_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Tradebooks API starting")
    yield


app = FastAPI(
    title="Tradebooks Operations API",
    lifespan=lifespan,
)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(auth_router)
app.include_router(settings_router)
app.include_router(subscription_router)
app.include_router(quotes_router)
app.include_router(expenses_router)
app.include_router(bank_transactions_router)
app.include_router(reconciliation_router)
app.include_router(vat_router)


@app.get("/")
def root():
    return {"status": "Tradebooks Operations API running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
