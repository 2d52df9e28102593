import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from wallet_topup import config
from wallet_topup.admin import router as admin_router
from wallet_topup.database import Base, engine
from wallet_topup.errors import PaymentError
from wallet_topup.events import OrderEventBus
from wallet_topup.routes import router

logging.basicConfig(
    level=config.log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wallet Top-up Payment Service")
app.state.events = OrderEventBus()

app.include_router(router)
app.include_router(admin_router)

Base.metadata.create_all(bind=engine)


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    content = {"detail": exc.message}
    provider_status = getattr(exc, "provider_status", None)
    if provider_status is not None:
        content["provider_status"] = provider_status
    return JSONResponse(status_code=exc.status_code, content=content)
