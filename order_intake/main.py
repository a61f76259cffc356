import logging
import time
from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from order_intake.core.config import settings

# 1. Infrastructure & Domain Imports
from order_intake.domain import models  # noqa: F401  registers the tables on Base
from order_intake.domain.errors import OrderRejected, StoreError
from order_intake.infrastructure.database import engine, Base
from order_intake.infrastructure.rate_limiter import RateLimiter
from order_intake.infrastructure.repositories.catalog_repository import PostgresCatalogRepository
from order_intake.infrastructure.repositories.coupon_repository import PostgresCouponRepository
from order_intake.infrastructure.repositories.order_repository import PostgresOrderRepository
from order_intake.infrastructure.turnstile_service import TurnstileVerifier
from order_intake.application.order_intake import OrderIntakeService
from order_intake.application.order_lookup import OrderLookupService
from order_intake.interfaces import orders_api

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] [order-intake] %(name)s: %(message)s",
)
logger = logging.getLogger("order-intake")

app = FastAPI(title=settings.PROJECT_NAME)

# ---------------------------------------------------------
# DATABASE CONNECTION (With Retry Logic)
# ---------------------------------------------------------
MAX_RETRIES = 10
WAIT_SECONDS = 3

for attempt in range(MAX_RETRIES):
    try:
        logger.info(f"🔄 Attempting DB connection ({attempt + 1}/{MAX_RETRIES})...")
        Base.metadata.create_all(bind=engine)
        logger.info("✅ DB Connected and Tables Created.")
        break
    except OperationalError:
        logger.warning(f"⚠️ DB not ready yet. Waiting {WAIT_SECONDS}s...")
        time.sleep(WAIT_SECONDS)
else:
    logger.error("❌ Could not connect to DB after retries.")

# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
order_repo = PostgresOrderRepository()
app.state.order_service = OrderIntakeService(
    catalog_repo=PostgresCatalogRepository(),
    coupon_repo=PostgresCouponRepository(),
    order_repo=order_repo,
)
app.state.lookup_service = OrderLookupService(
    order_repo=order_repo,
    rate_limiter=RateLimiter(settings.REDIS_URL),
    verifier=TurnstileVerifier(settings.TURNSTILE_SECRET_KEY),
)

# Include Routers
app.include_router(orders_api.router)


# ---------------------------------------------------------
# ERROR MAPPING: every failure leaves as {"error": "..."}
# ---------------------------------------------------------
@app.exception_handler(OrderRejected)
async def order_rejected_handler(request: Request, exc: OrderRejected):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.reason})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"❌ {request.url.path}: {exc} ({exc.__cause__})")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/")
def health_check():
    return {"status": "active", "system": "Order Intake Service"}
