from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import engine, Base
from shared.errors import DomainError, domain_error_handler
from shared.observability import setup_observability
from shared.security.rate_limiter import limiter

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models
from services.product_service import models as product_models
from services.cart_service import models as cart_models
from services.order_service import models as order_models

from services.auth_service.router import router as auth_router
from services.product_service.router import public_router as catalog_public_router
from services.product_service.router import router as catalog_router
from services.cart_service.router import router as cart_router
from services.order_service.router import guest_router, router as orders_router
from services.order_service.admin_router import router as admin_orders_router
from services.payment_service.router import router as payments_router
from services.notification_service.queue import get_notifier

app = FastAPI(title="Marketplace", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "marketplace")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(DomainError, domain_error_handler)

app.include_router(auth_router)
app.include_router(catalog_public_router)
app.include_router(catalog_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(guest_router)
app.include_router(admin_orders_router)
app.include_router(payments_router)


@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "marketplace", "status": "running"}


@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await get_notifier().start()


@app.on_event("shutdown")
async def shutdown_event():
    # Deliver whatever is still queued before the process exits
    await get_notifier().stop()
    await engine.dispose()
