# luxemoon/app.py
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional
import asyncpg
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from .api import admin_router, coupons_router, orders_router
from .database.database import Database
from .errors import LuxeMoonError
from .services.coupon_service import CouponService
from .services.customer_service import CustomerService
from .services.notification_service import NotificationService
from .services.order_service import OrderService
from .services.settings_service import SettingsService, SiteConfigCache

logger = logging.getLogger(__name__)

@dataclass
class Services:
    """Everything the routes need, wired once per process"""
    db: Any
    settings: SettingsService
    config_cache: SiteConfigCache
    notifications: NotificationService
    customers: CustomerService
    coupons: CouponService
    orders: OrderService

    @classmethod
    def build(cls, db) -> "Services":
        settings = SettingsService(db)
        config_cache = SiteConfigCache(settings)
        notifications = NotificationService(db, config_cache)
        customers = CustomerService(db)
        coupons = CouponService(db)
        orders = OrderService(
            db, config_cache, notifications,
            customer_service=customers,
            coupon_service=coupons
        )
        return cls(db, settings, config_cache, notifications, customers, coupons, orders)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_services = app.state.services is None
    if owns_services:
        db = Database()
        await db.connect()
        app.state.services = Services.build(db)
    logger.info("Order engine started")

    yield

    services = app.state.services
    await services.notifications.drain()
    if owns_services:
        await services.db.close()
        app.state.services = None
    logger.info("Order engine stopped")


def _is_admin_path(request: Request) -> bool:
    return request.url.path.startswith("/api/admin")


def _error_response(request: Request, message: str, status_code: int, **extra) -> JSONResponse:
    if _is_admin_path(request):
        body = {"success": False, "error": message}
    else:
        body = {"error": message}
    body.update(extra)
    return JSONResponse(body, status_code=status_code)


async def luxemoon_error_handler(request: Request, exc: LuxeMoonError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return _error_response(request, str(exc), exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(request, "Invalid data", 400, details=jsonable_encoder(exc.errors()))


async def database_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    message = "Database error" if _is_admin_path(request) else "Order creation failed"
    return _error_response(request, message, 500)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the API; pass ``services`` to skip connecting to the database"""
    app = FastAPI(title="Luxe Moon order engine", lifespan=lifespan)
    app.state.services = services

    app.add_exception_handler(LuxeMoonError, luxemoon_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(asyncpg.PostgresError, database_error_handler)
    app.add_exception_handler(asyncpg.InterfaceError, database_error_handler)
    app.add_exception_handler(OSError, database_error_handler)

    app.include_router(orders_router)
    app.include_router(coupons_router)
    app.include_router(admin_router)

    @app.get("/api/health")
    async def health(request: Request):
        db = request.app.state.services.db
        if db is not None and not await db.ping():
            return JSONResponse({"status": "degraded", "database": False}, status_code=503)
        return {"status": "ok"}

    return app
