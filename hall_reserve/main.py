import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from hall_reserve.config import settings
from hall_reserve.database import SessionLocal, check_db_connection
from hall_reserve.services.hall_service import hall_service
from hall_reserve.utils.exceptions import AppException
from hall_reserve.middleware.error_handler import (
    app_exception_handler,
    validation_exception_handler,
    integrity_error_handler,
    persistence_error_handler,
    generic_exception_handler,
)

from hall_reserve.api.v1 import auth
from hall_reserve.api.v1 import halls
from hall_reserve.api.v1 import bookings
from hall_reserve.api.v1 import booking_actions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def seed_halls() -> None:
    db = SessionLocal()
    try:
        hall_service.seed_defaults(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Hall seeding skipped: {e}")
    finally:
        db.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=VERSION,
        description="Hall reservation requests with a three-stage approval workflow",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ─── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Exception Handlers ───────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, persistence_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ─── Routers ──────────────────────────────────────────────────────────────
    PREFIX = "/api/v1"
    app.include_router(auth.router,            prefix=PREFIX, tags=["Auth"])
    app.include_router(halls.router,           prefix=PREFIX, tags=["Halls"])
    app.include_router(bookings.router,        prefix=PREFIX, tags=["Bookings"])
    app.include_router(booking_actions.router, prefix=PREFIX, tags=["Booking Actions"])

    # ─── Startup ──────────────────────────────────────────────────────────────
    @app.on_event("startup")
    def on_startup():
        ok = check_db_connection()
        logger.info("✅ DB connected" if ok else "❌ DB connection FAILED")
        if ok:
            seed_halls()

    # ─── Health ───────────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok", "app": settings.APP_NAME, "version": VERSION}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("hall_reserve.main:app", host=settings.APP_HOST, port=settings.APP_PORT,
                reload=settings.is_development)
