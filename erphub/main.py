import os

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import settings
from .db import Base, engine
from .errors import InvalidInputError, NotFoundError, ConflictError
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.ai import router as ai_router
from .routes.leave import router as leave_router
from .routes.invoices import router as invoices_router
from .routes.proposals import router as proposals_router
from .routes.performance import router as performance_router
from .routes.financial import router as financial_router
from .routes.attendance import router as attendance_router
from .routes.staff import router as staff_router
from .routes.deliveries import router as deliveries_router
from .routes.projects import router as projects_router
from .routes.products import router as products_router
from .routes.clients import router as clients_router
from .routes.messages import router as messages_router
from .routes.notifications import router as notifications_router
from .routes.audit_logs import router as audit_logs_router
from .routes.email import router as email_router

logger = structlog.get_logger(__name__)


def _error_handler(status_code: int):
    async def _handle(request: Request, exc: Exception):
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return _handle


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Domain errors
    app.add_exception_handler(InvalidInputError, _error_handler(400))
    app.add_exception_handler(NotFoundError, _error_handler(404))
    app.add_exception_handler(ConflictError, _error_handler(409))

    # Routers
    app.include_router(auth_router)
    app.include_router(ai_router)
    app.include_router(leave_router)
    app.include_router(invoices_router)
    app.include_router(proposals_router)
    app.include_router(performance_router)
    app.include_router(financial_router)
    app.include_router(attendance_router)
    app.include_router(staff_router)
    app.include_router(deliveries_router)
    app.include_router(projects_router)
    app.include_router(products_router)
    app.include_router(clients_router)
    app.include_router(messages_router)
    app.include_router(notifications_router)
    app.include_router(audit_logs_router)
    app.include_router(email_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
        logger.info("startup_complete", environment=settings.environment)

    return app


app = create_app()
