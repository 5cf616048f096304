import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from kitchen_ops.config import settings
from kitchen_ops.core.errors import ServiceError, service_error_handler
from kitchen_ops.modules.auth import routes as auth_routes
from kitchen_ops.modules.profiles import routes as profiles_routes
from kitchen_ops.modules.kitchens import routes as kitchens_routes
from kitchen_ops.modules.projects import routes as projects_routes
from kitchen_ops.modules.tasks import routes as tasks_routes
from kitchen_ops.modules.files import routes as files_routes
from kitchen_ops.modules.audit import routes as audit_routes
from kitchen_ops.modules.reminders import routes as reminders_routes
from kitchen_ops.modules.whatsapp import routes as whatsapp_routes
from kitchen_ops.modules.assistants import routes as assistants_routes
from kitchen_ops.modules.reports import routes as reports_routes
from kitchen_ops.modules.whatsapp.evolution_client import close_shared_client

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
# httpx logs every gateway request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ServiceError, service_error_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(kitchens_routes.router, prefix="/api/v1")
app.include_router(projects_routes.router, prefix="/api/v1")
app.include_router(tasks_routes.router, prefix="/api/v1")
app.include_router(files_routes.router, prefix="/api/v1")
app.include_router(audit_routes.router, prefix="/api/v1")
app.include_router(reminders_routes.router, prefix="/api/v1")
app.include_router(whatsapp_routes.router, prefix="/api/v1")
app.include_router(assistants_routes.router, prefix="/api/v1")
app.include_router(reports_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")

    if settings.reminder_scheduler_enabled:
        from kitchen_ops.modules.reminders.scheduler import reminder_scheduler_loop
        app.state.reminder_task = asyncio.create_task(reminder_scheduler_loop())
        logger.info(
            f"Reminder scheduler started - will dispatch due reminders every "
            f"{settings.reminder_scheduler_interval_seconds} seconds"
        )


@app.on_event("shutdown")
async def shutdown_event():
    reminder_task = getattr(app.state, "reminder_task", None)
    if reminder_task:
        reminder_task.cancel()
    close_shared_client()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to kitchen-ops-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: extend here with Supabase/Evolution checks if needed."""
    return {"status": "ready"}
