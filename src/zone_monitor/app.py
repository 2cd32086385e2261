from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from .config import get_settings
from .jobs.refresh import get_refresh_controller, reset_refresh_controller
from .logging_config import configure_production_logging
from .routers import control, health, monitor, stream

settings = get_settings()

configure_production_logging(log_level=settings.log_level, enable_file_logging=settings.log_to_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    controller = get_refresh_controller()
    controller.start()
    yield
    await controller.stop()
    reset_refresh_controller()


app = FastAPI(title="Zone Monitor", description="Trade zone monitoring dashboard API", lifespan=lifespan)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# Security headers go on before CORS
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(monitor.router, prefix="/monitor", tags=["monitor"])
app.include_router(control.router)
app.include_router(stream.router, prefix="/stream", tags=["stream"])


if settings.metrics_enabled:
    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
