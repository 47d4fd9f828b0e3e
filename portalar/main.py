from contextlib import asynccontextmanager
from datetime import datetime, timezone
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import structlog
import uvicorn

from portalar.api import analytics, auth, content, perplexity
from portalar.api.errors import register_exception_handlers
from portalar.core.config import Settings
from portalar.core.context import AppContext
from portalar.middleware.rate_limit import rate_limit_middleware

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events"""
    context: AppContext = app.state.context
    await context.startup()
    logger.info(
        "application_startup",
        app_name=context.settings.app_name,
        environment=context.settings.environment,
        database=context.storage.backend,
        perplexity=context.summarizer.status().message
    )
    yield
    await context.shutdown()
    logger.info("application_shutdown")


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build the API; settings come from the environment when not given"""
    if context is None:
        context = AppContext.from_settings(settings or Settings())
    settings = context.settings

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan
    )
    app.state.context = context

    # Middleware for logging requests
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )

        return response

    app.middleware("http")(rate_limit_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app, settings)

    # Include routers
    app.include_router(content.router)
    app.include_router(analytics.router)
    app.include_router(auth.router)
    app.include_router(perplexity.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "database": context.storage.backend,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/")
    @app.get("/api")
    async def root():
        """Root endpoint"""
        return {
            "message": settings.app_name,
            "endpoints": {
                "health": "/health",
                "content": "/api/content/:markerId",
                "analytics": "/api/analytics",
                "auth": "/api/auth/login",
                "perplexity": "/api/perplexity/summary",
                "docs": "/docs"
            }
        }

    return app


def run() -> None:
    """Console entry point: serve with uvicorn"""
    uvicorn.run("portalar.main:create_app", factory=True, host="0.0.0.0", port=8000)
