import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.admin import router as admin_router
from app.api.contact import router as contact_router
from app.core.config import MODE_LAB, MODE_SECURE, Settings, get_settings
from app.services.contact.contracts import PipelineResult
from app.utils.log_sink import install_log_sink, log_sink_from_settings
from app.utils.rate_limit import get_client_ip, rate_limiter

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"


def _security_headers() -> dict:
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-site",
    }


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        installed = None
        sink = log_sink_from_settings(settings)
        if sink is not None:
            installed = install_log_sink(sink)
            logger.info("Remote log sink enabled")
        try:
            yield
        finally:
            if installed is not None:
                installed.uninstall()

    app = FastAPI(
        title="Contact Relay API",
        version="1.0.0",
        docs_url="/docs" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.openapi_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    if settings.mode == MODE_SECURE:
        logger.info("Running in SECURE mode")
    elif settings.mode == MODE_LAB:
        logger.warning("Running in LAB mode: open CORS, no rate limit, no security headers")
    else:
        logger.warning("Running in UNKNOWN mode %r; applying SECURE defaults", settings.mode)

    app.include_router(contact_router, prefix="/api", tags=["contact"])
    app.include_router(admin_router, prefix="/api", tags=["admin"])

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Hide internal details for 5xx unless explicitly enabled.
        if exc.status_code >= 500 and not settings.expose_error_details:
            return JSONResponse(status_code=exc.status_code, content={"detail": GENERIC_ERROR})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        message = str(exc) if settings.expose_error_details else GENERIC_ERROR
        result = PipelineResult(success=False, email_sent=False, error="INTERNAL_ERROR", message=message)
        return JSONResponse(status_code=500, content=result.to_response())

    @app.middleware("http")
    async def contact_rate_limit_middleware(request: Request, call_next):
        if not settings.is_secure_mode or request.method != "POST":
            return await call_next(request)
        if not request.url.path.startswith("/api/"):
            return await call_next(request)

        ip = get_client_ip(request, settings.trusted_proxy_cidrs) or "unknown"
        key = f"contact:ip:{ip}"
        allowed, _ = rate_limiter.allow(
            key,
            settings.rate_limit_contact_max,
            settings.rate_limit_contact_window_seconds,
        )
        if not allowed:
            logger.warning("Rate limit exceeded: ip=%s path=%s", ip, request.url.path)
            result = PipelineResult(
                success=False,
                email_sent=False,
                error="RATE_LIMITED",
                message="Too many requests, please try again later",
            )
            return JSONResponse(status_code=429, content=result.to_response())

        return await call_next(request)

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        if not (settings.is_secure_mode and settings.security_headers_enabled):
            return response

        for name, value in _security_headers().items():
            if name not in response.headers:
                response.headers[name] = value
        return response

    # CORS must stay the outermost middleware.
    if settings.is_secure_mode:
        if settings.cors_allow_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=settings.cors_allow_origins,
                allow_credentials=False,
                allow_methods=settings.cors_allow_methods,
                allow_headers=settings.cors_allow_headers,
            )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/healthz", response_class=PlainTextResponse)
    async def health_check():
        return "OK"

    return app


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()
