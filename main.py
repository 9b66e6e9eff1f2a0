import pytz
import uvicorn
import logfire

from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from contextlib import asynccontextmanager

from middleware.body_limit import BodySizeLimitMiddleware
from middleware.origin import OriginAllowListMiddleware
from middleware.rate_limiting import RateLimitMiddleware
from middleware.security_headers import SecurityHeadersMiddleware

from routers import emails, gmail

from schema.common import HealthResponse

from services.scheduler import get_send_scheduler

from utils.logger import configure_logging, instrument_libraries
from utils.settings import get_settings


settings = get_settings()

# Configure logfire BEFORE creating FastAPI app
configure_logging(settings.logfire_token)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logfire.info("Starting MailCraft dispatch service...")

    yield

    logfire.info("Shutting down MailCraft dispatch service...")
    await get_send_scheduler().shutdown()
    logfire.info("Application shutdown complete")


app = FastAPI(
    title="MailCraft Dispatch API",
    description="Drafts emails with a hosted language model and sends them through Gmail, immediately or on a schedule.",
    lifespan=lifespan,
)

if settings.logfire_token:
    instrument_libraries(app)
    logfire.info("FastAPI application instrumented with logfire")

# Last added runs first: proxy headers, security headers, origin check, CORS, rate limit, body size, gzip
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(OriginAllowListMiddleware, allowed_origins=settings.allowed_origins)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["127.0.0.1"])

app.include_router(emails.router)
app.include_router(gmail.router)


@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health():
    return HealthResponse(status="OK", timestamp=datetime.now(pytz.utc).isoformat())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(status_code=exc.status_code, content={"error": "Endpoint not found"})

    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body') or 'body'}: {error['msg']}"
        for error in exc.errors()
    )
    logfire.warning(f"Invalid request body for {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": details},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logfire.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
