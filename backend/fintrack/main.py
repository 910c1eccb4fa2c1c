# backend/fintrack/main.py
import json
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.fintrack.api import auth, budgets, categories, transactions
from backend.fintrack.config import get_settings
from backend.fintrack.db import init_db
from backend.fintrack.exceptions import (
    AuthenticationError,
    BusinessRuleError,
    FinTrackError,
    ValidationFailedError,
)
from backend.fintrack.logging_config import configure_logging, get_logger

SENSITIVE_FIELDS = {"password", "password_confirmation", "current_password"}

settings = get_settings()
configure_logging(settings)
logger = get_logger("fintrack.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("database_initialized")
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------- Request logging ----------------

async def _loggable_payload(request: Request):
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return "<non-json body>"
    if isinstance(payload, dict):
        payload = {k: v for k, v in payload.items() if k not in SENSITIVE_FIELDS}
    return payload


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    started = time.perf_counter()
    request_id = f"req_{uuid4().hex}"
    request.state.request_id = request_id

    context = {
        "request_id": request_id,
        "method": request.method,
        "url": str(request.url),
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
    if request.method != "GET":
        payload = await _loggable_payload(request)
        if payload:
            context["payload"] = payload
    logger.info("api_request", **context)

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("api_request_failed", request_id=request_id, path=request.url.path)
        raise

    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    status = response.status_code
    result = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": status,
        "duration_ms": duration_ms,
        "user_id": getattr(request.state, "user_id", None),
    }
    if duration_ms > settings.slow_request_ms:
        logger.warning("slow_api_request", **result)

    if status >= 500:
        logger.error("api_response", **result)
    elif status >= 400:
        logger.warning("api_response", **result)
    else:
        logger.info("api_response", **result)

    response.headers["X-Request-ID"] = request_id
    return response


# ---------------- Error handling ----------------

@app.exception_handler(FinTrackError)
async def fintrack_error_handler(request: Request, exc: FinTrackError):
    event = {
        "error_code": exc.error_code,
        "status_code": exc.status_code,
        "path": request.url.path,
        "user_id": getattr(request.state, "user_id", None),
        **exc.context,
    }
    if isinstance(exc, (ValidationFailedError, BusinessRuleError)):
        logger.info("request_rejected", message=exc.message, **event)
    elif isinstance(exc, AuthenticationError):
        logger.warning("authentication_failed", **event)
    else:
        logger.warning("request_denied", message=exc.message, **event)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=exc.headers())


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "payload"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        message = error.get("msg", "Invalid value.")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(_field_name(error.get("loc", ())), []).append(message)
    return await fintrack_error_handler(request, ValidationFailedError(errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_code = "RESOURCE_NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return JSONResponse(
        {"message": str(exc.detail), "error_code": error_code, "status": exc.status_code},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
        exc_info=exc,
    )
    return JSONResponse(
        {"message": "Server Error", "error_code": "SERVER_ERROR", "status": 500},
        status_code=500,
    )


# ---------------- Routes ----------------

@app.get("/")
def root():
    return {"message": "FinTrack API is running"}


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth.router, tags=["auth"])
app.include_router(categories.router, prefix="/categories", tags=["categories"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(budgets.router, prefix="/budgets", tags=["budgets"])
