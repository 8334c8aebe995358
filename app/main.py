from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from app.api.routes.api import api_router
from app.core.config import settings
from app.core.exceptions import BudgetEngineError
from app.core.middleware import setup_middleware
import json
import time
from starlette.responses import Response
from logging.handlers import RotatingFileHandler

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

SENSITIVE_KEYS = ['password', 'token', 'secret', 'authorization', 'api_key', 'cookie']
MAX_LOGGED_BODY = 1000


def redact_sensitive_data(data):
    if isinstance(data, dict):
        return {
            k: '[REDACTED]' if k.lower() in SENSITIVE_KEYS else redact_sensitive_data(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive_data(item) for item in data]
    else:
        return data


def body_for_log(raw: bytes, content_type: str) -> str:
    if not raw:
        return "N/A"
    try:
        if "application/json" in content_type:
            text = json.dumps(redact_sensitive_data(json.loads(raw)))
        else:
            text = raw.decode('utf-8')
    except (ValueError, UnicodeDecodeError):
        return "Could not parse body"
    if len(text) > MAX_LOGGED_BODY:
        text = text[:MAX_LOGGED_BODY] + '... (truncated)'
    return text


# --- Logging Setup ---
def setup_logging():
    logger = logging.getLogger("api_logger")
    logger.setLevel(settings.LOG_LEVEL)
    if settings.LOG_FILE and not logger.handlers:
        handler = RotatingFileHandler(settings.LOG_FILE, maxBytes=100000, backupCount=5)
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger

logger = setup_logging()


# Create app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Monthly budget planning and expense logging API",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    servers=[
        {"url": settings.SERVER_HOST or "/", "description": "Default server"}
    ],
    openapi_tags=[
        {"name": "budgets", "description": "Monthly budget planning operations"},
        {"name": "expenses", "description": "Expense logging and reporting operations"},
    ],
)


@app.middleware("http")
async def robust_logging_middleware(request: Request, call_next):
    start_time = time.time()

    # Starlette caches the body, so reading it here leaves it available downstream
    request_body_raw = await request.body()
    logger.info(
        f"--> {request.method} {request.url.path} | "
        f"Headers: {json.dumps(redact_sensitive_data(dict(request.headers)))} | "
        f"Body: {body_for_log(request_body_raw, request.headers.get('content-type', ''))}"
    )

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000

    # Consume the response body to log it
    response_body_raw = b""
    async for chunk in response.body_iterator:
        response_body_raw += chunk

    logger.info(
        f"<-- {response.status_code} ({process_time:.2f}ms) | "
        f"Body: {body_for_log(response_body_raw, response.headers.get('content-type', ''))}"
    )

    # Return a new response with the consumed body, so the client gets it
    return Response(
        content=response_body_raw,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type
    )


@app.exception_handler(BudgetEngineError)
async def budget_engine_exception_handler(request: Request, exc: BudgetEngineError):
    logger.warning(
        f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Custom exception handler for FastAPI's HTTPException
@app.exception_handler(FastAPIHTTPException)
async def http_exception_handler(request: Request, exc: FastAPIHTTPException):
    logger.error(
        f"HTTPException encountered: Status Code: {exc.status_code}, Detail: {exc.detail}, Request URL: {request.url}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.detail,
        headers=exc.headers
    )


# Generic exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    # Full traceback goes to the log only
    logger.exception(
        f"Unhandled exception for request: {request.url}. Details: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "error_code": "server_error",
            "message": "An unexpected server error occurred.",
            "details": None
        }
    )

# Set up CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)

# Set up rate limiting middleware
setup_middleware(app)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    return JSONResponse(content={"status": "ok"})


@app.get("/", tags=["root"])
async def root():
    return JSONResponse(
        content={
            "message": "Welcome to the Budget API! See /docs for the API documentation."
        }
    )


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting application")
    uvicorn.run("app.main:app", host="0.0.0.0", port=8080, reload=True)
