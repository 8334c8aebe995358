from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
import logging
from typing import Callable

from app.core.config import settings
from app.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

read_rate_limiter = RateLimiter(
    window_size=settings.RATE_LIMIT_WINDOW_SECONDS,
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
)
write_rate_limiter = RateLimiter(
    window_size=settings.RATE_LIMIT_WINDOW_SECONDS,
    max_requests=settings.WRITE_RATE_LIMIT_MAX_REQUESTS,
)


async def rate_limit_middleware(request: Request, call_next: Callable) -> Response:
    """
    Middleware to apply rate limiting; writes get the stricter limiter
    """
    if not settings.RATE_LIMIT_ENABLED or not request.url.path.startswith(settings.API_V1_PREFIX):
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    if request.method in WRITE_METHODS:
        limiter = write_rate_limiter
        key = f"write:{client_ip}"
    else:
        limiter = read_rate_limiter
        key = f"read:{client_ip}"

    is_limited, retry_after = limiter.is_rate_limited(key)
    if is_limited:
        logger.warning(f"Rate limited {request.method} from {client_ip} to {request.url.path}")
        return JSONResponse(
            content={
                "status": "error",
                "error_code": "rate_limit_exceeded",
                "message": "Too many requests, please try again later"
            },
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(retry_after)}
        )

    return await call_next(request)


def setup_middleware(app: FastAPI) -> None:
    """
    Setup all middleware for the application
    """
    app.middleware("http")(rate_limit_middleware)
