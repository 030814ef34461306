import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware

from app.api.router import api_router
from app.core.config import get_settings
from app.core.logging import setup_logging
from app.meal_plans.router import error_response, request_id_for
from app.schemas.meal_plan import flatten_errors

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger("app.http")

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)

app.add_middleware(GZipMiddleware, minimum_size=1024)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and logs method, path, status and duration."""

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        start = time.perf_counter()
        logger.info("[REQ] %s %s", request.method, request.url.path)
        response = await call_next(request)
        response.headers.setdefault("x-request-id", request.state.request_id)
        logger.info(
            "[RES] %s %s -> %s (%.0fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response


app.add_middleware(SecurityHeadersMiddleware)
# added last so it runs outermost and every handler sees the request id
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = flatten_errors(exc.errors())
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body", request_id_for(request), details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=404,
            content={"error": "Route not found", "path": request.url.path, "method": request.method},
        )
    return error_response(exc.status_code, str(exc.detail), request_id_for(request))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", request_id_for(request))


app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "status": "ok",
        "message": "Chapter Two API root. Try GET /api/health",
        "endpoints": {
            "docs": "/docs",
            "health": "/api/health",
            "plan": "/api/plan/analyze",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=4000, reload=True)
