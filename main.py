"""
SINAR document service - FastAPI application entry point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from sinar.core.cache import close_cache
from sinar.core.config import settings
from sinar.core.exceptions import AppError, RangeNotSatisfiable
from sinar.db.database import AsyncSessionLocal, engine
from sinar.db.init_db import init_db
from sinar.integrations.storage_client import get_storage
from sinar.schemas.common import ErrorResponse
from sinar.api import admin_documents, auth, categories, dashboard, documents, reports, users
from sinar.utils.rate_limit import rate_limit

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db(engine, AsyncSessionLocal, get_storage())
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    await close_cache()
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Document distribution and reporting API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Range", "Accept-Ranges", "Content-Length"],
)


def error_response(code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=code, content=ErrorResponse(code=code, message=message).model_dump())


@app.exception_handler(RangeNotSatisfiable)
async def range_not_satisfiable_handler(request: Request, exc: RangeNotSatisfiable):
    headers = {"Content-Range": f"bytes */{exc.size}"} if exc.size is not None else {}
    return Response(status_code=exc.status_code, headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# Routers
api_dependencies = [Depends(rate_limit)]
app.include_router(auth.router, dependencies=api_dependencies)
app.include_router(documents.router, dependencies=api_dependencies)
app.include_router(admin_documents.router, dependencies=api_dependencies)
app.include_router(reports.router, dependencies=api_dependencies)
app.include_router(categories.router, dependencies=api_dependencies)
app.include_router(categories.admin_router, dependencies=api_dependencies)
app.include_router(users.router, dependencies=api_dependencies)
app.include_router(users.admin_router, dependencies=api_dependencies)
app.include_router(dashboard.router, dependencies=api_dependencies)


@app.get("/")
async def root():
    """Root"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "message": "SINAR document service is running",
    }


@app.get("/health")
async def health_check():
    """Health check"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
