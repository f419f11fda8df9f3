import logging
from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from fastapi.exceptions import RequestValidationError
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from wikift.api import users
from wikift.core.config import settings
from wikift.core.exceptions import (
    CustomHTTPException,
    http_exception_handler,
    store_exception_handler,
    validation_exception_handler
)
from wikift.db.database import init_db, async_engine


logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(f"User directory ready ({settings.ENVIRONMENT})")
    yield
    await async_engine.dispose()
    logger.info("User directory engine disposed")

app = FastAPI(
    title=settings.PROJECT_TITLE,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.PROJECT_VERSION,
    lifespan=lifespan
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "The user directory hit an unexpected error. Please try again later."}
    )

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(CustomHTTPException, http_exception_handler)
app.add_exception_handler(SQLAlchemyError, store_exception_handler)

# API Routers
api_router = APIRouter(prefix=settings.API_PREFIX)
api_router.include_router(users.router, tags=["Users"])
app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
