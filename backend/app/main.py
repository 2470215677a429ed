from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.endpoints.operations import error_response
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import DocumentStore
from app.core.exceptions import DirectoryError, ValidationError
from app.core.result_cache import create_result_cache
from app.services.employee_service import EmployeeService

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    store = DocumentStore(settings)
    cache = create_result_cache(settings)
    application.state.employee_service = EmployeeService(store, cache, settings)

    if not store.configured:
        logger.warning("Cosmos DB credentials missing — DocumentStore not connected")
    else:
        try:
            await store.connect()
        except Exception:
            logger.exception("Failed to connect DocumentStore — retrying on first request")
    yield
    await cache.close()
    await store.close()


app = FastAPI(
    title="Employee Directory API",
    description="Employee directory queries and mutations",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    content = error_response(exc).model_dump(exclude_none=True)
    return JSONResponse(status_code=exc.status_code, content={"data": None, **content})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = {".".join(str(p) for p in err["loc"][1:]) or "body": err["msg"] for err in exc.errors()}
    return await directory_error_handler(request, ValidationError(fields))


@app.get("/")
async def root():
    return {"message": "Employee Directory API"}
