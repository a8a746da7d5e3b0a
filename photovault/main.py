from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .errors import BatchIngestError, PipelineError, ValidationError
from .routers.api import router as api_router

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"message": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"message": "Missing or malformed parameters"})


@app.exception_handler(BatchIngestError)
async def batch_ingest_error_handler(request: Request, exc: BatchIngestError):
    for failure in exc.failures:
        logger.error("Upload failed for %s: %s", failure.filename, failure.error)
    return JSONResponse(status_code=500, content={"message": "Something went wrong"})


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.error("Error: %s", exc)
    return JSONResponse(status_code=500, content={"message": "Something went wrong"})


app.include_router(api_router)
