"""assetsync API: synchronize S3 buckets with a local index of folders, files and image transforms."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assetsync.api.files import app_files
from assetsync.api.sources import app_sources
from assetsync.elastic.connection import close_elastic
from assetsync.objectstorage.s3bucket import CredentialsRejected
from assetsync.systemdata.manage import create_systemdata


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Initializing system data...")
    create_systemdata()

    yield
    close_elastic()


app = FastAPI(
    title="assetsync",
    description=__doc__ if __doc__ else "",
    openapi_tags=[
        dict(name="sources", description="Endpoints to list buckets and sources, and to index sources"),
        dict(name="files", description="Endpoints to upload, move, rename, and delete files and folders"),
    ],
    lifespan=lifespan,
)
app.include_router(app_sources)
app.include_router(app_files)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValueError)
async def value_error_exception_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc)},
    )


@app.exception_handler(CredentialsRejected)
async def credentials_rejected_exception_handler(request: Request, exc: CredentialsRejected):
    return JSONResponse(
        status_code=401,
        content={"message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=422, content={"message": "There was an issue with the data you sent.", "fields_invalid": exc.errors()}
    )
