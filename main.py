# main.py
import logging

import psycopg
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from streamsphere.config import CORS_ORIGINS, SEED_ON_STARTUP
from streamsphere.database import db_manager, startup_database, shutdown_database
from streamsphere.errors import StoreFailure, ValidationError
from streamsphere.logging_config import configure_logging
from streamsphere.routers import auth, videos

configure_logging()
logger = logging.getLogger("streamsphere")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await startup_database()
    if SEED_ON_STARTUP:
        from streamsphere.seed import seed_database
        async with db_manager.get_connection() as conn:
            await seed_database(conn)
    yield

    await shutdown_database()

app = FastAPI(
    title="StreamSphere API",
    description="Video sharing platform: browse, rate and comment on videos",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        # drop the "body"/"query"/"path" prefix FastAPI puts in front of the field name
        loc = [str(part) for part in error.get("loc", ())[1:]]
        name = ".".join(loc) or str(error.get("loc", ("body",))[0])
        if name not in fields:
            fields.append(name)
    message = "; ".join(error.get("msg", "") for error in exc.errors()) or ValidationError.default_detail
    return await http_exception_handler(request, ValidationError(message, fields=fields))


@app.exception_handler(psycopg.Error)
async def store_failure_handler(request: Request, exc: psycopg.Error):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return await http_exception_handler(request, StoreFailure())


# Include routers
app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(videos.router, prefix="/api/videos", tags=["Videos"])


@app.get("/health")
async def root():
    return {"message": "Welcome to the StreamSphere API"}

# You can run this file using: uvicorn main:app --reload
if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
