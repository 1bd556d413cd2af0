# equiprent/main.py
import os
import logging
from contextlib import asynccontextmanager

import psycopg
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import pool
from .errors import AuthzError
from .logging_config import setup_logging
from .routes import router

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    pool.open()
    try:
        yield
    finally:
        pool.close()

app = FastAPI(title="equiprent-api", lifespan=lifespan)

# ---------- CORS ----------
# Read allowed origins from env; for dev: http://localhost:3000
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
origins = [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# ---------- Errors ----------
# Denials get a generic body; the reason is only ever in the server log.

@app.exception_handler(AuthzError)
def authz_error_handler(request: Request, exc: AuthzError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_detail})

@app.exception_handler(psycopg.Error)
def db_error_handler(request: Request, exc: psycopg.Error):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

app.include_router(router)
