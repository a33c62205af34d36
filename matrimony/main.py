from pathlib import Path as _Path
# Load .env ASAP to ensure settings see env vars before any imports cache them
try:
    from dotenv import load_dotenv as _load_dotenv  # type: ignore
    _load_dotenv(dotenv_path=_Path(__file__).resolve().parent.parent / ".env", override=False)
except ImportError:
    pass

import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .config import get_settings
from .db import close_mongo_connection, connect_to_mongo, is_connected
from .errors import MatrimonyError
from .routers import admin, auth, connections, profiles, wallet

LOGGER = logging.getLogger("uvicorn.error")

app = FastAPI(title="Matrimony API", default_response_class=ORJSONResponse)
settings = get_settings()

# Build CORS origins list from env (supports CSV)
_origins_env = os.getenv("CORS_ORIGINS") or settings.cors_origin
_allow_origins = [o.strip() for o in _origins_env.split(",") if o.strip()]
LOGGER.info("CORS allow_origins=%s", _allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# Simple slow-request logger
@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    t0 = time.time()
    response = await call_next(request)
    dt = (time.time() - t0) * 1000
    slow_ms = int(os.getenv("SLOW_REQUEST_MS", "800"))
    if dt >= slow_ms:
        LOGGER.warning(
            "slow request %s %s %sms status=%s",
            request.method,
            request.url.path,
            int(dt),
            response.status_code,
        )
    return response


@app.exception_handler(MatrimonyError)
async def matrimony_error_handler(request: Request, exc: MatrimonyError):
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.on_event("startup")
async def startup():
    await connect_to_mongo()


@app.on_event("shutdown")
async def shutdown():
    await close_mongo_connection()


# Routers
app.include_router(auth.router, prefix="/api")
app.include_router(profiles.router, prefix="/api")
app.include_router(connections.router, prefix="/api")
app.include_router(wallet.router, prefix="/api")
app.include_router(admin.router, prefix="/api")


@app.get("/")
async def root():
    return {"status": "matrimony-api-ok"}


@app.get("/api/health/db")
async def db_health():
    return {
        "mongo": "connected" if is_connected() else "disconnected",
        "db": str(get_settings().mongo_db),
    }
