from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

import logging
import time

from config import LOCK_TIMEOUT_SECONDS, LOG_LEVEL, TEMPLATES_DIR
from db import Base, SessionLocal, engine
from dependencies import get_db
from errors import (
    ConflictError,
    InternalInconsistencyError,
    LedgerImmutableError,
    LendingTimeoutError,
    NotFoundError,
)
from lending import LendingCoordinator
from routers import ALL_ROUTERS
from unit_of_work import UnitOfWork

import orm  # noqa: F401  registers the tables on Base

app = FastAPI(title="Equipment Lending API")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
app.state.templates = templates

Base.metadata.create_all(bind=engine)

app.state.coordinator = LendingCoordinator(UnitOfWork(SessionLocal, lock_timeout=LOCK_TIMEOUT_SECONDS))

# -----------------------
# Logging
# -----------------------
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("app")

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info(
        "method=%s path=%s status=%s elapsed_ms=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response

# -----------------------
# Errors
# -----------------------
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.reason})

@app.exception_handler(LendingTimeoutError)
async def timeout_handler(request: Request, exc: LendingTimeoutError):
    return JSONResponse(
        status_code=503,
        headers={"Retry-After": "1"},
        content={"detail": str(exc), "asset_id": exc.asset_id, "retryable": exc.retryable},
    )

@app.exception_handler(InternalInconsistencyError)
@app.exception_handler(LedgerImmutableError)
async def integrity_handler(request: Request, exc: Exception):
    logger.error("method=%s path=%s integrity failure: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "internal error"})

for router in ALL_ROUTERS:
    app.include_router(router)

@app.get("/")
def root():
    return {"message": "Equipment Lending API", "docs": "/docs", "ui": "/ui/assets"}
