import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from brickbook.api.customers import router as customers_router
from brickbook.api.sales import router as sales_router
from brickbook.config import configure_logging
from brickbook.db.engine import get_engine
from brickbook.db.schema import metadata
from brickbook.errors import LedgerError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    metadata.create_all(get_engine())
    logger.info("BrickBook ledger API ready")
    yield


app = FastAPI(
    title="BrickBook Ledger API",
    version="0.1.0",
    lifespan=lifespan,
)


def _error_details(exc: RequestValidationError):
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation Error",
            "message": "Invalid request body",
            "details": _error_details(exc),
        },
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(customers_router)
app.include_router(sales_router)
