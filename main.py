import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from core.errors import InternalError, RoutineServiceError, field_errors
from services import db

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
_LOG = logging.getLogger("routines")


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.create_tables:
        await db.create_all()
    _LOG.info("routine service up (env=%s)", settings.env_name)
    yield
    await db.dispose()


app = FastAPI(title="Routine API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


# ───────── error → JSON body ─────────────────────────────────────────
@app.exception_handler(RoutineServiceError)
async def _service_error(_: Request, exc: RoutineServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body())


@app.exception_handler(RequestValidationError)
async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"errors": field_errors(exc.errors())})


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    _LOG.exception("unhandled error on %s %s", request.method, request.url.path)
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content=err.body())


@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {
        "status": "ok",
        "message": "Service is running",
        "env": settings.env_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
