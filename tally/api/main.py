"""
tally.api.main — FastAPI application entry point
==================================================

Thin HTTP boundary over the services.  Domain errors are translated to
status codes in one place (:func:`handle_tally_error`); routes never build
error responses themselves.

Run with::

    uvicorn tally.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

load_dotenv()

from tally import __version__  # noqa: E402
from tally.api.deps import get_config, get_engine  # noqa: E402
from tally.api.routes.actions import punishments_router, rewards_router  # noqa: E402
from tally.api.routes.assignments import router as assignments_router  # noqa: E402
from tally.api.routes.persons import router as persons_router  # noqa: E402
from tally.api.routes.scores import router as scores_router  # noqa: E402
from tally.database.engine import init_db  # noqa: E402
from tally.errors import TallyError, ValidationError  # noqa: E402

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("tally")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine and verify tables."""
    engine = get_engine()
    init_db(engine)
    logger.info("%s API started — engine ready (%s)", get_config().app_name, engine.url.database)
    yield
    logger.info("Tally API shutting down")


app = FastAPI(
    title="Tally API",
    version=__version__,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(TallyError)
async def handle_tally_error(request: Request, exc: TallyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    err = ValidationError(
        f"Invalid request: {location}: {first.get('msg', 'malformed input')}",
        {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]},
    )
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


# Mount routers
app.include_router(persons_router, prefix="/api")
app.include_router(rewards_router, prefix="/api")
app.include_router(punishments_router, prefix="/api")
app.include_router(assignments_router, prefix="/api")
app.include_router(scores_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
