# backend/booking_engine/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from .config import settings
from .database import init_db
from .errors import BookingEngineError
from .redis_client import redis_client
from .routers.bookings import router as bookings_router
from .routers.payments import router as payments_router
from .routers.providers import router as providers_router
from .routers.schedule_overrides import router as schedule_overrides_router
from .routers.schedules import router as schedules_router
from .routers.slots import router as slots_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Stripe client logs every request at INFO
logging.getLogger("stripe").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Booking engine starting up...")
    init_db()
    logger.info(
        f"Database ready, timezone={settings.business_timezone}, "
        f"locks={'redis' if redis_client is not None else 'in-process'}"
    )
    yield
    logger.info("Booking engine shutting down...")


app = FastAPI(title="Booking Engine API", lifespan=lifespan)


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400, naming the offending fields."""
    fields = []
    problems = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
        problems.append({"field": name, "message": error.get("msg", "")})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": f"Invalid or missing field(s): {', '.join(fields)}",
            "code": "ValidationError",
            "details": {"invalid": fields, "errors": problems},
        },
    )


app.include_router(slots_router)
app.include_router(bookings_router)
app.include_router(payments_router)
app.include_router(providers_router)
app.include_router(schedules_router)
app.include_router(schedule_overrides_router)


@app.get("/health")
def health():
    if redis_client is None:
        return {"status": "ok", "redis": None}
    try:
        return {"status": "ok", "redis": redis_client.ping()}
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return {"status": "degraded", "redis": False}
