from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.booking.api.routers import (
    auth_router, admin_auth_router, plans_router, admin_plans_router,
    user_router, sessions_router, countries_router, admin_router,
)
from src.booking.core.settings import settings
from src.booking.domain.errors import SchedulingError, BatchRejected, NotFound, Conflict
from src.booking.infra.mq import start_broker, stop_broker

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Определение жизненного цикла
@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_broker()
    yield
    await stop_broker()

app = FastAPI(
    title="Session Booking API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    violations = exc.violations if isinstance(exc, BatchRejected) else [exc]
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {
            "code": exc.code,
            "message": exc.message,
            "violations": [v.to_dict() for v in violations],
        }},
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(Conflict)
async def conflict_handler(request: Request, exc: Conflict):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(PermissionError)
async def forbidden_handler(request: Request, exc: PermissionError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


app.include_router(auth_router)
app.include_router(admin_auth_router)
app.include_router(plans_router)
app.include_router(admin_plans_router)
app.include_router(user_router)
app.include_router(sessions_router)
app.include_router(countries_router)
app.include_router(admin_router)

@app.get("/health")
def health():
    return {"status": "ok"}
