"""CodeQuest onboarding service - FastAPI entrypoint.

Run with: uvicorn onboarding.main:app
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onboarding.api import auth, students
from onboarding.config import settings
from onboarding.db import init_services
from onboarding.errors import PartialActivation, ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = init_services(settings)
    app.state.services = services
    if settings.reconcile_on_startup:
        try:
            await services.engine.reconcile_partial_activations()
        except ServiceError as e:
            logger.error("Startup reconciliation failed: %s", e.message)
    yield
    await services.store.close()


app = FastAPI(
    title=settings.app_name,
    description="Student registration and first-login activation for the CodeQuest game client",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    if isinstance(exc, PartialActivation):
        logger.critical("Partial activation surfaced on %s: %s", request.url.path, exc.message)
    elif exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(students.router, prefix="/api/students", tags=["Students"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
