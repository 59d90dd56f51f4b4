import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from herbario.config import settings
from herbario.routers import (
    admin_router, archivos_router, clasificaciones_router, estadisticas_router,
    muestras_router, paquetes_router, taxonomia_router,
)
from herbario.services.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("herbario")

# Rate limiter: one default budget per client address
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan for startup/shutdown events."""
    # Startup
    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()


app = FastAPI(
    title="Herbario API",
    description="Herbarium laboratory API: classifications, package tracking and collection statistics",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Set basic security headers for all API responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} - {elapsed_ms:.0f}ms")
    return response


app.include_router(clasificaciones_router)
app.include_router(muestras_router)
app.include_router(archivos_router)
app.include_router(estadisticas_router)
app.include_router(taxonomia_router)
app.include_router(paquetes_router)
app.include_router(admin_router)


@app.get("/health")
def health_check():
    return {"status": "OK", "service": "herbario", "environment": settings.environment}


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "Herbario API",
        "version": "1.0.0",
        "docs": "/docs",
        "statistics": {
            "general": "/estadisticas",
            "taxonomy": "/estadisticas/taxonomia?ubicacion=&tipo=&nivel=",
        },
        "packages": {
            "detail": "/paquetes/{id}",
            "recompute": "/paquetes/{id}/estado/recalcular",
        },
    }
