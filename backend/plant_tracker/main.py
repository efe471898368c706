import json
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from plant_tracker.config import get_settings
from plant_tracker.database import Base, engine
from plant_tracker.rate_limit import limiter
from plant_tracker.routers import backup_router, inaturalist_router, plants_router
from plant_tracker.services.inaturalist_client import INaturalistClient
from plant_tracker.services.reference_catalog import get_reference_catalog

settings = get_settings()
logger = logging.getLogger("plant_tracker.api")
logging.basicConfig(level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan for startup/shutdown events."""
    # Startup
    Base.metadata.create_all(bind=engine)
    get_reference_catalog()
    app.state.inat_client = INaturalistClient(settings)
    yield
    # Shutdown
    await app.state.inat_client.aclose()


app = FastAPI(
    title="Plant Tracker API",
    description="Property plant inventory with iNaturalist observation import",
    version="1.0.0",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = req_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        payload = {
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": duration_ms,
        }
        logger.info(json.dumps(payload))


app.include_router(plants_router)
app.include_router(backup_router)
app.include_router(inaturalist_router)

Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "Plant Tracker API",
        "version": "1.0.0",
        "docs": "/docs",
        "plants": "/plants",
        "backup": {
            "export": "/backup/export",
            "import": "/backup/import",
        },
        "inaturalist": {
            "preview": "/inaturalist/observations/preview",
            "import": "/inaturalist/observations/import",
        },
    }
