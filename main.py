"""
main.py — Village Land Registry Entry Point
=============================================
This is the file you run to start the registry service.
It does 4 things in order:
    1. Creates the FastAPI app
    2. Connects the database
    3. Initializes the crypto engine (owner national IDs are encrypted at rest)
    4. Registers all API route modules

Run with:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000

Or simply:
    python main.py
"""

import logging
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config import settings

# ── Database ──────────────────────────────────────────────────────────────────
from db.session import init_db, close_db, engine

# ── Core systems ──────────────────────────────────────────────────────────────
from core.crypto import crypto_engine          # encryption / hashing engine
from core.errors import RegistryError

# ── API Routers (one per module) ──────────────────────────────────────────────
from api.routes_owners import router as owners_router
from api.routes_parcels import router as parcels_router
from api.routes_reports import router as reports_router


# ── Logging setup ─────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    handlers=[
        logging.StreamHandler(),                          # print to terminal
        logging.FileHandler(settings.LOG_FILE),           # also save to file
    ],
)
logger = logging.getLogger("landregistry.main")


# ── Lifespan: runs on startup and shutdown ────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Everything BEFORE yield → runs on startup.
    Everything AFTER yield  → runs on shutdown.
    """

    # ── STARTUP ──────────────────────────────────────────────────────────
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # 1. Initialize database — creates tables if they don't exist yet
    logger.info("Connecting to database...")
    await init_db()
    logger.info("✓ Database ready")

    # 2. Initialize encryption engine
    logger.info("Initializing crypto engine...")
    crypto_engine.initialize()
    logger.info("✓ Crypto engine ready")

    logger.info("=" * 50)
    logger.info(f"  {settings.APP_NAME} is LIVE on port {settings.PORT}")
    logger.info("=" * 50)

    yield   # ← App runs here (handles all requests)

    # ── SHUTDOWN ──────────────────────────────────────────────────────────
    logger.info("Shutting down — closing connections...")
    await close_db()
    logger.info("✓ Shutdown complete")


# ── Create the FastAPI app ────────────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Village land parcels, owners and ownership transfers",
    docs_url="/docs",          # Swagger UI at http://localhost:8000/docs
    redoc_url="/redoc",        # ReDoc UI at http://localhost:8000/redoc
    lifespan=lifespan,
)


# ── Middleware ─────────────────────────────────────────────────────────────────
# CORS — allows the registry frontend to talk to this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Exception handlers ────────────────────────────────────────────────────────
# Each failure kind keeps its own code so the frontend can show a distinct
# message and abort only the action in flight.
@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "retryable": exc.retryable,
            "details": exc.details,
            "path": str(request.url.path),
        },
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "path": str(request.url.path),
        },
    )


# ── Register all routers ──────────────────────────────────────────────────────
app.include_router(owners_router,  prefix="/owners",  tags=["Owners"])
app.include_router(parcels_router, prefix="/parcels", tags=["Land Registry"])
app.include_router(reports_router, prefix="/reports", tags=["Reports"])


# ── Root endpoint ─────────────────────────────────────────────────────────────
@app.get("/", tags=["Status"])
async def root():
    """Health check — confirms the API is running."""
    return {
        "system": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
    }


@app.get("/health-check", tags=["Status"])
async def health_check():
    """Deep health check — confirms the DB answers and crypto is ready."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"
    return {
        "api": "ok",
        "database": database,
        "crypto": crypto_engine.is_ready(),
    }


# ── Run directly ──────────────────────────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,    # auto-reload on file changes in dev mode
        log_level=settings.LOG_LEVEL.lower(),
    )
