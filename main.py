# main.py
import os
from contextlib import asynccontextmanager

import firebase_admin
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from firebase_admin import credentials
from sentry_sdk.integrations.asyncpg import AsyncPGIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from app.core.config import settings, BASE_DIR
# Configure logging before the routers (and their module loggers) are imported
import app.core.logging

logger = app.core.logging.get_logger(__name__)

from app.core.rate_limit import limiter
from app.db.base import close_db_pool, init_db_pool
from app.api import handlers
from app.api.endpoints import categories as categories_router
from app.api.endpoints import collaborators as collab_router
from app.api.endpoints import invites as invites_router


def init_sentry() -> None:
    """Error reporting is off in development and whenever no DSN is configured."""
    if not settings.SENTRY_DSN or settings.ENVIRONMENT == "development":
        logger.warning("Sentry DSN not set or ENVIRONMENT is development, Sentry integration disabled.")
        return
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            traces_sample_rate=0.2,
            profiles_sample_rate=0.1,
            environment=settings.ENVIRONMENT,
            integrations=[StarletteIntegration(), FastApiIntegration(), AsyncPGIntegration()],
            # user ids and invite e-mails stay out of Sentry
            send_default_pii=False,
        )
        logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)


def init_firebase() -> None:
    """The identity provider verifies session ID tokens; tests use raw uids instead."""
    if settings.ENVIRONMENT == "test":
        logger.warning("Skipping Firebase Admin SDK initialization in 'test' environment.")
        return
    if firebase_admin._apps:
        logger.info("Firebase Admin SDK already initialized.")
        return

    cred_path = os.path.join(BASE_DIR, settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH)
    if not os.path.exists(cred_path):
        logger.critical(f"Firebase service account key not found at: {cred_path}")
        raise FileNotFoundError(f"Service account key not found: {cred_path}")
    try:
        firebase_admin.initialize_app(credentials.Certificate(cred_path))
    except Exception as e:
        logger.critical(f"Failed to initialize Firebase Admin SDK from {cred_path}: {e}", exc_info=True)
        raise RuntimeError("Could not initialize Firebase Admin SDK.") from e
    logger.info("Firebase Admin SDK initialized.")


logger.info(f"Starting collaboration API in {settings.ENVIRONMENT} mode...")
init_sentry()
init_firebase()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Opens the asyncpg pool on startup and closes it on shutdown."""
    # Tests swap the store for an in-memory one; no pool is needed.
    if settings.ENVIRONMENT == "test":
        logger.warning("Test environment detected. Skipping lifespan DB pool management.")
        yield
        return

    try:
        await init_db_pool()
    except Exception as e:
        logger.critical(f"CRITICAL: Database pool initialization failed: {e}", exc_info=True)
        raise
    logger.info("Application startup complete.")
    yield
    await close_db_pool()
    logger.info("Application shutdown complete.")


app = FastAPI(
    title="Planner Collaboration API",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
handlers.register(app)

# The join page and the dashboard call the API with the session cookie
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info(f"CORS enabled for origins: {settings.BACKEND_CORS_ORIGINS}")

# The fixed paths (/collaborators, /invite, /join, /transfer-admin) must be
# registered before /categories/{category_id} or they would be captured by it.
CATEGORIES_PREFIX = f"{settings.API_V1_STR}/categories"
app.include_router(collab_router.router, prefix=CATEGORIES_PREFIX)
app.include_router(invites_router.router, prefix=CATEGORIES_PREFIX)
app.include_router(categories_router.router, prefix=CATEGORIES_PREFIX)


@app.get("/", include_in_schema=False)
async def read_root():
    return {"message": f"Welcome to the {app.title}!", "environment": settings.ENVIRONMENT}

# Run with: uvicorn main:app --reload --host 0.0.0.0 --port 8000
