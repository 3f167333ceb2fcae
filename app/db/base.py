# app/db/base.py
import asyncio
import logging
import os
from typing import Optional

import asyncpg

from app.core.config import settings, BASE_DIR

logger = logging.getLogger(__name__)

# Read through the module (db_base.db_pool), never imported by value
db_pool: Optional[asyncpg.Pool] = None

SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")
CONNECT_RETRIES = 5
RETRY_DELAY_SECONDS = 5


def _check_ssl_config() -> None:
    """Fail fast on an SSL mode that can never connect."""
    if settings.DB_SSL_MODE not in SSL_MODES:
        logger.critical(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")
        raise ValueError(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")

    if settings.DB_SSL_MODE in ("verify-ca", "verify-full"):
        if not settings.DB_CA_CERT_FILE:
            logger.critical("DB_SSL_MODE requires verification but DB_CA_CERT_FILE is not set.")
            raise RuntimeError("Database CA certificate file not configured for required SSL mode.")
        ca_cert_path = os.path.join(BASE_DIR, "certs", settings.DB_CA_CERT_FILE)
        if not os.path.exists(ca_cert_path):
            logger.critical(f"Database CA certificate file not found at: {ca_cert_path}")
            raise FileNotFoundError(f"Database CA certificate file not found: {ca_cert_path}")
        logger.info(f"Using database CA certificate {ca_cert_path} (sslmode={settings.DB_SSL_MODE})")


async def init_db_pool():
    """Create the asyncpg pool, retrying while the database comes up."""
    global db_pool
    if db_pool:
        logger.warning("Database pool already initialized.")
        return

    logger.info("Initializing asyncpg database pool...")
    _check_ssl_config()

    retries = CONNECT_RETRIES
    while True:
        try:
            # The DSN carries sslmode / sslrootcert; never log it (password)
            db_pool = await asyncpg.create_pool(
                dsn=settings.DATABASE_URL,
                min_size=2,
                max_size=20,
                command_timeout=60,
            )
            async with db_pool.acquire() as conn:
                await conn.execute("SELECT 1")
            logger.info("Asyncpg database pool initialized and connection tested (min: 2, max: 20).")
            return
        except (OSError, asyncpg.PostgresError) as e:
            retries -= 1
            db_pool = None
            if retries == 0:
                logger.critical("Database pool initialization failed after multiple retries.", exc_info=True)
                raise RuntimeError("Failed to connect to database after multiple retries.") from e
            logger.warning(
                f"Database pool initialization failed ({type(e).__name__}: {e}), "
                f"retrying in {RETRY_DELAY_SECONDS}s ({retries} left)..."
            )
            await asyncio.sleep(RETRY_DELAY_SECONDS)


async def close_db_pool():
    """Closes the asyncpg connection pool gracefully."""
    global db_pool
    pool_to_close = db_pool
    if not pool_to_close:
        logger.warning("Attempted to close DB pool, but it was not initialized (db_pool is None).")
        return

    logger.info("Closing asyncpg database pool...")
    try:
        await pool_to_close.close()
        logger.info("Asyncpg database pool closed gracefully.")
    except Exception as e:
        logger.error(f"Error while closing the database pool: {e}", exc_info=True)
    finally:
        db_pool = None
