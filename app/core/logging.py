# app/core/logging.py
import logging
from app.core.config import settings # Import settings to use ENVIRONMENT

# Level based on environment: verbose while developing or testing, INFO elsewhere
if settings.ENVIRONMENT in ("development", "test"):
    log_level = logging.DEBUG
else:
    log_level = logging.INFO

# Check if handlers already exist to avoid re-configuring in environments that might reload
if not logging.root.handlers:
    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# asyncpg and httpx are chatty at DEBUG
logging.getLogger("httpx").setLevel(max(log_level, logging.INFO))
logging.getLogger("asyncpg").setLevel(max(log_level, logging.INFO))

logger = logging.getLogger(__name__)
logger.debug("Core logging configured.")


def get_logger(name: str):
    """Helper to get a logger instance for a specific module."""
    return logging.getLogger(name)
