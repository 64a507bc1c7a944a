"""
Byte Savings Backend
Entry point for the FastAPI application
"""

import uvicorn
from byte_savings.api import app
from byte_savings.utils.logging_config import get_logger
from byte_savings.config import get_settings

# Logging is configured when byte_savings.api is imported
settings = get_settings()

logger = get_logger(__name__)

if __name__ == "__main__":
    logger.info("Starting Byte Savings Backend")
    logger.info(
        f"Environment: {settings.env}, "
        f"Log level: {settings.log_level}, "
        f"Format: {'JSON' if settings.log_format_json else 'Human-readable'}"
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
