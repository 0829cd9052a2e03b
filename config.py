"""
Configuration settings for the additive scraping engine.
This file contains all configurable parameters and settings.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

def get_env_bool(key: str, default: bool = False) -> bool:
    """Convert environment variable to boolean."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on')

def get_env_int(key: str, default: int) -> int:
    """Convert environment variable to integer."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default

def get_env_float(key: str, default: float) -> float:
    """Convert environment variable to float."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default

# Environment Configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = get_env_bool("DEBUG", ENVIRONMENT == "development")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")

# Extraction pipeline
PIPELINE_TIMEOUT_SECONDS = get_env_float("PIPELINE_TIMEOUT_SECONDS", 30.0)
PIPELINE_PARALLEL = get_env_bool("PIPELINE_PARALLEL", True)
CONTENT_MAX_TEXT_LENGTH = get_env_int("CONTENT_MAX_TEXT_LENGTH", 50000)

# Collector lifecycle
LIFECYCLE_MAX_IDLE_SECONDS = get_env_float("LIFECYCLE_MAX_IDLE_SECONDS", 300.0)
LIFECYCLE_MAX_USE_COUNT = get_env_int("LIFECYCLE_MAX_USE_COUNT", 100)
LIFECYCLE_MAX_ERRORS = get_env_int("LIFECYCLE_MAX_ERRORS", 5)
LIFECYCLE_HEALTH_CHECK_INTERVAL = get_env_float("LIFECYCLE_HEALTH_CHECK_INTERVAL", 60.0)

# Collectors
COLLECTOR_TIMEOUT_SECONDS = get_env_float("COLLECTOR_TIMEOUT_SECONDS", 120.0)
COLLECTOR_PAGE_TIMEOUT_SECONDS = get_env_float("COLLECTOR_PAGE_TIMEOUT_SECONDS", 30.0)
COLLECTOR_MAX_RETRIES = get_env_int("COLLECTOR_MAX_RETRIES", 3)
COLLECTOR_MAX_CONCURRENCY = get_env_int("COLLECTOR_MAX_CONCURRENCY", 5)
COLLECTOR_USER_AGENT = os.getenv(
    "COLLECTOR_USER_AGENT",
    "Mozilla/5.0 (compatible; AdditiveScrape/1.0; +https://example.com/bot)"
)
BROWSER_HEADLESS = get_env_bool("BROWSER_HEADLESS", True)
SCREENSHOT_DIR = os.getenv("SCREENSHOT_DIR", os.path.join(os.getcwd(), "screenshots"))

# Suggestions
SUGGESTION_MAX_TARGET_URLS = get_env_int("SUGGESTION_MAX_TARGET_URLS", 10)
SUGGESTION_LOW_COMPLETENESS = get_env_int("SUGGESTION_LOW_COMPLETENESS", 50)
