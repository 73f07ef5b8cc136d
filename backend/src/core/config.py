"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from datetime import time
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env at repository root
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _parse_clock(value: str) -> time:
    """Parse an "HH:MM" clock string from the environment."""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


# Configuration constants with defaults
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./clinic_allocation.db"
    )

DATABASE_URL = get_database_url()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Clinic clock. Business hours and duty schedules are expressed in clinic local time.
CLINIC_UTC_OFFSET_HOURS = int(os.getenv("CLINIC_UTC_OFFSET_HOURS", "-3"))
CLINIC_OPEN_TIME = _parse_clock(os.getenv("CLINIC_OPEN_TIME", "08:00"))
CLINIC_CLOSE_TIME = _parse_clock(os.getenv("CLINIC_CLOSE_TIME", "20:00"))
CLINIC_LATEST_END_TIME = _parse_clock(os.getenv("CLINIC_LATEST_END_TIME", "21:00"))

# Slot search
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "15"))
SMART_SEARCH_MAX_DAYS = int(os.getenv("SMART_SEARCH_MAX_DAYS", "3"))
SMART_SEARCH_MIN_SLOTS = int(os.getenv("SMART_SEARCH_MIN_SLOTS", "1"))
