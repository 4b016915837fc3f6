"""
Environment-driven settings for the insights service.

Values are read once at import, after .env is loaded.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


DISMISSAL_STORAGE_KEY = "portfolio-insights-dismissed"

DISMISSAL_STORE_BACKEND = (os.getenv("DISMISSAL_STORE_BACKEND") or "file").strip().lower()  # file|db
DISMISSAL_STORE_PATH = os.getenv("DISMISSAL_STORE_PATH", ".data/insights_dismissed.json")

# server-side default when a request does not say whether live prices are on
LIVE_PRICES_ENABLED = _env_flag("LIVE_PRICES_ENABLED")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portfolio_insights.db")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]
