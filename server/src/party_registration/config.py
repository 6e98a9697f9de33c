"""Configuration loader for the party registration service"""

import os
from pathlib import Path

from dotenv import load_dotenv

server_dir = Path(__file__).parent.parent.parent
env_path = server_dir / ".env"

# Load .env file if it exists. For local development only.
if env_path.exists():
    load_dotenv(env_path)


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# Configuration dictionary - set once at initialization
config = {
    "port": int(os.getenv("PORT", "5000")),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "data_file": os.getenv("DATA_FILE", str(server_dir / "data" / "users.json")),
    "cors_origins": _csv(os.getenv("CORS_ORIGINS", "*")),
    # Payment amount formula: base + kids * per_kid
    "base_amount": os.getenv("BASE_AMOUNT", "100.00"),
    "per_kid_amount": os.getenv("PER_KID_AMOUNT", "25.00"),
    "payment_link": os.getenv("PAYMENT_LINK", "https://cash.app/$hgspringfield/100"),
    "payment_dwell_seconds": float(os.getenv("PAYMENT_DWELL_SECONDS", "5")),
    "overview_poll_seconds": float(os.getenv("OVERVIEW_POLL_SECONDS", "30")),
    "api_base_url": os.getenv("API_BASE_URL", "http://localhost:5000"),
    "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
    "session_ttl_seconds": int(os.getenv("SESSION_TTL_SECONDS", "1800")),
    "environment": os.getenv("ENVIRONMENT", "development"),
}
