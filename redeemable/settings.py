import os

from dotenv import load_dotenv

# Load .env file with explicit UTF-8 encoding
load_dotenv(encoding="utf-8")


def _env_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except Exception:
        return default


DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./redeemable.db"

DEFAULT_CODE_LENGTH = min(32, max(1, _env_int(os.getenv("REDEEMABLE_DEFAULT_CODE_LENGTH"), 6)))

# upper bound on generate/check rounds before giving up on a unique code
MAX_CODE_ATTEMPTS = max(1, _env_int(os.getenv("REDEEMABLE_MAX_CODE_ATTEMPTS"), 1000))
