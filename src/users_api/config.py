import logging
import os
from typing import List


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the service environment or the container .env."
        )
    return value


# PUBLIC_INTERFACE
def database_dsn() -> str:
    """
    Build DSN from the standardized database env vars.

    Uses:
      - POSTGRES_URL (optional full DSN; if provided, it wins)
      - POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_PORT
      - POSTGRES_HOST (defaults to localhost)
    """
    url = os.getenv("POSTGRES_URL")
    if url:
        return url

    user = _required_env("POSTGRES_USER")
    password = _required_env("POSTGRES_PASSWORD")
    db = _required_env("POSTGRES_DB")
    port = _required_env("POSTGRES_PORT")
    host = os.getenv("POSTGRES_HOST", "localhost")
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


def pool_min_size() -> int:
    return int(os.getenv("DB_POOL_MIN", "1"))


def pool_max_size() -> int:
    # getconn does not wait: requests beyond this many in flight get a 500.
    return int(os.getenv("DB_POOL_MAX", "10"))


def jwt_secret() -> str:
    # Required for security; do not default.
    return _required_env("JWT_SECRET")


def jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def jwt_exp_minutes() -> int:
    return int(os.getenv("JWT_EXPIRES_MINUTES", "60"))  # default: 1 hour


def bcrypt_rounds() -> int:
    return int(os.getenv("BCRYPT_ROUNDS", "10"))


def cors_allow_origins() -> List[str]:
    env_val = os.getenv("CORS_ALLOW_ORIGINS")
    if not env_val:
        return ["*"]
    return [o.strip() for o in env_val.split(",") if o.strip()]


# PUBLIC_INTERFACE
def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL (default INFO)."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
