import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    env: str
    database_url: str
    jwt_secret: str
    jwt_issuer: str
    jwt_ttl_seconds: int

    listen_host: str = "0.0.0.0"
    listen_port: int = 5000
    # Applied to the connection socket, so it bounds both reads and writes.
    request_timeout: float = 15.0


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


def load_settings() -> Settings:
    return Settings(
        env=_getenv("RUN_ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///peerreview.db"),
        jwt_secret=_getenv("JWT_SECRET"),
        jwt_issuer=_getenv("JWT_ISSUER", "test"),
        jwt_ttl_seconds=_getenv_int("JWT_TTL_SECONDS", 15000),
    )


def current_jwt_secret() -> str:
    """Signing secret as currently set in the environment (read on every call)."""
    return _getenv("JWT_SECRET")


def current_jwt_issuer() -> str:
    return _getenv("JWT_ISSUER", "test")


def is_production_env(env: str) -> bool:
    return (env or "").strip().lower() in ("prod", "production")


def is_production(settings: Settings) -> bool:
    return is_production_env(settings.env)


def check_production_settings(settings: Settings) -> None:
    """Fail fast with a clear message when production config is unsafe."""
    if not is_production(settings):
        return
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if settings.database_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET must be set in production.")
