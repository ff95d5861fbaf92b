import os
from dataclasses import dataclass
from typing import Any

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


def _env(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name) or default)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    # API tokens; an empty secret means "sign with SECRET_KEY"
    jwt_secret: str
    jwt_expires_days: int

    # empty: the panel calls the API in-process instead of over HTTP
    api_base_url: str
    api_timeout_seconds: int

    storage_backend: str
    local_storage_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    @property
    def is_production(self) -> bool:
        return self.env in ("prod", "production")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            secret_key=_env("SECRET_KEY", "change-me"),
            env=_env("ENV", "development").lower(),
            database_url=_env("DATABASE_URL", "sqlite:///bizadmin.db"),
            jwt_secret=_env("JWT_SECRET"),
            jwt_expires_days=_env_int("JWT_EXPIRES_DAYS", 7),
            api_base_url=_env("API_BASE_URL"),
            api_timeout_seconds=_env_int("API_TIMEOUT_SECONDS", 30),
            storage_backend=_env("STORAGE_BACKEND", "local").lower(),
            local_storage_root=_env("LOCAL_STORAGE_ROOT"),
            s3_endpoint=_env("S3_ENDPOINT"),
            s3_region=_env("S3_REGION", "nyc3"),
            s3_bucket=_env("S3_BUCKET"),
            s3_access_key_id=_env("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY"),
        )

    def flask_config(self) -> dict[str, Any]:
        cfg: dict[str, Any] = {
            "SECRET_KEY": self.secret_key,
            "ENV": self.env,
            "DATABASE_URL": self.database_url,
            "JWT_SECRET": self.jwt_secret or self.secret_key,
            "JWT_EXPIRES_DAYS": self.jwt_expires_days,
            "API_BASE_URL": self.api_base_url,
            "API_TIMEOUT_SECONDS": self.api_timeout_seconds,
            "STORAGE_BACKEND": self.storage_backend,
            "S3_ENDPOINT": self.s3_endpoint,
            "S3_REGION": self.s3_region,
            "S3_BUCKET": self.s3_bucket,
            "S3_ACCESS_KEY_ID": self.s3_access_key_id,
            "S3_SECRET_ACCESS_KEY": self.s3_secret_access_key,
            "SESSION_COOKIE_HTTPONLY": True,
            "SESSION_COOKIE_SAMESITE": "Lax",
            "SESSION_COOKIE_SECURE": self.is_production,
            "CSRF_ENABLED": self.env != "test",
            "MAX_CONTENT_LENGTH": MAX_UPLOAD_BYTES,
        }
        if self.local_storage_root:
            cfg["LOCAL_STORAGE_ROOT"] = self.local_storage_root
        return cfg


def load_config() -> dict[str, Any]:
    return Settings.from_env().flask_config()
