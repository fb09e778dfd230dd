from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _json(name: str) -> dict:
    value = _env(name)
    if not value:
        return {}
    return json.loads(value)


def _bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str) -> tuple[str, ...]:
    value = _env(name, "") or ""
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    postgres_dsn: str
    db_auto_create: bool
    log_level: str
    cors_origins: tuple[str, ...]
    cookie_secure: bool
    trust_proxy_headers: bool
    jwt_issuer: str
    jwt_key_id: str
    jwt_private_key: str
    jwt_private_key_path: str
    jwt_access_ttl_minutes: int
    jwt_refresh_ttl_days: int
    jwt_rotation_interval_hours: float
    captcha_secret: str
    captcha_verify_url: str
    captcha_min_score: float
    captcha_timeout_seconds: float
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_sender: str
    smtp_use_tls: bool
    smtp_timeout_seconds: float
    login_code_ttl_seconds: int
    recovery_code_ttl_seconds: int
    code_length: int
    code_max_attempts: int
    webauthn_rp_id: str
    webauthn_rp_name: str
    webauthn_origins: tuple[str, ...]
    webauthn_ceremony_ttl_seconds: int
    federation_providers: dict
    federation_success_url: str
    federation_state_ttl_seconds: int
    federation_timeout_seconds: float
    state_purge_interval_seconds: float


def get_settings() -> Settings:
    return Settings(
        postgres_dsn=_env("POSTGRES_DSN", ""),
        db_auto_create=_bool("DB_AUTO_CREATE", False),
        log_level=_env("LOG_LEVEL", "INFO"),
        cors_origins=_csv("CORS_ORIGINS"),
        cookie_secure=_bool("COOKIE_SECURE", True),
        trust_proxy_headers=_bool("TRUST_PROXY_HEADERS", False),
        jwt_issuer=_env("JWT_ISSUER", "sso"),
        jwt_key_id=_env("JWT_KEY_ID", ""),
        jwt_private_key=_env("JWT_PRIVATE_KEY", ""),
        jwt_private_key_path=_env("JWT_PRIVATE_KEY_PATH", ""),
        jwt_access_ttl_minutes=int(_env("JWT_ACCESS_TTL_MINUTES", "30")),
        jwt_refresh_ttl_days=int(_env("JWT_REFRESH_TTL_DAYS", "7")),
        jwt_rotation_interval_hours=float(_env("JWT_ROTATION_INTERVAL_HOURS", "0")),
        captcha_secret=_env("CAPTCHA_SECRET", ""),
        captcha_verify_url=_env(
            "CAPTCHA_VERIFY_URL", "https://www.google.com/recaptcha/api/siteverify"
        ),
        captcha_min_score=float(_env("CAPTCHA_MIN_SCORE", "0.5")),
        captcha_timeout_seconds=float(_env("CAPTCHA_TIMEOUT_SECONDS", "10")),
        smtp_host=_env("SMTP_HOST", ""),
        smtp_port=int(_env("SMTP_PORT", "587")),
        smtp_user=_env("SMTP_USER", ""),
        smtp_password=_env("SMTP_PASSWORD", ""),
        smtp_sender=_env("SMTP_SENDER", ""),
        smtp_use_tls=_bool("SMTP_USE_TLS", True),
        smtp_timeout_seconds=float(_env("SMTP_TIMEOUT_SECONDS", "10")),
        login_code_ttl_seconds=int(_env("LOGIN_CODE_TTL_SECONDS", "300")),
        recovery_code_ttl_seconds=int(_env("RECOVERY_CODE_TTL_SECONDS", "900")),
        code_length=int(_env("CODE_LENGTH", "6")),
        code_max_attempts=int(_env("CODE_MAX_ATTEMPTS", "5")),
        webauthn_rp_id=_env("WEBAUTHN_RP_ID", "localhost"),
        webauthn_rp_name=_env("WEBAUTHN_RP_NAME", "SSO"),
        webauthn_origins=_csv("WEBAUTHN_ORIGINS") or ("https://localhost",),
        webauthn_ceremony_ttl_seconds=int(_env("WEBAUTHN_CEREMONY_TTL_SECONDS", "300")),
        federation_providers=_json("FEDERATION_PROVIDERS"),
        federation_success_url=_env("FEDERATION_SUCCESS_URL", "/"),
        federation_state_ttl_seconds=int(_env("FEDERATION_STATE_TTL_SECONDS", "600")),
        federation_timeout_seconds=float(_env("FEDERATION_TIMEOUT_SECONDS", "10")),
        state_purge_interval_seconds=float(_env("STATE_PURGE_INTERVAL_SECONDS", "300")),
    )
