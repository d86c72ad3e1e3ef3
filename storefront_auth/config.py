import os
import re
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv

load_dotenv()


class AuthMode(str, Enum):
    OTP = "otp"
    BYPASS = "bypass"


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(raw_value: str) -> int:
    """Parse ``7d``, ``12h``, ``30m``, ``45s`` or plain seconds into seconds."""
    cleaned = raw_value.strip().lower()
    match = re.fullmatch(r"(\d+)\s*([smhd]?)", cleaned)
    if match is None:
        raise ValueError(f"Invalid duration: {raw_value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit or "s"]


def _build_database_url() -> str:
    raw_url = os.getenv("DATABASE_URL", "") or "sqlite:///./storefront_auth.db"
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


def _admin_phones() -> str:
    return ",".join(
        value
        for value in (os.getenv("ADMIN_PHONES", ""), os.getenv("ADMIN_PHONE", ""))
        if value.strip()
    )


def _auth_mode() -> str:
    raw_mode = os.getenv("AUTH_MODE", "").strip().lower()
    if raw_mode:
        return raw_mode
    return AuthMode.BYPASS.value if _env_bool("SKIP_AUTH") else AuthMode.OTP.value


@dataclass(frozen=True)
class Settings:
    app_env: str = os.getenv("APP_ENV", "development").strip().lower()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    database_url: str = _build_database_url()
    cors_origins: str = os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    )
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    token_ttl_seconds: int = parse_duration(os.getenv("JWT_EXPIRES", "7d"))
    otp_ttl_minutes: int = int(os.getenv("OTP_TTL_MINUTES", "10"))
    otp_max_per_hour: int = int(os.getenv("OTP_MAX_PER_HOUR", "5"))
    otp_max_attempts: int = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
    otp_debug: bool = _env_bool("OTP_DEBUG", False)
    sms_dry_run: bool = _env_bool("SMS_DRY_RUN", False)
    sms_timeout_seconds: float = float(os.getenv("SMS_TIMEOUT_SECONDS", "10"))
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_verify_service_sid: str = os.getenv("TWILIO_VERIFY_SERVICE_SID", "")
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "+971")
    admin_phones: str = _admin_phones()
    auth_mode: str = _auth_mode()
    dev_as_admin: bool = _env_bool("DEV_AS_ADMIN", True)

    @property
    def is_production(self) -> bool:
        return self.app_env in {"production", "prod"}

    @property
    def expose_debug_code(self) -> bool:
        return self.otp_debug and not self.is_production

    @property
    def twilio_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_verify_service_sid
        )

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def resolve_auth_mode(config: Settings) -> AuthMode:
    try:
        mode = AuthMode(config.auth_mode)
    except ValueError as exc:
        raise RuntimeError(f"Unsupported AUTH_MODE: {config.auth_mode!r}") from exc
    if mode is AuthMode.BYPASS and config.is_production:
        raise RuntimeError("AUTH_MODE=bypass is not allowed in production")
    return mode


settings = Settings()
