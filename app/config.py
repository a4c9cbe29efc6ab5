import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./license_auth.db")
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
    )
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "86400"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "60"))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    email_backend: str = os.getenv("EMAIL_BACKEND", "console").strip().lower()
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    smtp_timeout_seconds: int = int(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))
    otp_email_sender: str = (
        os.getenv("OTP_EMAIL_SENDER")
        or os.getenv("FROM_EMAIL")
        or os.getenv("SMTP_USER", "")
    )
    product_name: str = os.getenv("PRODUCT_NAME", "DEXX-TER")
    otp_email_subject: str = os.getenv(
        "OTP_EMAIL_SUBJECT", "Admin Login - OTP Verification"
    )
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "license_session")
    cookie_secure: bool = _env_bool("COOKIE_SECURE", False)
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    seed_admin_username: str = os.getenv("SEED_ADMIN_USERNAME", "").strip()
    seed_admin_password: str = os.getenv("SEED_ADMIN_PASSWORD", "")
    seed_admin_email: str = os.getenv("SEED_ADMIN_EMAIL", "").strip().lower()
    seed_reseller_username: str = os.getenv("SEED_RESELLER_USERNAME", "").strip()
    seed_reseller_password: str = os.getenv("SEED_RESELLER_PASSWORD", "")


settings = Settings()
