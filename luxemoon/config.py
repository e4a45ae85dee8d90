# luxemoon/config.py
import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import List

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration settings for the storefront order engine"""

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("No DATABASE_URL set in environment")

    DB_POOL_MIN_SIZE: int = int(os.getenv("DB_POOL_MIN_SIZE", "2"))
    DB_POOL_MAX_SIZE: int = int(os.getenv("DB_POOL_MAX_SIZE", "10"))

    # Admin settings
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "")

    # Telegram alerts for new orders
    TELEGRAM_TOKEN: str = os.getenv("TELEGRAM_TOKEN", "")
    ADMIN_CHAT_IDS: List[int] = [
        int(id_) for id_ in os.getenv("ADMIN_CHAT_IDS", "").split(",")
        if id_.strip().lstrip("-").isdigit()
    ]

    # Email (Resend) settings
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    RESEND_API_URL: str = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    ORDER_EMAIL_FROM: str = os.getenv("ORDER_EMAIL_FROM", "Luxe Moon Orders <orders@luxemoon.com.np>")
    ADMIN_NOTIFY_EMAIL: str = os.getenv("ADMIN_NOTIFY_EMAIL", "admin@luxemoon.com.np")

    # SMS (Sparrow) settings
    SPARROW_SMS_TOKEN: str = os.getenv("SPARROW_SMS_TOKEN", "")
    SPARROW_SMS_FROM: str = os.getenv("SPARROW_SMS_FROM", "LuxeMoon")
    SPARROW_SMS_URL: str = os.getenv("SPARROW_SMS_URL", "http://api.sparrowsms.com/v2/sms/")
    NOTIFICATION_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))

    # Order engine settings
    SITE_CONFIG_TTL_SECONDS: int = int(os.getenv("SITE_CONFIG_TTL_SECONDS", "300"))
    RATE_LIMIT_MAX_ORDERS: int = int(os.getenv("RATE_LIMIT_MAX_ORDERS", "5"))
    RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    ENFORCE_STATUS_TRANSITIONS: bool = _env_bool("ENFORCE_STATUS_TRANSITIONS", True)

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    SITE_URL: str = os.getenv("SITE_URL", "https://luxemoon.com.np")

    # Other settings
    TIMEZONE: str = os.getenv("TZ", "Asia/Kathmandu")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = BASE_DIR / "logs"

    # Ensure directories exist
    LOG_DIR.mkdir(exist_ok=True)


def setup_logging():
    """Configure logging settings"""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_file = Config.LOG_DIR / "app.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
