"""
Application configuration for api-autopilot.

Centralizes environment variables using python-dotenv.
"""

import os

from dotenv import load_dotenv

# Load variables from .env (if present)
load_dotenv()


class Settings:
    """
    Configuration settings for the api-autopilot service.
    """

    # MongoDB
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "autopilot_db")
    MONGODB_MAX_POOL_SIZE: int = int(os.getenv("MONGODB_MAX_POOL_SIZE", "50"))
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000")
    )
    MONGODB_CONNECT_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_CONNECT_TIMEOUT_MS", "3000")
    )
    MONGODB_SOCKET_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "10000")
    )

    # "mongodb" for production, "memory" for local runs without a database
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "mongodb").lower()

    # Loop periods (seconds)
    TRADING_CYCLE_INTERVAL_SEC: float = float(os.getenv("TRADING_CYCLE_INTERVAL_SEC", "60"))
    LEARNING_INTERVAL_SEC: float = float(os.getenv("LEARNING_INTERVAL_SEC", "300"))
    SOCIAL_PROOF_INTERVAL_SEC: float = float(os.getenv("SOCIAL_PROOF_INTERVAL_SEC", "60"))
    SKIM_SCAN_INTERVAL_SEC: float = float(os.getenv("SKIM_SCAN_INTERVAL_SEC", "0.5"))

    # Pacing between a trade going pending and being executed (watch mode)
    EXECUTION_DELAY_SEC: float = float(os.getenv("EXECUTION_DELAY_SEC", "2.0"))

    # Trading
    TRADING_TOP_N: int = int(os.getenv("TRADING_TOP_N", "10"))
    INITIAL_ALLOCATION_N: int = int(os.getenv("INITIAL_ALLOCATION_N", "5"))
    ADMISSION_FACTOR: float = float(os.getenv("ADMISSION_FACTOR", "0.1"))
    RECENT_TRADES_CAPACITY: int = int(os.getenv("RECENT_TRADES_CAPACITY", "20"))

    # Price oracle. Empty base url -> static stand-in table.
    PRICE_ORACLE_BASE_URL: str = os.getenv("PRICE_ORACLE_BASE_URL", "")
    PRICE_ORACLE_TIMEOUT_SEC: float = float(os.getenv("PRICE_ORACLE_TIMEOUT_SEC", "5.0"))

    # Telegram (optional event sink)
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_CHAT_ID: str = os.getenv("TELEGRAM_CHAT_ID", "")

    # Log / app
    APP_NAME: str = os.getenv("APP_NAME", "api-autopilot")


settings = Settings()
