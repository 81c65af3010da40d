# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration: all env-driven, zero hardcode.
Single source of truth for every tunable parameter of the rotation engine.
"""

import os


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "rotation-service")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    # ── Execution clock ──
    TICK_INTERVAL_SECONDS: float = float(os.getenv("TICK_INTERVAL_SECONDS", "1.0"))
    CLOCK_JOIN_TIMEOUT: float = float(os.getenv("CLOCK_JOIN_TIMEOUT", "2.0"))
    TRANSITION_WARNING_SECONDS: int = int(os.getenv("TRANSITION_WARNING_SECONDS", "30"))

    # ── Audit history ──
    DEFAULT_HISTORY_LIMIT: int = int(os.getenv("DEFAULT_HISTORY_LIMIT", "100"))
    MAX_HISTORY_SIZE: int = int(os.getenv("MAX_HISTORY_SIZE", "10000"))

    # ── Alert forwarding to notification-service ──
    NOTIFICATION_SERVICE_URL: str = os.getenv(
        "NOTIFICATION_SERVICE_URL", "http://notification-service:8004"
    )
    NOTIFICATION_TIMEOUT: float = float(os.getenv("NOTIFICATION_TIMEOUT", "3.0"))
    NOTIFICATION_WORKERS: int = int(os.getenv("NOTIFICATION_WORKERS", "2"))
    ALERT_NOTIFICATIONS_ENABLED: bool = (
        os.getenv("ALERT_NOTIFICATIONS_ENABLED", "false").lower() == "true"
    )
    ALERT_NOTIFICATION_CHANNEL: str = os.getenv("ALERT_NOTIFICATION_CHANNEL", "mock")
    ALERT_NOTIFICATION_RECIPIENT: str = os.getenv(
        "ALERT_NOTIFICATION_RECIPIENT", "coaching-staff"
    )
    ALERT_NOTIFICATION_MIN_PRIORITY: str = os.getenv(
        "ALERT_NOTIFICATION_MIN_PRIORITY", "critical"
    )

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
