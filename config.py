"""
Centralized configuration for the QRZ Logbook client.

All configurable values are loaded from environment variables with sensible defaults.
"""

import os


class Config:
    """Application configuration loaded from environment variables."""

    # QRZ Logbook API
    QRZ_API_URL: str = os.getenv("QRZ_API_URL", "https://logbook.qrz.com/api")
    QRZ_API_KEY: str = os.getenv("QRZ_API_KEY", "")
    # QRZ rejects generic user agents; include your callsign
    QRZ_USER_AGENT: str = os.getenv("QRZ_USER_AGENT", "QRZLogbook/1.0 (github.com/qrz-logbook)")
    QRZ_TIMEOUT_SECONDS: float = float(os.getenv("QRZ_TIMEOUT_SECONDS", "30"))

    # Paging for FETCH
    QRZ_PAGE_SIZE: int = int(os.getenv("QRZ_PAGE_SIZE", "250"))
    QRZ_PAGE_DELAY_SECONDS: float = float(os.getenv("QRZ_PAGE_DELAY_SECONDS", "1"))

    # Testing mode
    TESTING: bool = bool(os.getenv("TESTING", ""))

    @classmethod
    def require(cls, name: str) -> str:
        """
        Get a required setting.

        Raises an error if the setting is empty.
        """
        value = getattr(cls, name, "")
        if value:
            return value

        raise ValueError(
            f"Required environment variable {name} is not set. "
            f"Set {name} in your environment."
        )


# Global config instance
config = Config()
