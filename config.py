"""
Configuration module for environment variable validation and type-safe config.

This module validates the AGCOD client settings read from the environment
and provides a type-safe configuration object.
"""
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_REGION = "us-east-1"
DEFAULT_SERVICE = "AGCODService"
DEFAULT_TIMEOUT = 30.0


@dataclass
class AGCODConfig:
    """Type-safe configuration object with validated environment variables."""

    access_key: str
    secret_key: str
    base_url: str
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    session_token: Optional[str] = None
    partner_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AGCODConfig":
        """
        Create AGCODConfig instance from environment variables.

        Raises:
            ValueError: If required environment variables are missing or invalid.
        """
        access_key = os.environ.get("AGCOD_ACCESS_KEY")
        if not access_key:
            raise ValueError("AGCOD_ACCESS_KEY environment variable is required")

        secret_key = os.environ.get("AGCOD_SECRET_KEY")
        if not secret_key:
            raise ValueError("AGCOD_SECRET_KEY environment variable is required")

        base_url = os.environ.get("AGCOD_BASE_URL")
        if not base_url:
            raise ValueError("AGCOD_BASE_URL environment variable is required")
        if not base_url.startswith(("https://", "http://")):
            raise ValueError(
                f"AGCOD_BASE_URL must be an http(s) URL, got: {base_url}"
            )

        region = os.environ.get("AGCOD_REGION") or DEFAULT_REGION
        service = os.environ.get("AGCOD_SERVICE") or DEFAULT_SERVICE
        session_token = os.environ.get("AGCOD_SESSION_TOKEN") or None
        partner_id = os.environ.get("AGCOD_PARTNER_ID") or None

        raw_timeout = os.environ.get("AGCOD_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ValueError(
                f"AGCOD_TIMEOUT must be a number of seconds, got: {raw_timeout}"
            ) from None
        if timeout <= 0:
            raise ValueError(f"AGCOD_TIMEOUT must be positive, got: {raw_timeout}")

        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

        # Validate log level
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_log_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {valid_log_levels}, got: {log_level}"
            )

        return cls(
            access_key=access_key,
            secret_key=secret_key,
            base_url=base_url.rstrip("/"),
            region=region,
            service=service,
            session_token=session_token,
            partner_id=partner_id,
            timeout=timeout,
            log_level=log_level,
        )


_config: Optional[AGCODConfig] = None


def get_config() -> AGCODConfig:
    """
    Get the process configuration instance, reading the environment once.

    Returns:
        AGCODConfig: The validated configuration object

    Raises:
        ValueError: If required environment variables are missing or invalid.
    """
    global _config
    if _config is None:
        _config = AGCODConfig.from_env()
    return _config
