from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Health record (shared, ephemeral directory read by the container runtime)
    health_dir: str = "/tmp/safety/health"
    health_file: str = "status"

    # Write side
    heartbeat_interval: float = 10.0  # seconds between record refreshes
    clear_on_shutdown: bool = True

    # Read side / supervisor policy (mirrors the image HEALTHCHECK)
    probe_interval: float = 30.0
    probe_timeout: float = 5.0
    failure_threshold: int = 3
    probe_max_age: float | None = None  # None = pure content match

    # Status API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Notifications on supervisor transitions (optional)
    slack_webhook_url: str = ""
    discord_webhook_url: str = ""

    @property
    def health_path(self) -> Path:
        return Path(self.health_dir) / self.health_file


settings = Settings()
