"""
Centralized configuration using pydantic-settings.

How it works:
- Reads environment variables automatically (e.g., API_BASE_URL env var → Settings.API_BASE_URL)
- Falls back to defaults defined here if env vars are not set
- Can also read from a .env file in the project root

Components never read `settings` directly. The composition root
(dashboard/context.py) passes the values it needs into each constructor,
so tests can build a Settings(...) with whatever overrides they want.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Backend REST API ────────────────────────────────────────
    API_BASE_URL: str = "http://localhost:8000"
    REQUEST_TIMEOUT: float = 10.0      # seconds, regular REST calls
    UPLOAD_TIMEOUT: float = 30.0       # seconds, multipart job submission

    # ── Push channel ────────────────────────────────────────────
    WS_URL: str = "ws://localhost:8001"
    RECONNECT_BASE_DELAY: float = 1.0  # first reconnect waits this long, then doubles
    RECONNECT_MAX_ATTEMPTS: int = 5

    # ── Stores ──────────────────────────────────────────────────
    POLL_INTERVAL: float = 5.0         # seconds between REST refreshes
    NOTIFICATION_LIMIT: int = 50       # ring buffer size

    # ── Upload ──────────────────────────────────────────────────
    REDIRECT_DELAY: float = 2.0        # pause before clearing a successful batch

    # ── App ─────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @property
    def api_prefix(self) -> str:
        """Base URL of the /api routes, used as the httpx base_url."""
        return f"{self.API_BASE_URL.rstrip('/')}/api"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Default instance for entry points (CLI, session runner)
settings = Settings()
