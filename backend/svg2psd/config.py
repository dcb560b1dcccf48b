"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    svg2psd_env: str = "development"
    svg2psd_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Rendering engine
    render_backend: str = "chromium"
    browser_args: list[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--no-first-run",
        "--disable-default-apps",
        "--disable-features=TranslateUI",
    ]
    launch_timeout_ms: int = 30000
    render_timeout_ms: int = 5000

    # Concurrency
    pool_size: int = 4
    max_ephemeral_handles: int = 2
    batch_size: int = 6

    # Canvas
    fallback_canvas_size: int = 300
    max_canvas_size: int = 30000

    # Remote sources
    fetch_timeout_s: float = 30.0

    # Output
    temp_dir: str | None = None
    temp_prefix: str = "svg-to-psd-"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
