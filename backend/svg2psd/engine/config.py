"""Engine configuration — pool, batching and rendering tunables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from svg2psd.config import Settings


def _default_browser_args() -> list[str]:
    return [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--no-first-run",
        "--disable-default-apps",
        "--disable-features=TranslateUI",
    ]


@dataclass
class EngineConfig:
    """Controls rendering concurrency and output limits."""

    # Rendering backend: "chromium" (Playwright) or "cairosvg"
    render_backend: str = "chromium"
    browser_args: list[str] = field(default_factory=_default_browser_args)
    launch_timeout_ms: int = 30000
    # Per-layer render timeout
    render_timeout_ms: int = 5000

    # Idle handles kept by the pool
    pool_size: int = 4
    # Extra handles created above pool_size when every handle is borrowed
    max_ephemeral_handles: int = 2
    # Layers rasterized concurrently before the next batch starts
    batch_size: int = 6

    fallback_canvas_size: int = 300
    max_canvas_size: int = 30000  # PSD limit

    fetch_timeout_s: float = 30.0

    temp_dir: str | None = None
    temp_prefix: str = "svg-to-psd-"

    @property
    def max_handles(self) -> int:
        return self.pool_size + self.max_ephemeral_handles

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineConfig:
        return cls(
            render_backend=settings.render_backend,
            browser_args=list(settings.browser_args),
            launch_timeout_ms=settings.launch_timeout_ms,
            render_timeout_ms=settings.render_timeout_ms,
            pool_size=settings.pool_size,
            max_ephemeral_handles=settings.max_ephemeral_handles,
            batch_size=settings.batch_size,
            fallback_canvas_size=settings.fallback_canvas_size,
            max_canvas_size=settings.max_canvas_size,
            fetch_timeout_s=settings.fetch_timeout_s,
            temp_dir=settings.temp_dir,
            temp_prefix=settings.temp_prefix,
        )
