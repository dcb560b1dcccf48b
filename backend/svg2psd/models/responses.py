"""API response models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PoolStats(BaseModel):
    idle: int = 0
    borrowed: int = 0
    capacity: int = 0


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    environment: str = ""
    backend: str = ""
    pool: PoolStats = Field(default_factory=PoolStats)
