"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from svg2psd.utils.imaging import parse_color

TRANSPARENT = "transparent"


class ConversionOptions(BaseModel):
    width: int | None = Field(default=None, gt=0, description="Canvas width (defaults to the SVG's own)")
    height: int | None = Field(default=None, gt=0, description="Canvas height (defaults to the SVG's own)")
    background_color: str = Field(
        default=TRANSPARENT,
        description="CSS colour of an extra bottom layer; 'transparent' adds none",
    )
    quality: int | None = Field(
        default=None,
        ge=1,
        le=100,
        description="Accepted for compatibility; PSD output is lossless",
    )

    @field_validator("background_color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        value = value.strip()
        if value.lower() in ("", TRANSPARENT, "none"):
            return TRANSPARENT
        parse_color(value)
        return value

    @property
    def has_background(self) -> bool:
        return self.background_color != TRANSPARENT


class ConvertRequest(BaseModel):
    svg: str = Field(..., description="Raw SVG code")
    options: ConversionOptions = Field(default_factory=ConversionOptions)


class ConvertUrlRequest(BaseModel):
    url: str = Field(..., description="URL serving SVG markup")
    options: ConversionOptions = Field(default_factory=ConversionOptions)
