"""
Pydantic schemas for the ``/drop`` endpoints.

Defines request validation and response serialization models.
"""

from pydantic import BaseModel, Field, field_validator

from core.drop.types import DropResult


class DropRequest(BaseModel):
    """Request body for ``POST /drop``."""

    track_id: str = Field(..., max_length=256, description="Provider track identifier.")
    duration_ms: int = Field(..., ge=0, description="Track duration in milliseconds.")
    name: str = Field(default="", max_length=512, description="Track name, used in logs only.")
    loudness_offset_db: float = Field(
        default=3.0,
        ge=-60.0,
        le=60.0,
        description="dB added to the median segment loudness to form the threshold.",
    )
    preview_length_ms: int = Field(
        default=20_000,
        gt=0,
        le=600_000,
        description="Preview duration handed to the player (milliseconds).",
    )
    force_refresh: bool = Field(
        default=False,
        description="Ignore any cached result and recompute.",
    )

    @field_validator("track_id")
    @classmethod
    def track_id_must_not_be_empty(cls, v: str) -> str:
        """Validate that track_id is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("track_id must be a non-empty string")
        return v


class InvalidateRequest(BaseModel):
    """Request body for ``POST /drop/invalidate``."""

    track_id: str = Field(..., max_length=256)
    loudness_offset_db: float = Field(default=3.0, ge=-60.0, le=60.0)
    preview_length_ms: int = Field(default=20_000, gt=0, le=600_000)


class DropResponse(BaseModel):
    """Response body for ``POST /drop``."""

    track_id: str = Field(..., description="Track the result belongs to.")
    drop_start_ms: int = Field(..., description="Playback seek offset (milliseconds).")
    stop_ms: int = Field(..., description="Playback stop deadline (milliseconds).")
    confidence: float = Field(..., description="Detection confidence (0–1).")
    method: str = Field(..., description="Strategy that produced the result.")
    preview_length_ms: int = Field(..., description="Preview duration (milliseconds).")
    computed_at_epoch_ms: int = Field(..., description="When the result was computed.")
    cache_hit: bool = Field(..., description="True if served from the result cache.")

    @classmethod
    def from_result(cls, result: DropResult, *, cache_hit: bool) -> "DropResponse":
        return cls(
            track_id=result.track_id,
            drop_start_ms=result.drop_start_ms,
            stop_ms=result.stop_ms,
            confidence=result.confidence,
            method=result.method.value,
            preview_length_ms=result.preview_length_ms,
            computed_at_epoch_ms=result.computed_at_epoch_ms,
            cache_hit=cache_hit,
        )
