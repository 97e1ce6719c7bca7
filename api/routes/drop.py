"""
Drop detection routes.

``POST /drop`` — locate the drop of a track and return a playback cue.
``POST /drop/invalidate`` — drop one cached result.

Detection never fails at runtime: provider and cache failures surface only
as ``method="error-fallback"`` in the body, never as a 5xx.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import get_drop_detector
from api.schemas.drop import DropRequest, DropResponse, InvalidateRequest
from core.drop.types import DetectionParams, TrackRef
from ingestion.drop_detector import DropDetector

logger = logging.getLogger(__name__)

router = APIRouter(tags=["drop"])

Detector = Annotated[DropDetector, Depends(get_drop_detector)]


@router.post("/drop", response_model=DropResponse)
def detect_drop(body: DropRequest, detector: Detector) -> DropResponse:
    """Return the drop start offset and preview stop deadline for a track."""
    track = TrackRef(id=body.track_id, duration_ms=body.duration_ms, name=body.name)
    result, cache_hit = detector.detect_drop_with_status(
        track,
        loudness_offset_db=body.loudness_offset_db,
        preview_length_ms=body.preview_length_ms,
        force_refresh=body.force_refresh,
    )
    return DropResponse.from_result(result, cache_hit=cache_hit)


@router.post("/drop/invalidate")
def invalidate_drop(body: InvalidateRequest, detector: Detector) -> dict[str, bool]:
    """Remove the cached result for one (track, parameters) combination.

    Returns:
        Dict with ``deleted`` flag.
    """
    params = DetectionParams(
        loudness_offset_db=body.loudness_offset_db,
        preview_length_ms=body.preview_length_ms,
    )
    deleted = detector.cache.invalidate(body.track_id, params)
    logger.info("Invalidated drop cache for %s: %s", body.track_id, deleted)
    return {"deleted": deleted}
