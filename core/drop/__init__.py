"""
core/drop — Drop detection scoring engine.

Locates the musically exciting moment of a track from pre-computed analysis
features (sections, segments, bars). No audio is decoded here.

All functions are pure: frozen dataclasses in → frozen dataclasses out.
Provider calls and caching orchestration live in ingestion/drop_detector.py.

Public API:
    Types:      TrackRef, AnalysisSection, AnalysisSegment, Bar,
                AnalysisFeatureSet, DetectionParams, DropCandidate,
                DropMethod, DropResult
    Scanners:   search_window, dynamic_threshold, scan_sections,
                scan_segments, loudest_segment
    Snapping:   snap_to_bar
    Confidence: squash
    Chain:      analyze_for_drop, error_fallback
    Cache:      DropResultCache, make_cache_key
    Protocols:  AnalysisProvider, CacheStorage
"""

from core.drop.analyzer import analyze_for_drop, error_fallback
from core.drop.base import AnalysisProvider, CacheStorage
from core.drop.cache import DropResultCache, make_cache_key
from core.drop.confidence import squash
from core.drop.scanners import (
    SearchWindow,
    dynamic_threshold,
    loudest_segment,
    scan_sections,
    scan_segments,
    search_window,
)
from core.drop.snapping import snap_to_bar
from core.drop.types import (
    AnalysisFeatureSet,
    AnalysisSection,
    AnalysisSegment,
    Bar,
    DetectionParams,
    DropCandidate,
    DropMethod,
    DropResult,
    TrackRef,
)

__all__ = [
    "AnalysisFeatureSet",
    "AnalysisProvider",
    "AnalysisSection",
    "AnalysisSegment",
    "Bar",
    "CacheStorage",
    "DetectionParams",
    "DropCandidate",
    "DropMethod",
    "DropResult",
    "DropResultCache",
    "SearchWindow",
    "TrackRef",
    "analyze_for_drop",
    "dynamic_threshold",
    "error_fallback",
    "loudest_segment",
    "make_cache_key",
    "scan_sections",
    "scan_segments",
    "search_window",
    "snap_to_bar",
    "squash",
]
