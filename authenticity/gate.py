"""
Conservative gate.

Fusion is permissive: every signal may move the needle. The gate is strict: a
definitive label is emitted only when its corroboration predicate holds,
otherwise the verdict degrades to "uncertain" with confidence clamped into the
uncertain band.
"""
import logging
from typing import Tuple

from authenticity.detectors.technical import round_half_up
from authenticity.fusion import Evidence, FusionState
from authenticity.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


def detector_says_generated(ev: Evidence, config=ScoringConfig) -> bool:
    return ev.genai is not None and ev.genai.is_generated and ev.genai.confidence >= config.GATE["DETECTOR_STRONG"]


def detector_says_original(ev: Evidence, config=ScoringConfig) -> bool:
    return ev.genai is not None and not ev.genai.is_generated and ev.genai.confidence >= config.GATE["DETECTOR_STRONG"]


def has_strong_modification_evidence(ev: Evidence, config=ScoringConfig) -> bool:
    cfg = config.GATE
    count = ev.artifacts.suspicious_count
    return (
        (ev.is_jpeg and ev.features.ela_score >= cfg["MODIFIED_ELA"])
        or count >= cfg["MODIFIED_ARTIFACTS"]
        or (count >= 1 and ev.features.technical_score <= cfg["MODIFIED_TECHNICAL_MAX"])
    )


def has_ai_like_signals(ev: Evidence, config=ScoringConfig) -> bool:
    a = ev.artifacts
    return a.unnatural_smoothing or a.repetitive_patterns or a.suspicious_count >= config.GATE["AI_LIKE_ARTIFACTS"]


def has_strong_original_evidence(fused: FusionState, ev: Evidence, config=ScoringConfig) -> bool:
    """
    Original needs corroboration on every axis. EXIF is not mandatory since many
    authentic photos lose it, but then the detector must vouch for the image.
    Non-photo content (illustration, render, screenshot) additionally needs the
    vision oracle to have named positive non-AI evidence.
    """
    cfg = config.GATE
    f = ev.features
    non_photo_like = ev.oracle.content_type not in ("photo", "unknown")
    return (
        not has_ai_like_signals(ev, config)
        and f.technical_score >= cfg["ORIGINAL_TECHNICAL"]
        and f.noise_score >= cfg["ORIGINAL_NOISE"]
        and f.artifact_score >= cfg["ORIGINAL_ARTIFACT"]
        and (ev.has_exif or detector_says_original(ev, config))
        and (not non_photo_like or (ev.oracle.non_ai_evidence and fused.confidence >= cfg["NON_PHOTO_EVIDENCE_MIN"]))
    )


def apply_gate(fused: FusionState, ev: Evidence, config=ScoringConfig) -> Tuple[str, int]:
    """Final (label, confidence). Pure: the same inputs always give the same verdict."""
    cfg = config.GATE
    label = "uncertain"
    confidence = int(min(cfg["UNCERTAIN_MAX"], max(cfg["UNCERTAIN_MIN"], fused.confidence)))

    if detector_says_generated(ev, config):
        label = "ai_generated"
        confidence = max(confidence, round_half_up(ev.genai.confidence))
    elif fused.label == "ai_generated":
        if fused.confidence >= cfg["GENERATED_MIN"]:
            label, confidence = "ai_generated", fused.confidence
    elif fused.label == "ai_modified":
        if fused.confidence >= cfg["MODIFIED_MIN"] and has_strong_modification_evidence(ev, config):
            label, confidence = "ai_modified", fused.confidence
    elif fused.label == "original":
        if fused.confidence >= cfg["ORIGINAL_MIN"] and has_strong_original_evidence(fused, ev, config):
            label, confidence = "original", fused.confidence

    if label == "uncertain":
        logger.info(f"[GATE] {fused.label}({fused.confidence}) not corroborated -> uncertain({confidence})")
    return label, confidence
