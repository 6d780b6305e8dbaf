"""
Fusion engine.

The vision verdict (or its technical fallback) seeds a (label, confidence) state
which is folded through an ordered list of pure rules. Each rule either returns
a new state or None when it does not apply, so every rule can be tested on its
own and the order lives in one place (FUSION_RULES).
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

from authenticity.detectors.technical import round_half_up
from authenticity.schemas import ArtifactSignals, FeatureScores, GenAIVerdict, OracleVerdict
from authenticity.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


class FusionState(NamedTuple):
    label: str
    confidence: int


@dataclass(frozen=True)
class Evidence:
    """Everything the rules and the gate may look at, captured once per request."""
    format: str
    features: FeatureScores
    artifacts: ArtifactSignals
    has_exif: bool
    camera_make: Optional[str]
    oracle: OracleVerdict
    genai: Optional[GenAIVerdict] = None

    @property
    def is_jpeg(self) -> bool:
        return self.format == "jpeg"

    @property
    def is_png(self) -> bool:
        return self.format == "png"


Rule = Callable[[FusionState, Evidence, type], Optional[FusionState]]


def _cap(confidence: float, config) -> int:
    return int(min(config.FUSION["CONFIDENCE_CAP"], confidence))


def _floor(confidence: float) -> int:
    return int(max(0, confidence))


def ela_override(state: FusionState, ev: Evidence, config=ScoringConfig) -> Optional[FusionState]:
    """A strong JPEG recompression error contradicts an "original" call."""
    ela = ev.features.ela_score
    if ev.is_jpeg and ela > config.FUSION["ELA_OVERRIDE"] and state.label == "original":
        return FusionState("ai_modified", round_half_up(ela * 100))
    return None


def exif_corroboration(state: FusionState, ev: Evidence, config=ScoringConfig) -> Optional[FusionState]:
    """
    Keyed on the vision verdict itself, not the running state: after an ELA
    override the label stays ai_modified and only the confidence moves.
    """
    cfg = config.FUSION
    if ev.features.exif_score < cfg["EXIF_CORROBORATION"] or not ev.camera_make:
        return None
    if ev.oracle.label == "original":
        return FusionState(state.label, _cap(state.confidence + cfg["EXIF_ORIGINAL_BOOST"], config))
    if ev.oracle.label == "ai_modified" and ev.oracle.confidence < cfg["EXIF_MODIFIED_MAX"]:
        return FusionState("original", round_half_up(ev.features.exif_score * 100))
    return None


def png_without_exif_override(state: FusionState, ev: Evidence, config=ScoringConfig) -> Optional[FusionState]:
    """
    Apps often export photos as PNG and strip EXIF; let clean technical signals (or a
    confident detector) overturn an "ai_modified" call on such files.
    PNG is only a proxy for "exported without EXIF" and can misfire on PNG
    screenshots of generated art.
    """
    cfg = config.FUSION
    if not (
        state.label == "ai_modified"
        and state.confidence >= cfg["PNG_MODIFIED_MIN"]
        and not ev.has_exif
        and ev.is_png
    ):
        return None

    f = ev.features
    technical_suggests_original = (
        f.technical_score >= cfg["PNG_TECHNICAL_MIN"]
        and f.artifact_score >= cfg["PNG_ARTIFACT_MIN"]
        and f.ela_score < cfg["PNG_ELA_MAX"]
    )
    detector_suggests_original = (
        ev.genai is not None
        and not ev.genai.is_generated
        and ev.genai.confidence >= cfg["PNG_DETECTOR_ORIGINAL_MIN"]
    )
    if not (technical_suggests_original or detector_suggests_original):
        return None

    confidence = max(cfg["PNG_CONFIDENCE_FLOOR"], min(cfg["CONFIDENCE_CAP"], round_half_up(f.technical_score * 100)))
    return FusionState("original", confidence)


def no_exif_generated_boost(state: FusionState, ev: Evidence, config=ScoringConfig) -> Optional[FusionState]:
    if not ev.has_exif and ev.oracle.label == "ai_generated":
        return FusionState(state.label, _cap(state.confidence + config.FUSION["NO_EXIF_GENERATED_BOOST"], config))
    return None


def detector_consensus(state: FusionState, ev: Evidence, config=ScoringConfig) -> Optional[FusionState]:
    cfg = config.FUSION
    genai = ev.genai
    if genai is None:
        return None

    if genai.is_generated:
        if state.label == "original":
            if genai.confidence > cfg["DETECTOR_FLIP"]:
                return FusionState("ai_generated", round_half_up(genai.confidence))
            return FusionState("original", _floor(state.confidence - cfg["DETECTOR_CONTRADICTION_PENALTY"]))
        return FusionState(state.label, _cap(state.confidence + cfg["DETECTOR_AGREEMENT_BOOST"], config))

    if genai.confidence > cfg["DETECTOR_ORIGINAL_MIN"]:
        if state.label != "original":
            return FusionState(state.label, _floor(state.confidence - cfg["DETECTOR_ORIGINAL_PENALTY"]))
        return FusionState("original", _cap(state.confidence + cfg["DETECTOR_ORIGINAL_BOOST"], config))
    return None


FUSION_RULES: List[Tuple[str, Rule]] = [
    ("ela_override", ela_override),
    ("exif_corroboration", exif_corroboration),
    ("png_without_exif_override", png_without_exif_override),
    ("no_exif_generated_boost", no_exif_generated_boost),
    ("detector_consensus", detector_consensus),
]


def fuse(ev: Evidence, config=ScoringConfig, rules: List[Tuple[str, Rule]] = None) -> Tuple[FusionState, List[str]]:
    """
    Fold the evidence through the rules, starting from the oracle's own verdict.
    Returns the fused state and the names of the rules that fired, in order.
    """
    state = FusionState(ev.oracle.label, ev.oracle.confidence)
    applied = []
    for name, rule in (rules if rules is not None else FUSION_RULES):
        new_state = rule(state, ev, config)
        if new_state is None:
            continue
        logger.debug(f"[FUSION] {name}: {state.label}({state.confidence}) -> {new_state.label}({new_state.confidence})")
        state = new_state
        applied.append(name)
    return state, applied
