import math

from authenticity.schemas import FeatureScores, ImageStats, OracleVerdict
from authenticity.scoring_config import ScoringConfig


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_technical_score(exif_score: float, noise_score: float, artifact_score: float, ela_score: float, config=ScoringConfig) -> float:
    """
    Fixed-weight technical authenticity score. Higher means more camera-like.
    ELA contributes inverted: a large recompression error counts against authenticity.
    """
    w = config.TECHNICAL_WEIGHTS
    return (
        exif_score * w["EXIF"]
        + noise_score * w["NOISE"]
        + artifact_score * w["ARTIFACT"]
        + (1.0 - ela_score) * w["ELA"]
    )


def build_feature_scores(stats: ImageStats, exif_score: float, noise_score: float, artifact_score: float, ela_score: float, config=ScoringConfig) -> FeatureScores:
    effective_ela = ela_score if stats.is_jpeg else 0.0
    return FeatureScores(
        exif_score=exif_score,
        noise_score=noise_score,
        artifact_score=artifact_score,
        ela_score=effective_ela,
        technical_score=calculate_technical_score(exif_score, noise_score, artifact_score, effective_ela, config),
    )


def technical_fallback(technical_score: float, config=ScoringConfig) -> OracleVerdict:
    """Stand-in vision verdict when the classifier is unavailable, derived from pixels and metadata alone."""
    if technical_score > config.FALLBACK["ORIGINAL_ABOVE"]:
        label = "original"
    elif technical_score < config.FALLBACK["GENERATED_BELOW"]:
        label = "ai_generated"
    else:
        label = "ai_modified"

    return OracleVerdict(
        label=label,
        confidence=round_half_up(abs(technical_score - 0.5) * 200),
        reasoning="Technical analysis fallback including ELA",
        artifacts=[],
        source="fallback",
    )
