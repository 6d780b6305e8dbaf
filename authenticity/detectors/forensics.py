"""
Pixel-level forensic signals: noise statistics, artifact flags and Error Level Analysis.

Every function here is a pure function of the image bytes (plus the decoded stats),
so identical uploads always reproduce identical scores.
"""
import io
import logging
import numpy as np
from PIL import Image

from authenticity.detectors.utils import channel_stats
from authenticity.schemas import ArtifactSignals, ImageStats, NoiseAnalysis
from authenticity.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def analyze_noise(data: bytes, config=ScoringConfig) -> NoiseAnalysis:
    try:
        stdevs, _, _ = channel_stats(data)
    except Exception as e:
        logger.warning(f"[NOISE] Analysis failed, using neutral values: {e}")
        return NoiseAnalysis(noise_level=0.5, noise_consistency=0.5)

    avg_stdev = float(np.mean(stdevs))
    spread = float(np.max(stdevs) - np.min(stdevs))
    consistency = 1.0 - spread / config.NOISE["CONSISTENCY_SPREAD"]

    def _channel(idx: int) -> float:
        return float(stdevs[idx]) if idx < len(stdevs) else 0.0

    return NoiseAnalysis(
        noise_level=avg_stdev / 255.0,
        noise_consistency=_clamp(consistency),
        channel_variance={"r": _channel(0), "g": _channel(1), "b": _channel(2)},
    )


def calculate_noise_score(noise: NoiseAnalysis, config=ScoringConfig) -> float:
    """Natural sensor noise sits in a mid band; too clean or too noisy is suspicious."""
    cfg = config.NOISE
    level = noise.noise_level
    if cfg["NATURAL_MIN"] <= level <= cfg["NATURAL_MAX"]:
        score = cfg["NATURAL_POINTS"]
    elif level < cfg["TOO_CLEAN"]:
        score = cfg["CLEAN_POINTS"]
    elif level > cfg["TOO_NOISY"]:
        score = cfg["NOISY_POINTS"]
    else:
        score = cfg["OTHER_POINTS"]
    score += noise.noise_consistency * cfg["CONSISTENCY_WEIGHT"]
    return _clamp(score)


def analyze_artifacts(data: bytes, stats: ImageStats, config=ScoringConfig) -> ArtifactSignals:
    """
    Derive the eight artifact flags from channel statistics and image geometry.
    inconsistent_lighting and edge_artifacts have no detector yet and stay False.
    """
    cfg = config.ARTIFACTS
    try:
        stdevs, mins, maxs = channel_stats(data)
    except Exception as e:
        logger.warning(f"[ARTIFACTS] Analysis failed, no flags raised: {e}")
        return ArtifactSignals()

    avg_stdev = float(np.mean(stdevs))
    avg_color_range = float(np.mean(maxs - mins))
    has_compression = stats.is_jpeg and stats.size_bytes < stats.width * stats.height * cfg["COMPRESSION_BYTES_PER_PIXEL"]
    standard_ai_size = stats.width in cfg["AI_SIDES"] and stats.height in cfg["AI_SIDES"]

    return ArtifactSignals(
        compression=bool(has_compression),
        blur=avg_stdev < cfg["BLUR_STDEV"],
        color_adjustment=avg_color_range > cfg["COLOR_RANGE"],
        noise_patterns=avg_stdev < cfg["NOISE_LOW_STDEV"] or avg_stdev > cfg["NOISE_HIGH_STDEV"],
        inconsistent_lighting=False,
        edge_artifacts=False,
        unnatural_smoothing=avg_stdev < cfg["SMOOTHING_STDEV"],
        repetitive_patterns=standard_ai_size and stats.width == stats.height,
    )


def weighted_suspicious_count(artifacts: ArtifactSignals, config=ScoringConfig) -> float:
    weights = config.ARTIFACT_WEIGHTS
    count = 0.0
    if artifacts.unnatural_smoothing:
        count += weights["UNNATURAL_SMOOTHING"]
    if artifacts.repetitive_patterns:
        count += weights["REPETITIVE_PATTERNS"]
    if artifacts.noise_patterns:
        count += weights["NOISE_PATTERNS"]
    if artifacts.blur and not artifacts.compression:
        count += weights["BLUR_WITHOUT_COMPRESSION"]
    if artifacts.color_adjustment:
        count += weights["COLOR_ADJUSTMENT"]
    return count


def calculate_artifact_score(artifacts: ArtifactSignals, config=ScoringConfig) -> float:
    return max(0.0, 1.0 - weighted_suspicious_count(artifacts, config) / config.ARTIFACT_WEIGHTS["DIVISOR"])


def analyze_ela(data: bytes, config=ScoringConfig) -> float:
    """
    Error Level Analysis: resave at a fixed JPEG quality and measure the mean
    absolute pixel difference against the original.

    Only meaningful for JPEG input. Transcoding PNG/WebP/HEIC to JPEG produces
    large differences even for untouched photos, so any other format scores 0.
    """
    cfg = config.ELA
    try:
        with Image.open(io.BytesIO(data)) as img:
            if (img.format or "").upper() not in ("JPEG", "MPO"):
                return 0.0
            original = img.convert("RGB")

        buffer = io.BytesIO()
        original.save(buffer, format="JPEG", quality=cfg["RESAVE_QUALITY"])
        with Image.open(io.BytesIO(buffer.getvalue())) as resaved_img:
            resaved = resaved_img.convert("RGB")

        if original.size != resaved.size:
            return cfg["SIZE_MISMATCH_SCORE"]

        diff = np.abs(np.asarray(original, dtype=np.int16) - np.asarray(resaved, dtype=np.int16))
        avg_diff = float(np.mean(diff.reshape(-1, 3).mean(axis=0)))
        return _clamp(avg_diff / cfg["DIFF_SCALE"])
    except Exception as e:
        logger.error(f"[ELA] Analysis failed: {e}")
        return 0.0
