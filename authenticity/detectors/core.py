import asyncio
import logging
import time

from authenticity.detectors.forensics import (
    analyze_artifacts,
    analyze_ela,
    analyze_noise,
    calculate_artifact_score,
    calculate_noise_score,
)
from authenticity.detectors.metadata import calculate_exif_score, extract_exif_signals
from authenticity.detectors.technical import build_feature_scores, technical_fallback
from authenticity.detectors.utils import get_image_hash, get_image_stats, prepare_oracle_payload
from authenticity.fusion import Evidence, fuse
from authenticity.gate import apply_gate
from authenticity.schemas import DebugScores, ImageMetadata, ImageSample, Verdict
from authenticity.scoring_config import ScoringConfig
from authenticity.sightengine_client import run_genai_detection
from authenticity.vision_client import get_config as get_vision_config, run_vision_analysis

logger = logging.getLogger(__name__)


def _log_decision(verdict: Verdict, sample_id: str) -> Verdict:
    """Helper to log the final decision before returning."""
    try:
        d = verdict.debug_scores
        logger.info(
            f"[DECISION] {sample_id} Verdict: {verdict.label} ({verdict.confidence}) | "
            f"Fused: {d.fused_label} ({d.fused_confidence}) | Rules: {d.applied_rules} | "
            f"Scores: T={d.technical_score:.2f}, E={d.exif_score:.2f}, N={d.noise_score:.2f}, "
            f"A={d.artifact_score:.2f}, ELA={d.ela_score:.2f} | Oracle: {verdict.oracle.source}"
        )
    except Exception as e:
        logger.error(f"[LOGGING] Error logging decision: {e}")
    return verdict


async def _skip_oracle():
    return None


async def classify(image_bytes: bytes, filename: str = "", config=ScoringConfig) -> Verdict:
    """
    Decide whether an image is camera-original, AI-generated or AI-modified.

    Feature extractors and both oracles run concurrently. Oracle failures are
    absorbed (vision -> technical fallback, detector -> no opinion); only an
    undecodable input raises (InputDecodeError).
    """
    total_start = time.perf_counter()
    loop = asyncio.get_running_loop()
    sample_id = get_image_hash(image_bytes)

    stats = await loop.run_in_executor(None, get_image_stats, image_bytes, filename)
    sample = ImageSample(data=image_bytes, filename=filename, stats=stats)
    logger.info(f"[REQUEST] {sample_id} {filename or '<unnamed>'} | {stats.format} {stats.width}x{stats.height} | {stats.size_bytes} bytes")

    data = sample.data
    exif_future = loop.run_in_executor(None, extract_exif_signals, data)
    noise_future = loop.run_in_executor(None, analyze_noise, data, config)
    artifacts_future = loop.run_in_executor(None, analyze_artifacts, data, stats, config)
    ela_future = loop.run_in_executor(None, analyze_ela, data, config)

    # Resizing must finish before either oracle is dispatched.
    t_prepare = time.perf_counter()
    try:
        payload, mime_type = await loop.run_in_executor(None, prepare_oracle_payload, data, stats, config)
        vision_call = run_vision_analysis(payload, mime_type)
        genai_call = run_genai_detection(payload, mime_type)
    except Exception as e:
        logger.error(f"[RESIZE] Could not prepare oracle payload, oracles skipped: {e}")
        vision_call, genai_call = _skip_oracle(), _skip_oracle()
    prepare_ms = (time.perf_counter() - t_prepare) * 1000

    t_analysis = time.perf_counter()
    exif, noise, artifacts, ela_score, vision, genai = await asyncio.gather(
        exif_future, noise_future, artifacts_future, ela_future, vision_call, genai_call
    )
    analysis_ms = (time.perf_counter() - t_analysis) * 1000
    logger.info(f"[TIMING] Payload prep: {prepare_ms:.2f}ms | Extractors + oracles: {analysis_ms:.2f}ms")

    features = build_feature_scores(
        stats,
        exif_score=calculate_exif_score(exif, config),
        noise_score=calculate_noise_score(noise, config),
        artifact_score=calculate_artifact_score(artifacts, config),
        ela_score=ela_score,
        config=config,
    )

    oracle = vision if vision is not None else technical_fallback(features.technical_score, config)
    evidence = Evidence(
        format=stats.format,
        features=features,
        artifacts=artifacts,
        has_exif=exif.has_exif,
        camera_make=exif.camera_make,
        oracle=oracle,
        genai=genai,
    )

    fused, applied_rules = fuse(evidence, config)
    label, confidence = apply_gate(fused, evidence, config)

    realness = confidence / 100 if label == "original" else 1 - confidence / 100
    verdict = Verdict(
        label=label,
        confidence=confidence,
        features=features,
        artifacts=artifacts,
        metadata=ImageMetadata(
            width=stats.width,
            height=stats.height,
            format=stats.format.upper(),
            size=stats.size_bytes,
            has_exif=exif.has_exif,
            camera_make=exif.camera_make,
            camera_model=exif.camera_model,
        ),
        oracle=oracle,
        genai=genai,
        debug_scores=DebugScores(
            exif_score=features.exif_score,
            noise_score=features.noise_score,
            artifact_score=features.artifact_score,
            ela_score=features.ela_score,
            technical_score=features.technical_score,
            ai_confidence=oracle.confidence / 100,
            realness_score=realness,
            significant_artifacts=artifacts.suspicious_count,
            noise_level=noise.noise_level,
            noise_consistency=noise.noise_consistency,
            ai_reasoning=oracle.reasoning,
            ai_detected_artifacts=oracle.artifacts,
            ml_model=get_vision_config()["model"] if oracle.source == "oracle" else "technical-fallback",
            fused_label=fused.label,
            fused_confidence=fused.confidence,
            applied_rules=applied_rules,
        ),
        timing_ms={
            "payload_prep": round(prepare_ms, 2),
            "analysis": round(analysis_ms, 2),
            "total": round((time.perf_counter() - total_start) * 1000, 2),
        },
    )
    return _log_decision(verdict, sample_id)
