"""
Configuration for authenticity scoring weights, thresholds and confidence adjustments.
Centralizes "magic numbers" for easier tuning.

None of these values has a documented derivation; they were tuned by hand and
should be recalibrated against a labeled dataset (see scripts/benchmark.py).
Override by subclassing and passing the subclass as `config=` to any scorer.
"""


class ScoringConfig:
    # --- Known camera manufacturers (EXIF Make bonus) ---
    CAMERA_BRANDS = [
        "apple", "iphone", "canon", "nikon", "sony", "fuji", "fujifilm",
        "olympus", "panasonic", "leica", "samsung", "google", "pixel",
        "huawei", "xiaomi", "oppo", "oneplus", "lg", "motorola",
    ]

    # --- Generator signatures found in the EXIF Software tag ---
    GENERATOR_SIGNATURES = [
        "stable diffusion", "midjourney", "dall-e", "dalle", "openai",
        "ai generated", "artificial intelligence", "neural network",
    ]

    # --- EXIF points (out of MAX_POINTS) ---
    EXIF_POINTS = {
        "HAS_EXIF": 15,
        "CAMERA_MAKE": 10,
        "KNOWN_BRAND": 10,
        "CAMERA_MODEL": 10,
        "DATE_TIME": 15,
        "GPS": 20,
        "ISO": 5,
        "APERTURE": 5,
        "SHUTTER_SPEED": 5,
        "FOCAL_LENGTH": 5,
        "MAX_POINTS": 100,
    }

    # --- Noise banding ---
    NOISE = {
        "NATURAL_MIN": 0.10,
        "NATURAL_MAX": 0.40,
        "TOO_CLEAN": 0.05,
        "TOO_NOISY": 0.50,
        "NATURAL_POINTS": 0.5,
        "CLEAN_POINTS": 0.1,
        "NOISY_POINTS": 0.2,
        "OTHER_POINTS": 0.3,
        "CONSISTENCY_WEIGHT": 0.5,
        "CONSISTENCY_SPREAD": 100.0,  # max-min channel stdev that zeroes consistency
    }

    # --- Artifact detection (per-channel pixel statistics) ---
    ARTIFACTS = {
        "SMOOTHING_STDEV": 20,
        "BLUR_STDEV": 25,
        "NOISE_LOW_STDEV": 15,
        "NOISE_HIGH_STDEV": 90,
        "COLOR_RANGE": 240,
        "COMPRESSION_BYTES_PER_PIXEL": 0.5,
        "AI_SIDES": [512, 768, 1024, 1536, 2048],
    }

    # --- Weighted suspicious count for artifactScore ---
    ARTIFACT_WEIGHTS = {
        "UNNATURAL_SMOOTHING": 2.0,
        "REPETITIVE_PATTERNS": 2.0,
        "NOISE_PATTERNS": 1.0,
        "BLUR_WITHOUT_COMPRESSION": 1.0,
        "COLOR_ADJUSTMENT": 0.5,
        "DIVISOR": 7.0,
    }

    # --- Error Level Analysis (JPEG only) ---
    ELA = {
        "RESAVE_QUALITY": 90,
        "DIFF_SCALE": 10.0,
        "SIZE_MISMATCH_SCORE": 0.5,
    }

    # --- Technical aggregator ---
    TECHNICAL_WEIGHTS = {
        "EXIF": 0.35,
        "NOISE": 0.20,
        "ARTIFACT": 0.25,
        "ELA": 0.20,  # applied to (1 - elaScore)
    }

    # --- Vision oracle technical-only fallback ---
    FALLBACK = {
        "ORIGINAL_ABOVE": 0.6,
        "GENERATED_BELOW": 0.4,
    }

    # --- Oracle dispatch ---
    ORACLE = {
        "TIMEOUT_SECONDS": 15.0,
        "MAX_PAYLOAD_BYTES": 15 * 1024 * 1024,
        "RESIZE_FACTOR": 0.7,
        "RESIZE_QUALITY": 85,
        "DEFAULT_CONFIDENCE": 60,
    }

    # --- Fusion rules ---
    FUSION = {
        "CONFIDENCE_CAP": 99,
        # Rule 1: ELA override
        "ELA_OVERRIDE": 0.6,
        # Rule 2: EXIF corroboration
        "EXIF_CORROBORATION": 0.5,
        "EXIF_ORIGINAL_BOOST": 10,
        "EXIF_MODIFIED_MAX": 70,
        # Rule 3: no-EXIF PNG override
        "PNG_MODIFIED_MIN": 85,
        "PNG_TECHNICAL_MIN": 0.67,
        "PNG_ARTIFACT_MIN": 0.75,
        "PNG_ELA_MAX": 0.55,
        "PNG_DETECTOR_ORIGINAL_MIN": 90,
        "PNG_CONFIDENCE_FLOOR": 60,
        # Rule 4: no-EXIF generated boost
        "NO_EXIF_GENERATED_BOOST": 5,
        # Rule 5: detector corroboration / contradiction
        "DETECTOR_FLIP": 80,
        "DETECTOR_CONTRADICTION_PENALTY": 30,
        "DETECTOR_AGREEMENT_BOOST": 15,
        "DETECTOR_ORIGINAL_MIN": 90,
        "DETECTOR_ORIGINAL_PENALTY": 20,
        "DETECTOR_ORIGINAL_BOOST": 10,
    }

    # --- Conservative gate ---
    GATE = {
        "UNCERTAIN_MIN": 50,
        "UNCERTAIN_MAX": 69,
        "DETECTOR_STRONG": 90,
        "GENERATED_MIN": 90,
        "MODIFIED_MIN": 90,
        "MODIFIED_ELA": 0.75,
        "MODIFIED_ARTIFACTS": 2,
        "MODIFIED_TECHNICAL_MAX": 0.55,
        "ORIGINAL_MIN": 85,
        "ORIGINAL_TECHNICAL": 0.82,
        "ORIGINAL_NOISE": 0.70,
        "ORIGINAL_ARTIFACT": 0.80,
        "AI_LIKE_ARTIFACTS": 2,
        "NON_PHOTO_EVIDENCE_MIN": 85,
    }
