import logging
from datetime import datetime
from typing import Optional

from authenticity.detectors.utils import get_exif_data
from authenticity.schemas import ExifSignals
from authenticity.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)


def _to_float(val) -> Optional[float]:
    try:
        if isinstance(val, tuple) and len(val) == 2:
            return float(val[0]) / float(val[1])
        return float(val)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _to_text(val) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, bytes):
        val = val.decode("utf-8", errors="ignore")
    text = str(val).replace("\x00", "").strip()
    return text or None


def _to_iso(val) -> Optional[str]:
    text = _to_text(val)
    if not text:
        return None
    try:
        return datetime.strptime(text, "%Y:%m:%d %H:%M:%S").isoformat()
    except ValueError:
        return text


def extract_exif_signals(data: bytes) -> ExifSignals:
    """
    Read camera metadata from the image bytes.
    A parse failure yields a neutral has_exif=False object; it is never propagated.
    """
    try:
        exif = get_exif_data(data)
    except Exception as e:
        logger.warning(f"[EXIF] Metadata parse failed, treating as absent: {e}")
        return ExifSignals(has_exif=False)

    flash = exif.get("Flash")
    orientation = exif.get("Orientation")
    iso = exif.get("ISOSpeedRatings", exif.get("PhotographicSensitivity"))
    if isinstance(iso, (tuple, list)):
        iso = iso[0] if iso else None

    try:
        flash_fired = bool(int(flash[0] if isinstance(flash, (tuple, list)) else flash)) if flash is not None else None
    except (TypeError, ValueError, IndexError):
        flash_fired = None

    try:
        orientation = int(orientation) if orientation is not None else None
    except (TypeError, ValueError):
        orientation = None

    return ExifSignals(
        has_exif=len(exif) > 0,
        camera_make=_to_text(exif.get("Make")),
        camera_model=_to_text(exif.get("Model")),
        software=_to_text(exif.get("Software")),
        date_time=_to_iso(exif.get("DateTimeOriginal")),
        gps_latitude=exif.get("GPSLatitude"),
        gps_longitude=exif.get("GPSLongitude"),
        iso=_to_float(iso),
        aperture=_to_float(exif.get("FNumber")),
        shutter_speed=_to_float(exif.get("ExposureTime")),
        focal_length=_to_float(exif.get("FocalLength")),
        flash=flash_fired,
        orientation=orientation,
    )


def has_generator_signature(software: Optional[str], config=ScoringConfig) -> bool:
    if not software:
        return False
    software_lower = software.lower()
    return any(pattern in software_lower for pattern in config.GENERATOR_SIGNATURES)


def calculate_exif_score(exif: ExifSignals, config=ScoringConfig) -> float:
    """
    Camera-provenance score in [0, 1].
    A generator signature in the Software tag zeroes the score outright; otherwise
    weighted points are accumulated out of a fixed maximum.
    """
    if has_generator_signature(exif.software, config):
        logger.info(f"[EXIF] Generator signature in software tag: {exif.software}")
        return 0.0

    points = config.EXIF_POINTS
    score = 0
    if exif.has_exif:
        score += points["HAS_EXIF"]
    if exif.camera_make:
        score += points["CAMERA_MAKE"]
        make = exif.camera_make.lower()
        if any(brand in make for brand in config.CAMERA_BRANDS):
            score += points["KNOWN_BRAND"]
    if exif.camera_model:
        score += points["CAMERA_MODEL"]
    if exif.date_time:
        score += points["DATE_TIME"]
    if exif.gps_latitude is not None and exif.gps_longitude is not None:
        score += points["GPS"]
    if exif.iso is not None:
        score += points["ISO"]
    if exif.aperture is not None:
        score += points["APERTURE"]
    if exif.shutter_speed is not None:
        score += points["SHUTTER_SPEED"]
    if exif.focal_length is not None:
        score += points["FOCAL_LENGTH"]

    return min(1.0, score / points["MAX_POINTS"])
