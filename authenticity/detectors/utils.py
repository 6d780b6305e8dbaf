import io
import logging
import hashlib
import numpy as np
import pillow_heif
from PIL import Image, ImageStat, UnidentifiedImageError
from PIL.ExifTags import TAGS, GPSTAGS
from typing import Optional

from authenticity.errors import InputDecodeError
from authenticity.schemas import ImageStats, SUPPORTED_FORMATS
from authenticity.scoring_config import ScoringConfig

pillow_heif.register_heif_opener()

logger = logging.getLogger(__name__)

# Pillow format names -> canonical lower-case names
_FORMAT_ALIASES = {
    "jpeg": "jpeg",
    "jpg": "jpeg",
    "mpo": "jpeg",  # multi-picture JPEG written by many phone cameras
    "png": "png",
    "webp": "webp",
    "heif": "heic",
    "heic": "heic",
}

_EXIF_IFD_POINTER = 0x8769
_GPS_IFD_POINTER = 0x8825


def get_image_hash(data: bytes) -> str:
    """SHA-256 of the raw upload (short form, used to correlate log lines)."""
    return hashlib.sha256(data).hexdigest()[:16]


def get_image_stats(data: bytes, filename: str = "") -> ImageStats:
    """
    Decode basic statistics from the image bytes.
    Raises InputDecodeError when the bytes are not a supported image, since nothing
    downstream can run without them.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            raw_format = (img.format or "").lower()
            width, height = img.size
            bands = img.getbands()
            has_alpha = "A" in bands or "transparency" in img.info
            is_progressive = bool(img.info.get("progressive") or img.info.get("progression")) if raw_format in ("jpeg", "mpo") else None
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InputDecodeError(f"Could not decode image: {e}", filename=filename) from e

    fmt = _FORMAT_ALIASES.get(raw_format)
    if fmt not in SUPPORTED_FORMATS:
        raise InputDecodeError(f"Unsupported image format: {raw_format or 'unknown'}", filename=filename)

    return ImageStats(
        width=width,
        height=height,
        format=fmt,
        channels=len(bands),
        has_alpha=has_alpha,
        is_progressive=is_progressive,
        size_bytes=len(data),
    )


def channel_stats(data: bytes) -> tuple:
    """
    Per-channel (stdev, min, max) arrays, one entry per decoded channel
    (palette and CMYK images are converted to RGB/RGBA first).
    Computed from the band histograms, so no float copy of the pixels is made.
    """
    with Image.open(io.BytesIO(data)) as img:
        if img.mode not in ("L", "LA", "RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() or "transparency" in img.info else "RGB")
        stat = ImageStat.Stat(img)
    stdevs = np.array(stat.stddev, dtype=np.float64)
    mins = np.array([low for low, _ in stat.extrema], dtype=np.float64)
    maxs = np.array([high for _, high in stat.extrema], dtype=np.float64)
    return stdevs, mins, maxs


def _rational_to_float(val) -> Optional[float]:
    try:
        if isinstance(val, tuple) and len(val) == 2:
            return float(val[0]) / float(val[1]) if float(val[1]) else None
        return float(val)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _dms_to_degrees(dms, ref) -> Optional[float]:
    """Convert an EXIF (degrees, minutes, seconds) triple to signed decimal degrees."""
    try:
        d, m, s = (_rational_to_float(x) for x in dms)
        if d is None or m is None or s is None:
            return None
        degrees = d + m / 60.0 + s / 3600.0
        if str(ref or "").upper() in ("S", "W"):
            degrees = -degrees
        return degrees
    except (TypeError, ValueError):
        return None


def get_exif_data(data: bytes) -> dict:
    """
    Extract EXIF tags from the image bytes as a {tag_name: value} map.
    Merges the base IFD, the Exif sub-IFD and the GPS IFD; GPS coordinates are
    converted to decimal degrees. Raises on malformed metadata; callers decide
    how to degrade.
    """
    with Image.open(io.BytesIO(data)) as img:
        exif = img.getexif()
        exif_data = {}
        for tag, value in exif.items():
            if tag in (_EXIF_IFD_POINTER, _GPS_IFD_POINTER):
                continue
            exif_data[TAGS.get(tag, tag)] = value

        for tag, value in exif.get_ifd(_EXIF_IFD_POINTER).items():
            exif_data[TAGS.get(tag, tag)] = value

        gps = {GPSTAGS.get(tag, tag): value for tag, value in exif.get_ifd(_GPS_IFD_POINTER).items()}
        if gps:
            exif_data["GPSInfo"] = gps
            if "GPSLatitude" in gps:
                exif_data["GPSLatitude"] = _dms_to_degrees(gps["GPSLatitude"], gps.get("GPSLatitudeRef"))
            if "GPSLongitude" in gps:
                exif_data["GPSLongitude"] = _dms_to_degrees(gps["GPSLongitude"], gps.get("GPSLongitudeRef"))

        return exif_data


def fit_payload(data: bytes, config=ScoringConfig) -> bytes:
    """
    Shrink an oversized upload until it fits the oracles' payload budget.
    Each pass narrows the width (aspect ratio preserved) and re-encodes as JPEG.
    """
    max_bytes = config.ORACLE["MAX_PAYLOAD_BYTES"]
    if len(data) < max_bytes:
        return data

    logger.info(f"[RESIZE] Payload {len(data) / 1024 / 1024:.2f}MB exceeds oracle limit. Resizing...")
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        current = img.convert("RGB")

    payload = data
    while len(payload) >= max_bytes:
        width, height = current.size
        target_width = max(1, int(round(width * config.ORACLE["RESIZE_FACTOR"])))
        if target_width == width:
            break
        target_height = max(1, int(round(height * target_width / width)))
        current = current.resize((target_width, target_height), Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        current.save(buffer, format="JPEG", quality=config.ORACLE["RESIZE_QUALITY"])
        payload = buffer.getvalue()

    logger.info(f"[RESIZE] Payload resized to {len(payload) / 1024 / 1024:.2f}MB ({current.size[0]}x{current.size[1]})")
    return payload


_MIME_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


def prepare_oracle_payload(data: bytes, stats: ImageStats, config=ScoringConfig) -> tuple:
    """
    Bytes and MIME type to send to the oracles: fitted under the payload budget,
    and re-encoded as JPEG when the source format is not accepted upstream (HEIC).
    """
    payload = fit_payload(data, config)
    if payload is not data:
        return payload, "image/jpeg"

    mime_type = _MIME_TYPES.get(stats.format)
    if mime_type:
        return payload, mime_type

    with Image.open(io.BytesIO(data)) as img:
        rgb = img.convert("RGB")
    buffer = io.BytesIO()
    rgb.save(buffer, format="JPEG", quality=95)
    return buffer.getvalue(), "image/jpeg"
