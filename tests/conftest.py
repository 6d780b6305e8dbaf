import io
import numpy as np
import pytest
from PIL import Image, TiffImagePlugin

ORACLE_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "VISION_MODEL",
    "SIGHTENGINE_API_USER",
    "SIGHTENGINE_API_SECRET",
    "ORACLE_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def no_oracle_credentials(monkeypatch):
    """Tests never reach the network unless they configure an oracle explicitly."""
    for name in ORACLE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def checkerboard(width=96, height=64, block=16, low=60, high=190, blue=None) -> Image.Image:
    """Gray checkerboard aligned to JPEG blocks: high channel variance, no compression noise."""
    ys, xs = np.indices((height, width))
    values = np.where(((ys // block) + (xs // block)) % 2 == 0, low, high).astype(np.uint8)
    rgb = np.stack([values, values, values if blue is None else np.full_like(values, blue)], axis=-1)
    return Image.fromarray(rgb, "RGB")


def camera_exif() -> Image.Exif:
    R = TiffImagePlugin.IFDRational
    exif = Image.Exif()
    exif[0x010F] = "Canon"  # Make
    exif[0x0110] = "Canon EOS R6"  # Model
    exif[0x0131] = "Firmware 1.8.1"  # Software
    exif[0x010E] = "x" * 4000  # ImageDescription (keeps the file above the compression ratio)
    exif[0x8769] = {
        0x9003: "2024:05:01 10:15:30",  # DateTimeOriginal
        0x8827: 200,  # ISOSpeedRatings
        0x829D: R(28, 10),  # FNumber
        0x829A: R(1, 125),  # ExposureTime
        0x920A: R(50, 1),  # FocalLength
    }
    exif[0x8825] = {
        1: "N",
        2: (R(37, 1), R(46, 1), R(30, 1)),
        3: "W",
        4: (R(122, 1), R(25, 1), R(12, 1)),
    }
    return exif


def encode(img: Image.Image, fmt: str, **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


@pytest.fixture
def camera_jpeg() -> bytes:
    return encode(checkerboard(), "JPEG", quality=95, exif=camera_exif().tobytes())


@pytest.fixture
def plain_jpeg() -> bytes:
    return encode(checkerboard(), "JPEG", quality=95)


@pytest.fixture
def checker_png() -> bytes:
    return encode(checkerboard(), "PNG")


@pytest.fixture
def flat_png() -> bytes:
    """Square, perfectly smooth 512x512 render: every AI-like flag fires."""
    return encode(Image.new("RGB", (512, 512), (128, 128, 128)), "PNG")


@pytest.fixture
def noisy_png() -> bytes:
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(200, 200, 3), dtype=np.uint8)
    return encode(Image.fromarray(pixels, "RGB"), "PNG")


@pytest.fixture
def noisy_webp() -> bytes:
    rng = np.random.default_rng(99)
    pixels = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    return encode(Image.fromarray(pixels, "RGB"), "WEBP", quality=80)
