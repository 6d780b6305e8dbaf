import math
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List, Dict, Literal, Any

OracleLabel = Literal["original", "ai_generated", "ai_modified"]
VerdictLabel = Literal["original", "ai_generated", "ai_modified", "uncertain"]
ContentType = Literal["photo", "illustration", "render", "screenshot", "unknown"]

ORACLE_LABELS = ("original", "ai_generated", "ai_modified")
CONTENT_TYPES = ("photo", "illustration", "render", "screenshot", "unknown")
SUPPORTED_FORMATS = ("jpeg", "png", "webp", "heic")


class ImageStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    format: str  # "jpeg", "png", "webp", "heic"
    channels: int = 3
    has_alpha: bool = False
    is_progressive: Optional[bool] = None
    size_bytes: int

    @property
    def is_jpeg(self) -> bool:
        return self.format == "jpeg"


class ImageSample(BaseModel):
    """Per-request input. Never mutated, discarded once the verdict is computed."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str = ""
    stats: ImageStats


class ExifSignals(BaseModel):
    has_exif: bool = False
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    software: Optional[str] = None
    date_time: Optional[str] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    iso: Optional[float] = None
    aperture: Optional[float] = None
    shutter_speed: Optional[float] = None
    focal_length: Optional[float] = None
    flash: Optional[bool] = None
    orientation: Optional[int] = None


class NoiseAnalysis(BaseModel):
    noise_level: float
    noise_consistency: float
    channel_variance: Dict[str, float] = {"r": 0.0, "g": 0.0, "b": 0.0}


class ArtifactSignals(BaseModel):
    compression: bool = False
    blur: bool = False
    color_adjustment: bool = False
    noise_patterns: bool = False
    inconsistent_lighting: bool = False
    edge_artifacts: bool = False
    unnatural_smoothing: bool = False
    repetitive_patterns: bool = False

    @property
    def suspicious_count(self) -> int:
        """Plain count of raised flags (the gate's notion of suspicious artifacts)."""
        return sum(1 for flag in self.model_dump().values() if flag)


class FeatureScores(BaseModel):
    exif_score: float
    noise_score: float
    artifact_score: float
    ela_score: float  # exactly 0 for anything but JPEG
    technical_score: float


class OracleVerdict(BaseModel):
    """
    Vision classifier opinion. Oracle JSON is free-form, so every field is coerced
    to a safe default instead of trusting the wire types.
    """
    label: OracleLabel = "original"
    confidence: int = 60
    content_type: ContentType = "unknown"
    non_ai_evidence: bool = False
    reasoning: str = ""
    artifacts: List[str] = []
    source: Literal["oracle", "fallback"] = "oracle"

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, v):
        return v if v in ORACLE_LABELS else "original"

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 60
        if math.isnan(value):
            return 60
        return int(math.floor(min(100.0, max(0.0, value)) + 0.5))

    @field_validator("content_type", mode="before")
    @classmethod
    def _coerce_content_type(cls, v):
        return v if v in CONTENT_TYPES else "unknown"

    @field_validator("non_ai_evidence", mode="before")
    @classmethod
    def _coerce_evidence(cls, v):
        return v is True or (isinstance(v, str) and v.strip().lower() == "true")

    @field_validator("reasoning", mode="before")
    @classmethod
    def _coerce_reasoning(cls, v):
        return "" if v is None else str(v)

    @field_validator("artifacts", mode="before")
    @classmethod
    def _coerce_artifacts(cls, v):
        if not isinstance(v, list):
            return []
        return [str(a) for a in v]


class GenAIVerdict(BaseModel):
    is_generated: bool
    confidence: float  # 0-100


class ImageMetadata(BaseModel):
    width: int
    height: int
    format: str  # upper-case, e.g. "JPEG"
    size: int
    has_exif: bool
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None


class DebugScores(BaseModel):
    exif_score: float
    noise_score: float
    artifact_score: float
    ela_score: float
    technical_score: float
    ai_confidence: float
    realness_score: float
    significant_artifacts: int
    noise_level: float
    noise_consistency: float
    ai_reasoning: str = ""
    ai_detected_artifacts: List[str] = []
    ml_model: str
    fused_label: OracleLabel
    fused_confidence: int
    applied_rules: List[str] = []


class Verdict(BaseModel):
    label: VerdictLabel
    confidence: int
    features: FeatureScores
    artifacts: ArtifactSignals
    metadata: ImageMetadata
    oracle: OracleVerdict
    genai: Optional[GenAIVerdict] = None
    debug_scores: DebugScores
    timing_ms: Optional[Dict[str, Any]] = None
