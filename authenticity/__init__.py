from authenticity.detectors.core import classify
from authenticity.errors import InputDecodeError
from authenticity.schemas import Verdict
from authenticity.scoring_config import ScoringConfig

__all__ = ["classify", "InputDecodeError", "Verdict", "ScoringConfig"]
