from authenticity.detectors.core import classify

__all__ = ["classify"]
