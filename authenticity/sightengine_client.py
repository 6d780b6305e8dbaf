import os
import asyncio
import logging
import httpx
from typing import Optional

from authenticity.schemas import GenAIVerdict
from authenticity.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)

SIGHTENGINE_URL = "https://api.sightengine.com/1.0/check.json"


def get_config():
    return {
        "api_user": os.getenv("SIGHTENGINE_API_USER"),
        "api_secret": os.getenv("SIGHTENGINE_API_SECRET"),
        "timeout": float(os.getenv("ORACLE_TIMEOUT_SECONDS", ScoringConfig.ORACLE["TIMEOUT_SECONDS"])),
    }


def parse_genai_response(data) -> Optional[GenAIVerdict]:
    """Validate a check.json body. Anything other than a well-formed genai block is "no opinion"."""
    if not isinstance(data, dict):
        raise ValueError("SightEngine response is not a JSON object")
    if data.get("status") != "success":
        error = data.get("error") or {}
        message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
        raise ValueError(f"SightEngine API failure: {message}")

    genai = (data.get("type") or {}).get("genai")
    if not isinstance(genai, dict):
        logger.warning("[SIGHTENGINE] Response carries no genai block")
        return None

    try:
        is_generated = float(genai.get("is_generated")) > 0.5
        confidence = float(genai.get("confidence")) * 100.0
    except (TypeError, ValueError):
        logger.warning(f"[SIGHTENGINE] Malformed genai block: {genai}")
        return None

    return GenAIVerdict(is_generated=is_generated, confidence=max(0.0, min(100.0, confidence)))


async def run_genai_detection(payload: bytes, mime_type: str = "image/jpeg") -> Optional[GenAIVerdict]:
    """
    Ask the generative-image detector for an opinion.
    Absence (None) is a normal outcome: unconfigured, timed out, HTTP error or
    malformed body all mean "no opinion". Never raises and never retries.
    """
    config = get_config()
    if not (config["api_user"] and config["api_secret"]):
        logger.warning("[SIGHTENGINE] Credentials missing, skipping detector")
        return None

    extension = mime_type.split("/")[-1]
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(config["timeout"])) as client:
            resp = await asyncio.wait_for(
                client.post(
                    SIGHTENGINE_URL,
                    data={
                        "models": "genai",
                        "api_user": config["api_user"],
                        "api_secret": config["api_secret"],
                    },
                    files={"media": (f"image.{extension}", payload, mime_type)},
                ),
                timeout=config["timeout"],
            )
            resp.raise_for_status()
            verdict = parse_genai_response(resp.json())
        if verdict:
            logger.info(f"[SIGHTENGINE] is_generated={verdict.is_generated} confidence={verdict.confidence:.1f}")
        return verdict
    except (asyncio.TimeoutError, httpx.TimeoutException):
        logger.error(f"[SIGHTENGINE] Detector timed out after {config['timeout']}s")
    except Exception as e:
        logger.error(f"[SIGHTENGINE] Detector failed: {e}")
    return None
