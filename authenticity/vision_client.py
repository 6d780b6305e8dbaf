import os
import json
import base64
import asyncio
import logging
from typing import Optional
from openai import AsyncOpenAI

from authenticity.schemas import OracleVerdict
from authenticity.scoring_config import ScoringConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a careful AI image forensics expert. Your job is to detect AI generation or AI-assisted edits, but you must avoid false positives. Do NOT assume an image is edited by default.

DEFINITIONS:
- "original": the content is NOT AI-generated and NOT AI-edited. It can be a real-world camera photo (including photos of a painting, drawing, printed poster or screen) or a human-made drawing/illustration (digital or on paper).
- "ai_generated": the content was generated by an AI image model.
- "ai_modified": a real, human-made or otherwise non-AI base image that was edited with AI tools.

FAIL-SAFE RULE:
- Only classify as "original" if you have clear, positive evidence it is non-AI.
- If the image is a stylized illustration/cartoon/comic/CG render and you are not confident it is human-made, return "ai_generated" or "ai_modified" only with specific evidence; otherwise prefer "original" with LOW confidence (50-69) and explain the uncertainty.

AI EDITS TO LOOK FOR:
- Hair changes (added bangs, colour or style changes, "painted" texture, edges that do not blend into the face)
- Facial feature changes, skin smoothing, age modifications, added makeup
- Objects that look pasted (different noise/grain), added text or logos, background replacement or extension, inpainting
- Lighting and shadow inconsistencies between elements
- Hallucinated detail in complex textures (leaves, grass, hair), mismatched earrings, broken glasses frames, blended fingers
- Localized areas with DIFFERENT noise grain than the rest of the image

FULLY AI-GENERATED IMAGES:
- Unnatural skin texture throughout, malformed hands/fingers/text/teeth
- Repetitive patterns or impossible perspective, unusual colour gradients or noise

TRULY ORIGINAL PHOTOS (be strict):
- Consistent noise/grain across the whole image including hair
- No localized smoothing or texture differences, individual hair strands visible
- Uniform lighting and shadows

Only classify as "ai_modified" when you can name clear, specific evidence of editing. If unsure, prefer "original" with lower confidence.

CONFIDENCE GUIDELINES:
- 90-100: multiple strong, specific artifacts.
- 70-89: some evidence, not conclusive.
- 50-69: weak evidence / uncertain.
- Below 50 is not allowed; if uncertain, return "original" with confidence 50-69.

Respond with valid JSON only:
{
  "classification": "original" | "ai_generated" | "ai_modified",
  "confidence": 0-100,
  "content_type": "photo" | "illustration" | "render" | "screenshot" | "unknown",
  "non_ai_evidence": true | false,
  "reasoning": "explanation",
  "artifacts": ["list"]
}"""

USER_PROMPT = (
    "Analyze this image for signs of AI generation or AI-assisted edits. Decide whether the content is "
    "non-AI (human-made) vs AI-generated. A photo of a real drawing/painting is still non-AI (original). "
    "Only classify as ai_modified when you can name clear, specific visual evidence. If evidence is "
    "weak/uncertain, prefer original with lower confidence. Return JSON only."
)


def get_config():
    return {
        "api_key": os.getenv("OPENAI_API_KEY"),
        "base_url": os.getenv("OPENAI_BASE_URL") or None,
        "model": os.getenv("VISION_MODEL", "gpt-4o"),
        "timeout": float(os.getenv("ORACLE_TIMEOUT_SECONDS", ScoringConfig.ORACLE["TIMEOUT_SECONDS"])),
    }


def parse_vision_response(content: Optional[str]) -> OracleVerdict:
    """
    Decode the model's free-form JSON into a validated verdict.
    Unknown enum values collapse to safe defaults; non-object JSON raises ValueError.
    """
    parsed = json.loads(content or "{}")
    if not isinstance(parsed, dict):
        raise ValueError(f"Vision response is not a JSON object: {type(parsed).__name__}")
    return OracleVerdict(
        label=parsed.get("classification"),
        confidence=parsed.get("confidence"),
        content_type=parsed.get("content_type"),
        non_ai_evidence=parsed.get("non_ai_evidence"),
        reasoning=parsed.get("reasoning"),
        artifacts=parsed.get("artifacts"),
        source="oracle",
    )


async def _request_classification(client: AsyncOpenAI, model: str, data_url: str) -> OracleVerdict:
    response = await client.chat.completions.create(
        model=model,
        response_format={"type": "json_object"},
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": USER_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url, "detail": "high"}},
                ],
            },
        ],
        max_tokens=500,
    )
    content = response.choices[0].message.content if response.choices else None
    return parse_vision_response(content)


async def run_vision_analysis(payload: bytes, mime_type: str = "image/jpeg") -> Optional[OracleVerdict]:
    """
    Ask the vision classifier for an opinion.
    Returns None when unconfigured, timed out or malformed; callers substitute the
    technical fallback. Never raises and never retries.
    """
    config = get_config()
    if not config["api_key"]:
        logger.warning("[VISION] OPENAI_API_KEY not configured, skipping classifier")
        return None

    data_url = f"data:{mime_type};base64,{base64.b64encode(payload).decode('utf-8')}"
    try:
        async with AsyncOpenAI(
            api_key=config["api_key"],
            base_url=config["base_url"],
            timeout=config["timeout"],
            max_retries=0,
        ) as client:
            verdict = await asyncio.wait_for(
                _request_classification(client, config["model"], data_url),
                timeout=config["timeout"],
            )
        logger.info(f"[VISION] {verdict.label} ({verdict.confidence}) content_type={verdict.content_type}")
        return verdict
    except asyncio.TimeoutError:
        logger.error(f"[VISION] Classifier timed out after {config['timeout']}s")
    except Exception as e:
        logger.error(f"[VISION] Classifier failed: {e}")
    return None
