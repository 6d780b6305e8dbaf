import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from authenticity.schemas import OracleVerdict
from authenticity.sightengine_client import SIGHTENGINE_URL, parse_genai_response, run_genai_detection
from authenticity.vision_client import parse_vision_response, run_vision_analysis


# --- vision response parsing ---

def test_parse_vision_response_well_formed():
    content = json.dumps({
        "classification": "ai_modified",
        "confidence": 87,
        "content_type": "photo",
        "non_ai_evidence": False,
        "reasoning": "Hair edges do not blend",
        "artifacts": ["hair halo", "smoothed skin"],
    })
    verdict = parse_vision_response(content)
    assert verdict.label == "ai_modified"
    assert verdict.confidence == 87
    assert verdict.content_type == "photo"
    assert verdict.non_ai_evidence is False
    assert verdict.artifacts == ["hair halo", "smoothed skin"]
    assert verdict.source == "oracle"


def test_parse_vision_response_coerces_unknown_values():
    content = json.dumps({
        "classification": "deepfake",
        "confidence": "very high",
        "content_type": "meme",
        "non_ai_evidence": "yes",
        "reasoning": None,
        "artifacts": "none",
    })
    verdict = parse_vision_response(content)
    assert verdict.label == "original"
    assert verdict.confidence == 60
    assert verdict.content_type == "unknown"
    assert verdict.non_ai_evidence is False
    assert verdict.reasoning == ""
    assert verdict.artifacts == []


@pytest.mark.parametrize("raw,expected", [(150, 100), (-5, 0), (72.5, 73), ("88", 88), (0, 0), (None, 60)])
def test_parse_vision_response_confidence_range(raw, expected):
    verdict = parse_vision_response(json.dumps({"classification": "original", "confidence": raw}))
    assert verdict.confidence == expected


def test_parse_vision_response_string_true_evidence():
    verdict = parse_vision_response(json.dumps({"non_ai_evidence": "true"}))
    assert verdict.non_ai_evidence is True


def test_parse_vision_response_empty_content_defaults():
    verdict = parse_vision_response(None)
    assert verdict == OracleVerdict()


@pytest.mark.parametrize("content", ["not json", "[1, 2, 3]", "42"])
def test_parse_vision_response_rejects_non_objects(content):
    with pytest.raises(ValueError):
        parse_vision_response(content)


# --- vision client ---

@pytest.mark.asyncio
async def test_vision_unconfigured_returns_none():
    assert await run_vision_analysis(b"fake", "image/jpeg") is None


@pytest.mark.asyncio
async def test_vision_success(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    expected = OracleVerdict(label="ai_generated", confidence=93, content_type="render")
    with patch("authenticity.vision_client._request_classification", new=AsyncMock(return_value=expected)) as mock_req:
        verdict = await run_vision_analysis(b"fake", "image/png")
    assert verdict == expected
    _, model, data_url = mock_req.call_args.args
    assert model == "gpt-4o"
    assert data_url.startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_vision_timeout_returns_none(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ORACLE_TIMEOUT_SECONDS", "0.05")

    async def slow(*args, **kwargs):
        await asyncio.sleep(5)

    with patch("authenticity.vision_client._request_classification", new=slow):
        assert await run_vision_analysis(b"fake") is None


@pytest.mark.asyncio
async def test_vision_error_returns_none(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with patch(
        "authenticity.vision_client._request_classification",
        new=AsyncMock(side_effect=ValueError("Vision response is not a JSON object: list")),
    ):
        assert await run_vision_analysis(b"fake") is None


# --- detector response parsing ---

def test_parse_genai_response_generated():
    verdict = parse_genai_response({"status": "success", "type": {"genai": {"is_generated": 0.97, "confidence": 0.97}}})
    assert verdict.is_generated is True
    assert verdict.confidence == pytest.approx(97.0)


def test_parse_genai_response_threshold_is_exclusive():
    verdict = parse_genai_response({"status": "success", "type": {"genai": {"is_generated": 0.5, "confidence": 0.5}}})
    assert verdict.is_generated is False
    assert verdict.confidence == pytest.approx(50.0)


def test_parse_genai_response_clamps_confidence():
    verdict = parse_genai_response({"status": "success", "type": {"genai": {"is_generated": 1, "confidence": 1.4}}})
    assert verdict.confidence == 100.0


@pytest.mark.parametrize(
    "body",
    [
        {"status": "success"},
        {"status": "success", "type": {}},
        {"status": "success", "type": {"genai": "n/a"}},
        {"status": "success", "type": {"genai": {"is_generated": None, "confidence": 0.9}}},
    ],
)
def test_parse_genai_response_missing_block_is_no_opinion(body):
    assert parse_genai_response(body) is None


@pytest.mark.parametrize(
    "body",
    [
        {"status": "failure", "error": {"message": "Invalid API credentials"}},
        {"status": "failure", "error": "quota"},
        ["success"],
    ],
)
def test_parse_genai_response_failures_raise(body):
    with pytest.raises(ValueError):
        parse_genai_response(body)


# --- detector client ---

def _response(status_code, body):
    return httpx.Response(status_code, json=body, request=httpx.Request("POST", SIGHTENGINE_URL))


@pytest.fixture
def sightengine_credentials(monkeypatch):
    monkeypatch.setenv("SIGHTENGINE_API_USER", "user")
    monkeypatch.setenv("SIGHTENGINE_API_SECRET", "secret")


@pytest.mark.asyncio
async def test_genai_unconfigured_returns_none():
    assert await run_genai_detection(b"fake", "image/jpeg") is None


@pytest.mark.asyncio
async def test_genai_success(sightengine_credentials):
    body = {"status": "success", "type": {"genai": {"is_generated": 0.02, "confidence": 0.98}}}
    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=_response(200, body))) as mock_post:
        verdict = await run_genai_detection(b"fake", "image/webp")

    assert verdict.is_generated is False
    assert verdict.confidence == pytest.approx(98.0)
    url = mock_post.call_args.args[0]
    kwargs = mock_post.call_args.kwargs
    assert url == SIGHTENGINE_URL
    assert kwargs["data"] == {"models": "genai", "api_user": "user", "api_secret": "secret"}
    assert kwargs["files"]["media"] == ("image.webp", b"fake", "image/webp")


@pytest.mark.asyncio
async def test_genai_http_error_returns_none(sightengine_credentials):
    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=_response(500, {"status": "failure"}))):
        assert await run_genai_detection(b"fake") is None


@pytest.mark.asyncio
async def test_genai_api_failure_returns_none(sightengine_credentials):
    body = {"status": "failure", "error": {"message": "Usage limit reached"}}
    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(return_value=_response(200, body))):
        assert await run_genai_detection(b"fake") is None


@pytest.mark.asyncio
async def test_genai_timeout_returns_none(sightengine_credentials):
    with patch.object(httpx.AsyncClient, "post", new=AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))):
        assert await run_genai_detection(b"fake") is None
