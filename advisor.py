"""
advisor.py
One-shot Gemini request for a personalised explanation, three shoe models and
one exercise, plus the outbound shopping-search link.
No retries: a failed request leaves the advisory panel empty.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import requests

import config
from errors import AdvisoryServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "Sports orthopaedist. JSON output."


@dataclass(frozen=True)
class Exercise:
    name:        str
    instruction: str


@dataclass(frozen=True)
class AdvisoryContent:
    explanation: str
    shoes:       list = field(default_factory=list)
    exercise:    Optional[Exercise] = None


def shoe_display_name(shoe) -> str:
    """Shoe entries come back as plain strings or as {name|model: …} objects."""
    if not shoe:
        return ""
    if isinstance(shoe, str):
        return shoe
    if isinstance(shoe, dict):
        return shoe.get("name") or shoe.get("model") or "Running shoe"
    return str(shoe)


def shopping_url(shoe, shoe_size) -> str:
    query = f"{shoe_display_name(shoe)} EU {shoe_size} running shoe"
    return config.SHOPPING_SEARCH_URL.format(query=quote(query, safe=""))


def build_prompt(foot_type_name, shoe_size, csi, si) -> str:
    return (
        f"Analysis: {foot_type_name}, size: {shoe_size}, CSI: {csi}, SI: {si}. "
        "JSON: {explanation: str, shoes: [str,str,str], "
        "exercise: {name: str, instruction: str}}"
    )


def parse_advice(payload: dict) -> AdvisoryContent:
    """generateContent response body → AdvisoryContent."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
        content = json.loads(text)
    except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
        raise AdvisoryServiceError(f"Malformed advisory response: {e}") from e

    if not isinstance(content, dict):
        raise AdvisoryServiceError("Advisory response is not a JSON object")

    raw_shoes = content.get("shoes")
    if isinstance(raw_shoes, str):
        raw_shoes = [raw_shoes]
    elif not isinstance(raw_shoes, list):
        raw_shoes = []
    shoes = [shoe_display_name(s) for s in raw_shoes if s]

    exercise = None
    raw_ex = content.get("exercise")
    if isinstance(raw_ex, dict) and raw_ex.get("name"):
        exercise = Exercise(name=str(raw_ex["name"]),
                            instruction=str(raw_ex.get("instruction", "")))

    return AdvisoryContent(
        explanation=str(content.get("explanation") or ""),
        shoes=shoes,
        exercise=exercise,
    )


def request_advice(foot_type_name, shoe_size, csi, si, api_key=None,
                   model=None, timeout=None) -> AdvisoryContent:
    """POST to Gemini generateContent. Raises AdvisoryServiceError on any failure."""
    api_key = api_key or config.GEMINI_API_KEY
    model   = model or config.GEMINI_MODEL
    timeout = timeout or config.ADVISOR_TIMEOUT
    if not api_key:
        raise AdvisoryServiceError("GEMINI_API_KEY is not configured")

    url  = f"{config.GEMINI_BASE_URL}/models/{model}:generateContent"
    body = {
        "contents": [{"parts": [{"text": build_prompt(foot_type_name, shoe_size, csi, si)}]}],
        "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
        "generationConfig": {"responseMimeType": "application/json"},
    }

    logger.info("Requesting advice from %s for %s", model, foot_type_name)
    try:
        r = requests.post(url, params={"key": api_key}, json=body, timeout=timeout)
        r.raise_for_status()
        payload = r.json()
    except (requests.RequestException, ValueError) as e:
        raise AdvisoryServiceError(f"Advisory request failed: {e}") from e

    return parse_advice(payload)


def fetch_advice(foot_type_name, shoe_size, csi, si, **kwargs):
    """Like request_advice, but logs failures and returns None."""
    try:
        return request_advice(foot_type_name, shoe_size, csi, si, **kwargs)
    except AdvisoryServiceError as e:
        logger.warning("Advisory unavailable: %s", e)
        return None
