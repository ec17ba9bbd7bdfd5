from config import GEMINI_MODEL
from http_client import request_with_retry


GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1/models"

GENERATION_CONFIG = {
    "temperature": 0.1,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 8000,
}

TRUNCATION_WARNING = "\n\n[WARNING: Analysis may be incomplete - response was truncated due to length]"


class GeminiError(RuntimeError):
    pass


def extract_text(result: dict) -> str:
    if not isinstance(result, dict):
        raise GeminiError(f"Unexpected Gemini response type: {type(result).__name__}")

    feedback = result.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise GeminiError(f"Content blocked by Gemini: {feedback['blockReason']}")

    candidates = result.get("candidates") or []
    if not candidates:
        raise GeminiError("No candidates in Gemini response")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise GeminiError("Unexpected candidate format in Gemini response")
    finish_reason = candidate.get("finishReason")
    if finish_reason == "SAFETY":
        raise GeminiError("Response blocked due to safety filters")

    parts = (candidate.get("content") or {}).get("parts") or []
    if not parts:
        raise GeminiError(f"No content in candidate. Finish reason: {finish_reason}")

    text = parts[0].get("text")
    if not text:
        raise GeminiError("Empty text in Gemini response")

    if finish_reason == "MAX_TOKENS":
        text += TRUNCATION_WARNING
    return text


def generate_text(prompt: str, api_key: str, model: str = GEMINI_MODEL) -> str:
    response = request_with_retry(
        "POST",
        f"{GEMINI_API_BASE}/{model}:generateContent",
        headers={
            "Content-Type": "application/json",
            "x-goog-api-key": api_key,
        },
        json={
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        },
    )

    try:
        result = response.json()
    except ValueError as err:
        raise GeminiError(f"Failed to parse Gemini response: {err}") from err
    return extract_text(result)
