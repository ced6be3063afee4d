import logging
import time
import requests
from typing import Any, Dict, List, Optional
from app.core import config

logger = logging.getLogger(__name__)


def _build_contents(prompt: Optional[str], messages: Optional[List[Dict[str, str]]]) -> List[Dict[str, Any]]:
    contents = []
    for message in messages or []:
        role = "model" if message.get("role") == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": message.get("content", "")}]})
    if prompt:
        contents.append({"role": "user", "parts": [{"text": prompt}]})
    return contents


def generate_text(
    prompt: Optional[str] = None,
    *,
    system_prompt: Optional[str] = None,
    messages: Optional[List[Dict[str, str]]] = None,
    temperature: float = 0.2,
    max_output_tokens: int = 8192,
) -> str:
    """
    Run one Gemini completion and return the raw text of the first candidate.

    `messages` is a chat history of {"role": "user"|"assistant", "content": str}.
    Raises on a missing API key, HTTP failure or an empty candidate list.
    """
    if not config.GEMINI_API_KEY:
        raise ValueError("GEMINI_API_KEY environment variable not set")

    contents = _build_contents(prompt, messages)
    if not contents:
        raise ValueError("Nothing to send: prompt and messages are both empty")

    url = config.GEMINI_URL.format(model=config.GEMINI_MODEL)
    headers = {"Content-Type": "application/json"}

    payload: Dict[str, Any] = {
        "contents": contents,
        "generationConfig": {
            "temperature": temperature,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": max_output_tokens,
        }
    }
    if system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

    last_error = None
    for attempt in range(config.MAX_RETRIES):
        try:
            response = requests.post(
                url,
                params={"key": config.GEMINI_API_KEY},
                headers=headers,
                json=payload,
                timeout=config.HTTP_TIMEOUT,
            )
            response.raise_for_status()

            data = response.json()

            if "candidates" not in data or not data["candidates"]:
                raise ValueError("No candidates in response")

            parts = data["candidates"][0].get("content", {}).get("parts", [])
            return "".join(part.get("text", "") for part in parts)

        except requests.exceptions.HTTPError as e:
            last_error = e
            status = e.response.status_code if e.response is not None else None
            # Rate limits get a longer wait
            if status == 429 and attempt < config.MAX_RETRIES - 1:
                wait_time = 5 * (attempt + 1)
                logger.warning(f"Rate limit hit, waiting {wait_time}s before retry {attempt + 2}/{config.MAX_RETRIES}")
                time.sleep(wait_time)
            elif attempt < config.MAX_RETRIES - 1:
                time.sleep(config.RETRY_DELAY * (attempt + 1))
        except Exception as e:
            last_error = e
            if attempt < config.MAX_RETRIES - 1:
                time.sleep(config.RETRY_DELAY * (attempt + 1))

    raise RuntimeError(f"Gemini request failed after {config.MAX_RETRIES} attempt(s). Last error: {last_error}")


def call_gemini(prompt: str) -> str:
    return generate_text(prompt)
