# =============================================================================
# Huely - Vision Model HTTP Client
# =============================================================================
# Provides the VisionClient class responsible for base64-encoding a captured
# JPEG and submitting it, together with a prompt, to an OpenAI-compatible
# Chat Completions endpoint via HTTP POST.
# =============================================================================

import base64
import logging
import os
import time
from typing import Optional

import requests
from pydantic import ValidationError

from huely.errors import AnalysisError
from huely.schemas import ChatCompletionResponse

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful assistant that analyzes screenshots.

If the image contains:
- A question (academic, technical, or general)
- A coding problem or LeetCode-style challenge
- A math problem
- Any prompt requesting a solution or answer

Then provide a clear, direct answer or solution. For coding problems:
1. IMPORTANT: Check the image for language indicators:
   - Look for language selection dropdowns/buttons (e.g., "Python3", "Java", "C++", "JavaScript")
   - Check for file extensions (.py, .java, .cpp, .js, etc.)
   - Look for language-specific syntax already present
   - Check problem tags or headers mentioning a language
2. Use the language shown in the image. If no language is specified, use Python
3. Provide a brief explanation of the approach
4. Give the complete solution code in the detected/specified language
5. Include time and space complexity analysis if relevant

If the image doesn't contain a question, simply describe what you see."""

DEFAULT_PROMPT = (
    "Analyze this image. If it contains a question or problem, provide the "
    "answer or solution. Pay special attention to any programming language "
    "specified or selected in the image."
)

EMPTY_RESPONSE_TEXT = "No response from the model"


class VisionClient:
    """
    HTTP client for the vision-capable language model.

    Args:
        api_key:         Bearer token for the service.
        base_url:        API root (e.g., "https://api.openai.com/v1").
        model:           Model name sent with each request.
        max_tokens:      Upper bound on the length of the answer.
        temperature:     Sampling temperature.
        timeout:         Seconds to wait for a single HTTP exchange.
        max_retries:     Attempts for transport errors and HTTP 5xx.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        max_tokens: int = 1500,
        temperature: float = 0.7,
        timeout: float = 60.0,
        max_retries: int = 3,
    ):
        if not api_key:
            raise AnalysisError("An API key is required to analyze images")
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._session = requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        })

    @classmethod
    def from_config(cls, api_key: str, config) -> "VisionClient":
        return cls(
            api_key=api_key,
            base_url=config.api_base_url,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.request_timeout_seconds,
            max_retries=config.request_max_retries,
        )

    @staticmethod
    def load_jpeg(image_path: str) -> bytes:
        """
        Read ``image_path`` and check that it holds JPEG data.

        Raises:
            AnalysisError: If the file is missing, empty or not a JPEG.
        """
        if not os.path.exists(image_path):
            raise AnalysisError(f"Image file not found: {image_path}")
        with open(image_path, "rb") as f:
            data = f.read()
        if not data:
            raise AnalysisError("Captured image file is empty")
        if not data.startswith(b"\xff\xd8"):
            raise AnalysisError("Image is not in JPEG format after conversion")
        return data

    def build_payload(self, image_bytes: bytes, prompt: Optional[str] = None) -> dict:
        image_b64 = base64.b64encode(image_bytes).decode("ascii")
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt or DEFAULT_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                        },
                    ],
                },
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    def analyze_image(self, image_path: str, prompt: Optional[str] = None) -> str:
        """
        Send the JPEG at ``image_path`` to the model and return its answer.

        Transport failures and HTTP 5xx responses are retried with
        exponential backoff; client errors (4xx) fail immediately.

        Args:
            image_path: Path of a validated JPEG.
            prompt:     Optional user prompt; DEFAULT_PROMPT when omitted.

        Returns:
            The model's text answer.

        Raises:
            AnalysisError: On any failure.
        """
        payload = self.build_payload(self.load_jpeg(image_path), prompt)
        url = f"{self._base_url}/chat/completions"
        last_error = None

        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._session.post(url, json=payload, timeout=self._timeout)
            except requests.exceptions.RequestException as exc:
                last_error = AnalysisError(f"Failed to analyze image: {exc}")
            else:
                if response.status_code < 500:
                    return self._parse_response(response)
                last_error = AnalysisError(
                    f"Failed to analyze image: server error {response.status_code}"
                )

            if attempt < self._max_retries:
                wait_time = 2 ** (attempt - 1)
                logger.warning(
                    "Analysis request failed (attempt %d/%d): %s -- retrying in %ds",
                    attempt, self._max_retries, last_error, wait_time,
                )
                time.sleep(wait_time)

        logger.error("All %d analysis attempts failed", self._max_retries)
        raise last_error

    def _parse_response(self, response: requests.Response) -> str:
        if response.status_code == 401:
            raise AnalysisError("Failed to analyze image: authentication failed, check your API key")
        if response.status_code == 429:
            raise AnalysisError("Failed to analyze image: rate limit or quota exceeded")
        if response.status_code >= 400:
            raise AnalysisError(
                f"Failed to analyze image: {response.status_code} {_error_message(response)}"
            )

        try:
            completion = ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AnalysisError(f"Failed to analyze image: malformed response: {exc}") from exc

        logger.debug("Analysis by %s complete (%d choice(s))", completion.model, len(completion.choices))
        if not completion.choices or not completion.choices[0].message.content:
            return EMPTY_RESPONSE_TEXT
        return completion.choices[0].message.content


def _error_message(response: requests.Response) -> str:
    """Best-effort extraction of the service's error message."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text.strip()
