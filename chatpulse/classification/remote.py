"""
Remote tone classifier client.

Classifies chat messages with an OpenAI-compatible chat completions
endpoint. The model is asked for a JSON object holding one tone category,
a confidence and a short rationale; the reply is validated with Pydantic
before it is trusted.

Endpoint:
    POST {base_url}/chat/completions

Response Format (message content):
    {"tone": "hype", "confidence": 0.8, "rationale": "celebrating the play"}

Errors:
    - HTTP 429, or an error body mentioning quota / rate limit:
      ClassifierQuotaError
    - Any other HTTP error, transport error or timeout: ClassifierError
    - Unparseable or invalid content: ClassifierResponseError
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
import structlog
from pydantic import BaseModel, Field, ValidationError

from chatpulse.config.models import ClassifierConfig
from chatpulse.exceptions import ClassifierError, ClassifierQuotaError, ClassifierResponseError
from chatpulse.interfaces.tone_classifier import ToneClassifier
from chatpulse.models.chat import Tone, ToneResult

logger = structlog.get_logger(__name__)

CONTEXT_MESSAGES = 6

SYSTEM_PROMPT = """You label live chat messages for a streamer-facing dashboard.
Keep it brief and pick the single best category.
Categories:
- hype: energetic hype, celebration, cheering
- supportive: encouragement, gratitude, friendly chatter
- humor: jokes, playful banter, laughter
- informational: factual statements, bookkeeping, schedule updates
- question: a question or help request
- constructive: respectful suggestions or feedback with actionable tone
- critical: negative sentiment without slurs or harassment
- sarcastic: dry or ironic comments with unclear intent
- toxic: harassment, slurs, bullying, hate, threats
- spam: copy-pasted promos, obvious spam links, attention-begging blasts
- system: bot-like commands, moderator notices
- unknown: anything that doesn't fit elsewhere

Reply with a JSON object: {"tone": <category>, "confidence": <0-1>, "rationale": <=50 chars}."""


class RemoteToneResponse(BaseModel):
    """Validated JSON content returned by the model."""

    model_config = {"extra": "ignore"}

    tone: Tone
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    rationale: str = ""


def _mentions_quota(value: Any) -> bool:
    """Check if an error field mentions quota or rate limiting."""
    if not isinstance(value, str):
        return False
    lowered = value.lower()
    return "quota" in lowered or "rate limit" in lowered or "rate_limit" in lowered


def is_quota_error_body(body: Dict[str, Any]) -> bool:
    """
    Check whether an error response body reports quota exhaustion.

    Looks at ``error.message``, ``error.code`` and ``error.type``.
    """
    error = body.get("error")
    if isinstance(error, dict):
        return any(_mentions_quota(error.get(field)) for field in ("message", "code", "type"))
    return _mentions_quota(error)


def build_messages(text: str, author: str, recent_messages: Sequence[str]) -> List[Dict[str, str]]:
    """Build the chat completion messages for one classification."""
    context = [entry.strip() for entry in list(recent_messages)[-CONTEXT_MESSAGES:]]
    context = [entry for entry in context if entry]

    parts = []
    if context:
        parts.append("Recent context:\n" + "\n".join(context) + "\n")
    parts.append(f"Message from {author or 'viewer'}:\n{text.strip()}\n")
    parts.append("Respond with tone, confidence (0-1), and rationale (<=50 chars).")

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(parts)},
    ]


class OpenAIToneClassifier(ToneClassifier):
    """
    Async tone classifier backed by an OpenAI-compatible API.

    Attributes:
        base_url: API base URL.
        model: Model name.
        timeout_seconds: HTTP timeout for one call.

    Example:
        >>> classifier = OpenAIToneClassifier(api_key="sk-...", model="gpt-4o-mini")
        >>> result = await classifier.classify("what a clutch play", "viewer42", [])
        >>> print(result.tone, result.confidence)
        >>> await classifier.close()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 3.0,
        max_tokens: int = 150,
        temperature: float = 0.0,
    ):
        """
        Initialize the classifier client.

        Args:
            api_key: Bearer token for the API.
            base_url: API base URL.
            model: Model name.
            timeout_seconds: HTTP timeout for one call.
            max_tokens: Completion token limit.
            temperature: Sampling temperature.
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._api_key = api_key
        self._session: Optional[aiohttp.ClientSession] = None

        logger.info(
            "remote_tone_classifier_initialized",
            base_url=self.base_url,
            model=model,
            timeout_seconds=timeout_seconds,
        )

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                    "User-Agent": "chatpulse/1.0",
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("remote_tone_classifier_session_closed", base_url=self.base_url)

    async def _request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a chat completion request.

        Returns:
            Dict[str, Any]: Parsed JSON response.

        Raises:
            ClassifierQuotaError: On 429 or a quota error body.
            ClassifierResponseError: If the body is not valid JSON.
            ClassifierError: On other HTTP or transport failures.
        """
        session = await self._ensure_session()
        url = f"{self.base_url}/chat/completions"

        try:
            async with session.post(url, json=payload) as response:
                if response.status == 429:
                    logger.warning("remote_tone_rate_limited", url=url)
                    raise ClassifierQuotaError("Rate limited by tone classifier (429)")

                if response.status >= 400:
                    error_text = await response.text()
                    try:
                        body = json.loads(error_text)
                    except ValueError:
                        body = {"error": error_text}
                    if isinstance(body, dict) and is_quota_error_body(body):
                        raise ClassifierQuotaError(
                            f"Tone classifier quota exhausted (status {response.status})"
                        )
                    logger.error(
                        "remote_tone_request_failed",
                        url=url,
                        status=response.status,
                        error=error_text[:200],
                    )
                    raise ClassifierError(
                        f"Tone classifier request failed with status {response.status}"
                    )

                try:
                    return await response.json()
                except (aiohttp.ContentTypeError, ValueError) as e:
                    logger.error("remote_tone_invalid_body", url=url, error=str(e))
                    raise ClassifierResponseError(
                        f"Tone classifier returned a non-JSON body: {e}"
                    ) from e

        except aiohttp.ClientError as e:
            logger.error("remote_tone_client_error", url=url, error=str(e))
            raise ClassifierError(f"Tone classifier request failed: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error("remote_tone_timeout", url=url, timeout=self.timeout_seconds)
            raise ClassifierError(
                f"Tone classifier timeout after {self.timeout_seconds}s"
            ) from e

    async def classify(
        self,
        text: str,
        author: str,
        recent_messages: Sequence[str],
    ) -> ToneResult:
        """
        Classify a message remotely.

        Args:
            text: Message text.
            author: Author display name.
            recent_messages: Recent channel messages, oldest first.

        Returns:
            ToneResult: Validated classification.

        Raises:
            ClassifierQuotaError: On quota exhaustion.
            ClassifierResponseError: If the reply cannot be parsed.
            ClassifierError: On any other failure.
        """
        payload = {
            "model": self.model,
            "messages": build_messages(text, author, recent_messages),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }
        data = await self._request(payload)
        return self._parse_response(data)

    def _parse_response(self, data: Dict[str, Any]) -> ToneResult:
        """
        Parse a chat completion response into a ToneResult.

        Raises:
            ClassifierResponseError: If the response shape or content is invalid.
        """
        try:
            content = data["choices"][0]["message"]["content"]
            parsed = RemoteToneResponse.model_validate(json.loads(content))
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            raise ClassifierResponseError(f"Invalid tone classifier response: {e}") from e

        return ToneResult(
            tone=parsed.tone,
            confidence=parsed.confidence,
            rationale=parsed.rationale[:120],
        )


def create_remote_classifier(config: ClassifierConfig) -> Optional[OpenAIToneClassifier]:
    """
    Factory function to create the remote classifier from config.

    Args:
        config: Classifier configuration.

    Returns:
        Optional[OpenAIToneClassifier]: None when disabled or no API key is set.
    """
    if not config.is_active or config.api_key is None:
        logger.info("remote_tone_classifier_disabled", enabled=config.enabled)
        return None
    return OpenAIToneClassifier(
        api_key=config.api_key,
        base_url=config.base_url,
        model=config.model,
        timeout_seconds=config.timeout_seconds,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
