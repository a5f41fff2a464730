"""HTTP client for the Gemini `generateContent` endpoint."""

from __future__ import annotations

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from docqa.config import GatewayConfig, GenerationConfig
from docqa.types import OutcomeKind, UpstreamOutcome


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TextPart(_WireModel):
    text: str | None = None


class Content(_WireModel):
    parts: list[TextPart] = Field(default_factory=list)
    role: str | None = None


class WireGenerationConfig(_WireModel):
    temperature: float
    top_k: int = Field(alias="topK")
    top_p: float = Field(alias="topP")
    max_output_tokens: int = Field(alias="maxOutputTokens")

    @classmethod
    def from_config(cls, config: GenerationConfig) -> "WireGenerationConfig":
        return cls(
            temperature=config.temperature,
            top_k=config.top_k,
            top_p=config.top_p,
            max_output_tokens=config.max_output_tokens,
        )


class GenerateRequest(_WireModel):
    contents: list[Content]
    generation_config: WireGenerationConfig = Field(alias="generationConfig")

    @classmethod
    def for_prompt(cls, prompt: str, config: GenerationConfig) -> "GenerateRequest":
        return cls(
            contents=[Content(parts=[TextPart(text=prompt)])],
            generation_config=WireGenerationConfig.from_config(config),
        )

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Candidate(_WireModel):
    content: Content | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")


class ErrorBody(_WireModel):
    code: int | None = None
    message: str | None = None
    status: str | None = None


class GenerateResponse(_WireModel):
    """Either `candidates[0].content.parts[0].text` or an `error` object."""

    candidates: list[Candidate] = Field(default_factory=list)
    error: ErrorBody | None = None

    def answer_text(self) -> str | None:
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        text = content.parts[0].text
        if text is None or not text.strip():
            return None
        return text.strip()


class GeminiClient:
    """Sends one prompt per call and classifies the result.

    `generate` never raises for upstream or transport trouble: every
    failure is returned as an `UpstreamOutcome` so the gateway can feed it
    to the backoff controller.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(
                connect=config.connect_timeout_seconds,
                write=config.write_timeout_seconds,
                read=config.read_timeout_seconds,
                pool=config.pool_timeout_seconds,
            )
        )

    def close(self) -> None:
        self._http.close()

    def generate(self, prompt: str) -> UpstreamOutcome:
        request = GenerateRequest.for_prompt(prompt, self.config.generation)
        try:
            response = self._http.post(
                self.config.api_url,
                params={"key": self.config.api_key or ""},
                json=request.to_payload(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.TimeoutException as exc:
            logger.error(f"Upstream call timed out: {exc!r}")
            return UpstreamOutcome(OutcomeKind.NETWORK_ERROR, detail=f"request timed out ({exc})")
        except httpx.HTTPError as exc:
            logger.error(f"Upstream transport failure: {exc!r}")
            return UpstreamOutcome(OutcomeKind.NETWORK_ERROR, detail=str(exc) or type(exc).__name__)

        logger.debug(f"Upstream responded HTTP {response.status_code}")
        return self.classify(response)

    def classify(self, response: httpx.Response) -> UpstreamOutcome:
        status = response.status_code
        if not response.is_success:
            logger.warning(f"Upstream error HTTP {status}: {response.text[:500]}")
            if status == 429:
                return UpstreamOutcome(OutcomeKind.RATE_LIMITED, status_code=status, detail="HTTP 429")
            if status in (400, 403):
                return UpstreamOutcome(
                    OutcomeKind.CLIENT_ERROR,
                    status_code=status,
                    detail=_error_message(response) or f"HTTP {status}",
                )
            return UpstreamOutcome(
                OutcomeKind.SERVER_ERROR,
                status_code=status,
                detail=f"HTTP {status} {response.reason_phrase}".strip(),
            )

        try:
            parsed = GenerateResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            return UpstreamOutcome(
                OutcomeKind.SERVER_ERROR,
                status_code=status,
                detail=f"malformed response body ({type(exc).__name__})",
            )

        text = parsed.answer_text()
        if text is not None:
            if self._mentions_rate_limit(text):
                return UpstreamOutcome(
                    OutcomeKind.RATE_LIMITED, status_code=status, detail="rate limit reported in body"
                )
            return UpstreamOutcome(OutcomeKind.SUCCESS, text=text, status_code=status)

        if parsed.error is not None:
            message = parsed.error.message or "Unknown error"
            if self._mentions_rate_limit(message):
                return UpstreamOutcome(OutcomeKind.RATE_LIMITED, status_code=status, detail=message)
            return UpstreamOutcome(
                OutcomeKind.SERVER_ERROR,
                status_code=status,
                detail=f"upstream returned error: {message}",
            )

        return UpstreamOutcome(
            OutcomeKind.SERVER_ERROR, status_code=status, detail="no answer text in response"
        )

    def _mentions_rate_limit(self, text: str) -> bool:
        lowered = text.lower()
        return any(phrase in lowered for phrase in self.config.rate_limit_phrases)


def _error_message(response: httpx.Response) -> str | None:
    try:
        parsed = GenerateResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return None
    if parsed.error is None:
        return None
    return parsed.error.message
