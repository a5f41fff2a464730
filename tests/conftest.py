from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from docqa.config import GatewayConfig
from docqa.gateway.client import GeminiClient


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start_ms: float = 1_000_000.0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


@dataclass
class FakeUpstream:
    """Scripted Gemini endpoint recording every request it receives."""

    responses: list[httpx.Response] = field(default_factory=list)
    requests: list[dict[str, Any]] = field(default_factory=list)
    query_keys: list[str | None] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.query_keys.append(request.url.params.get("key"))
        if self.responses:
            return self.responses.pop(0)
        return answer_response("Default answer.")

    @property
    def calls(self) -> int:
        return len(self.requests)

    def prompt(self, index: int = -1) -> str:
        return self.requests[index]["contents"][0]["parts"][0]["text"]


def answer_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(api_url="https://llm.test/v1/models/test:generateContent", api_key="test-key")


@pytest.fixture
def gemini_client(gateway_config: GatewayConfig, upstream: FakeUpstream) -> GeminiClient:
    http = httpx.Client(transport=httpx.MockTransport(upstream.handler))
    return GeminiClient(gateway_config, http_client=http)
