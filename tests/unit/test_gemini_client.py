import httpx
import pytest

from docqa.config import GatewayConfig, GenerationConfig
from docqa.gateway.client import GeminiClient, GenerateRequest
from docqa.types import OutcomeKind

from conftest import answer_response


def _client_for(handler, config: GatewayConfig) -> GeminiClient:
    return GeminiClient(config, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_request_shape_and_key_param(gemini_client, upstream) -> None:
    outcome = gemini_client.generate("Hello prompt")

    assert outcome.kind is OutcomeKind.SUCCESS
    assert upstream.query_keys == ["test-key"]
    assert upstream.requests[0] == {
        "contents": [{"parts": [{"text": "Hello prompt"}]}],
        "generationConfig": {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 4096,
        },
    }


def test_generation_config_is_forwarded() -> None:
    payload = GenerateRequest.for_prompt(
        "p", GenerationConfig(temperature=0.1, top_k=5, top_p=0.5, max_output_tokens=64)
    ).to_payload()

    assert payload["generationConfig"] == {
        "temperature": 0.1,
        "topK": 5,
        "topP": 0.5,
        "maxOutputTokens": 64,
    }


def test_success_text_is_stripped(gemini_client, upstream) -> None:
    upstream.responses.append(answer_response("  The answer.  \n"))

    outcome = gemini_client.generate("q")

    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.text == "The answer."


@pytest.mark.parametrize(
    ("response", "kind"),
    [
        (httpx.Response(429, json={"error": {"message": "slow down"}}), OutcomeKind.RATE_LIMITED),
        (httpx.Response(400, json={"error": {"message": "bad"}}), OutcomeKind.CLIENT_ERROR),
        (httpx.Response(403, json={"error": {"message": "denied"}}), OutcomeKind.CLIENT_ERROR),
        (httpx.Response(500, text="boom"), OutcomeKind.SERVER_ERROR),
        (httpx.Response(503), OutcomeKind.SERVER_ERROR),
        (httpx.Response(200, text="not json"), OutcomeKind.SERVER_ERROR),
        (httpx.Response(200, json={"candidates": []}), OutcomeKind.SERVER_ERROR),
        (
            httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "   "}]}}]}),
            OutcomeKind.SERVER_ERROR,
        ),
        (httpx.Response(200, json={"error": {"message": "internal"}}), OutcomeKind.SERVER_ERROR),
        (httpx.Response(200, json={"error": {"message": "Quota exceeded"}}), OutcomeKind.RATE_LIMITED),
        (answer_response("Rate limit exceeded. Please try again."), OutcomeKind.RATE_LIMITED),
    ],
)
def test_outcome_classification(gemini_client, upstream, response, kind) -> None:
    upstream.responses.append(response)

    outcome = gemini_client.generate("q")

    assert outcome.kind is kind
    assert outcome.status_code == response.status_code


def test_client_error_carries_upstream_message(gemini_client, upstream) -> None:
    upstream.responses.append(httpx.Response(403, json={"error": {"message": "API key invalid"}}))

    outcome = gemini_client.generate("q")

    assert outcome.status_code == 403
    assert outcome.detail == "API key invalid"


def test_timeout_is_network_error(gateway_config) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    outcome = _client_for(_handler, gateway_config).generate("q")

    assert outcome.kind is OutcomeKind.NETWORK_ERROR
    assert "timed out" in outcome.detail


def test_connection_failure_is_network_error(gateway_config) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _client_for(_handler, gateway_config).generate("q")

    assert outcome.kind is OutcomeKind.NETWORK_ERROR
    assert outcome.status_code is None
