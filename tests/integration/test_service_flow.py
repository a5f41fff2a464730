import httpx
import pytest

from docqa.gateway.backoff import BackoffController
from docqa.gateway.gateway import AIGateway
from docqa.service import DocumentQAService
from docqa.types import AnswerStatus

from conftest import answer_response


@pytest.fixture
def service(gateway_config, clock, gemini_client) -> DocumentQAService:
    gateway = AIGateway(gateway_config, BackoffController(clock=clock), client=gemini_client)
    return DocumentQAService(gateway=gateway)


def test_ingest_then_ask_end_to_end(service, upstream) -> None:
    upstream.responses.append(answer_response("Revenue grew 10% (report.txt)."))

    report = service.ingest(b"Revenue grew 10%.", "report.txt")
    result = service.ask("What happened to revenue?")

    assert report.success
    assert service.document_count() == 1
    assert result.status is AnswerStatus.SUCCESS
    assert "Revenue grew 10%." in upstream.prompt()
    assert "report.txt" in upstream.prompt()


def test_empty_file_is_rejected_and_count_unchanged(service) -> None:
    service.ingest(b"Existing doc.", "existing.txt")

    report = service.ingest(b"", "empty.txt")

    assert not report.success
    assert "no content" in report.message
    assert service.document_count() == 1


def test_ask_without_documents_makes_no_upstream_call(service, upstream) -> None:
    result = service.ask("Anything?")

    assert result.status is AnswerStatus.NO_CONTEXT
    assert upstream.calls == 0


def test_clear_all_resets_store_and_cooldown(service, upstream) -> None:
    upstream.responses.append(httpx.Response(429))
    service.ingest(b"alpha", "a.txt")
    service.ask("q")
    assert not service.is_available()

    cleared = service.clear_all()

    assert cleared == 1
    assert service.document_count() == 0
    assert service.is_available()
    assert service.backoff.snapshot().consecutive_failures == 0


def test_status_reports_documents_and_upstream_calls(service, upstream) -> None:
    service.ingest(b"alpha", "a.txt")
    service.ask("q")

    status = service.status()

    assert status["total_documents"] == 1
    assert status["document_names"] == ["a.txt"]
    assert status["ai_available"] is False
    assert status["seconds_until_available"] == 10
    assert status["upstream_calls"]["total_calls"] == 1
    assert status["upstream_calls"]["by_outcome"] == {"success": 1}


def test_reset_ai_state_keeps_documents(service, upstream) -> None:
    upstream.responses.append(httpx.Response(429))
    service.ingest(b"alpha", "a.txt")
    service.ingest(b"beta", "b.txt")
    service.ask("q")
    assert service.seconds_until_available() == 20

    service.reset_ai_state()

    assert service.is_available()
    assert service.backoff.snapshot().consecutive_failures == 0
    assert service.document_count() == 2
    assert service.document_names() == ["a.txt", "b.txt"]
