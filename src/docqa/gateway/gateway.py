"""Rate-limited gateway between stored documents and the upstream LLM."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from docqa.config import GatewayConfig
from docqa.context.aggregator import ContextAggregator
from docqa.gateway.backoff import BackoffController, Cooling, Ready
from docqa.gateway.client import GeminiClient
from docqa.gateway.fallback import MockResponder
from docqa.gateway.prompts import build_question_prompt, build_summary_prompt
from docqa.obs.tracing import Timer, UpstreamCallLog
from docqa.store.document_store import DocumentStore
from docqa.types import AnswerResult, AnswerStatus, OutcomeKind, UpstreamOutcome

_CLIENT_ERROR_MESSAGES = {
    400: "Invalid request to the Gemini API. Please check your configuration.",
    403: "Access denied to the Gemini API. Please check your API key permissions.",
}


class AIGateway:
    """Answers questions and summaries over every stored document.

    Every query rebuilds the aggregated context, consults the shared
    `BackoffController` and makes at most one upstream call. Expected
    upstream trouble is never raised: each call returns an `AnswerResult`
    whose `text` can be shown to the user as-is.
    """

    def __init__(
        self,
        config: GatewayConfig,
        backoff: BackoffController,
        *,
        aggregator: ContextAggregator | None = None,
        client: GeminiClient | None = None,
        mock: MockResponder | None = None,
        call_log: UpstreamCallLog | None = None,
    ) -> None:
        self.config = config
        self.backoff = backoff
        self.aggregator = aggregator or ContextAggregator()
        self._client = client
        self._mock = mock or MockResponder()
        self.call_log = call_log or UpstreamCallLog()

    @property
    def client(self) -> GeminiClient:
        if self._client is None:
            self._client = GeminiClient(self.config)
        return self._client

    def ask(self, question: str | None, store: DocumentStore) -> AnswerResult:
        if question is None or not question.strip():
            return AnswerResult(
                status=AnswerStatus.INVALID_QUESTION,
                text="Please provide a valid question.",
                question=question,
            )

        aggregated = self.aggregator.aggregate(store)
        if aggregated is None:
            return _no_context(question)
        context, documents = aggregated.text, aggregated.document_count
        logger.info(
            f"Question over {documents} documents ({len(context)} chars): {question!r}"
        )

        if self.config.use_mock:
            return self._mock.answer(question, context)

        return self._call_upstream(
            prompt_builder=lambda: build_question_prompt(question, context),
            question=question,
            documents=documents,
            cooling_text=_question_cooling_text,
        )

    def summarize(self, store: DocumentStore) -> AnswerResult:
        aggregated = self.aggregator.aggregate(store)
        if aggregated is None:
            return _no_context(None)
        context, documents = aggregated.text, aggregated.document_count
        logger.info(f"Summary over {documents} documents ({len(context)} chars)")

        if self.config.use_mock:
            return self._mock.summarize(context)

        return self._call_upstream(
            prompt_builder=lambda: build_summary_prompt(context),
            question=None,
            documents=documents,
            cooling_text=_summary_cooling_text,
        )

    def is_available(self) -> bool:
        return isinstance(self.backoff.peek(), Ready)

    def seconds_until_available(self) -> int:
        return self.backoff.seconds_until_available()

    def reset_state(self) -> None:
        self.backoff.reset()

    def _call_upstream(
        self,
        *,
        prompt_builder: Callable[[], str],
        question: str | None,
        documents: int,
        cooling_text: Callable[[int, str | None, int], str],
    ) -> AnswerResult:
        if not self.config.is_configured:
            logger.warning("Upstream call skipped: no API key configured")
            return AnswerResult(
                status=AnswerStatus.NOT_CONFIGURED,
                text=(
                    "Gemini AI service is not configured. Set the GEMINI_API_KEY "
                    "environment variable (keys are issued at https://aistudio.google.com/)."
                ),
                question=question,
                documents_analyzed=documents,
            )

        decision = self.backoff.check_and_reserve()
        if isinstance(decision, Cooling):
            seconds = decision.remaining_seconds
            logger.info(f"Cooling down: {decision.remaining_ms:.0f}ms remaining")
            return AnswerResult(
                status=AnswerStatus.COOLING_DOWN,
                text=cooling_text(seconds, question, documents),
                question=question,
                retry_after_seconds=seconds,
                documents_analyzed=documents,
            )

        try:
            prompt = prompt_builder()
            with Timer() as timer:
                outcome = self.client.generate(prompt)
        except BaseException:
            self.backoff.release()
            raise
        state = self.backoff.report_outcome(outcome.kind)
        entry = self.call_log.record(
            kind=outcome.kind,
            latency_ms=timer.elapsed_ms,
            prompt=prompt,
            answer=outcome.text,
            consecutive_failures=state.consecutive_failures,
        )
        logger.info(
            f"Upstream {outcome.kind.value} in {entry.latency_ms:.0f}ms "
            f"(prompt ~{entry.prompt_tokens} tokens, "
            f"failure streak {state.consecutive_failures})"
        )

        return self._to_result(outcome, question, documents, state.consecutive_failures)

    def _to_result(
        self,
        outcome: UpstreamOutcome,
        question: str | None,
        documents: int,
        failures: int,
    ) -> AnswerResult:
        if outcome.kind is OutcomeKind.SUCCESS:
            return AnswerResult(
                status=AnswerStatus.SUCCESS,
                text=outcome.text,
                question=question,
                documents_analyzed=documents,
            )

        if outcome.kind is OutcomeKind.CLIENT_ERROR:
            text = _CLIENT_ERROR_MESSAGES.get(
                outcome.status_code or 0,
                f"The Gemini API rejected the request ({outcome.detail}). "
                "Please check your configuration.",
            )
            return AnswerResult(
                status=AnswerStatus.CLIENT_ERROR,
                text=text,
                question=question,
                documents_analyzed=documents,
            )

        wait = self.backoff.seconds_until_available()
        if outcome.kind is OutcomeKind.RATE_LIMITED:
            status = AnswerStatus.RATE_LIMITED
            text = (
                f"**Gemini API temporarily overloaded** (attempt #{failures})\n\n"
                "Google's AI service is experiencing high demand right now.\n\n"
                f"**Next AI attempt available in:** {_format_wait(wait)}\n"
                "Your documents remain loaded and ready."
            )
        else:
            status = (
                AnswerStatus.NETWORK_ERROR
                if outcome.kind is OutcomeKind.NETWORK_ERROR
                else AnswerStatus.SERVER_ERROR
            )
            text = (
                f"**AI service error** (attempt #{failures})\n\n"
                f"**Technical issue:** {outcome.detail}\n\n"
                f"**Next AI attempt available in:** {_format_wait(wait)}\n"
                "Your documents remain loaded and ready."
            )
        return AnswerResult(
            status=status,
            text=text,
            question=question,
            retry_after_seconds=wait,
            documents_analyzed=documents,
        )


def _no_context(question: str | None) -> AnswerResult:
    return AnswerResult(
        status=AnswerStatus.NO_CONTEXT,
        text="No documents uploaded. Please upload documents before asking questions.",
        question=question,
    )


def _question_cooling_text(seconds: int, question: str | None, documents: int) -> str:
    return (
        f"**AI cooling down** ({seconds} seconds remaining)\n\n"
        f"Due to high API usage, I need to wait **{seconds} seconds** "
        "before processing your next question.\n\n"
        f'**Your question:** "{question}"\n'
        f"**Documents ready:** {documents} loaded"
    )


def _summary_cooling_text(seconds: int, question: str | None, documents: int) -> str:
    del question
    return (
        "**Summary generation delayed**\n\n"
        f"Please wait **{seconds} seconds** before requesting a summary of "
        f"your {documents} documents."
    )


def _format_wait(seconds: int) -> str:
    if seconds >= 120:
        return f"{seconds // 60} minutes ({seconds} seconds)"
    return f"{seconds} seconds"
