"""Deterministic mock responses used when the upstream is bypassed."""

from __future__ import annotations

from docqa.context.aggregator import count_document_blocks
from docqa.types import AnswerResult, AnswerStatus


class MockResponder:
    """Answers from the aggregated context's shape without any network call.

    Keeps the same `AnswerResult` contract as the live gateway path and is
    useful for local environments without credentials. The document count is
    read back from the context's block headers, so it follows whatever the
    aggregator emits rather than being an independent contract.
    """

    def answer(self, question: str, context: str) -> AnswerResult:
        documents = count_document_blocks(context)
        text = (
            f"[MOCK] Analyzing {documents} documents for question '{question.strip()}'. "
            f"Document content length: {len(context)} characters. "
            "A live model would answer across all documents and cite its sources."
        )
        return AnswerResult(
            status=AnswerStatus.MOCK,
            text=text,
            question=question,
            documents_analyzed=documents,
        )

    def summarize(self, context: str) -> AnswerResult:
        documents = count_document_blocks(context)
        text = (
            f"[MOCK] Summary of {documents} documents with total content length of "
            f"{len(context)} characters. A live model would summarize each document "
            "and highlight connections between them."
        )
        return AnswerResult(status=AnswerStatus.MOCK, text=text, documents_analyzed=documents)
