"""FastAPI entrypoint for upload/ask/summary/status endpoints."""

from __future__ import annotations

import time
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, File, HTTPException, UploadFile
from pydantic import BaseModel

from docqa.config import AppConfig
from docqa.errors import StorageInvariantViolation
from docqa.obs.log import configure_logging
from docqa.service import DocumentQAService
from docqa.types import AnswerResult, AnswerStatus

SUPPORTED_FILE_TYPES = ["PDF", "DOCX", "DOC", "TXT"]


class AskRequest(BaseModel):
    question: str = ""


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _answer_payload(result: AnswerResult, service: DocumentQAService) -> dict[str, Any]:
    return {
        "success": True,
        "status": result.status.value,
        "answer": result.text,
        "question": result.question,
        "retry_after_seconds": result.retry_after_seconds,
        "documents_analyzed": result.documents_analyzed,
        "document_names": service.document_names(),
        "timestamp": _timestamp_ms(),
    }


def create_app(service: DocumentQAService | None = None) -> FastAPI:
    """Build the HTTP adapter around a `DocumentQAService`."""

    if service is None:
        config = AppConfig.from_env()
        configure_logging(config.log_level)
        service = DocumentQAService(config)

    app = FastAPI(title="Multi-Document AI Search", version="0.1.0")
    app.state.service = service

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "total_documents": service.document_count(),
            "document_names": service.document_names(),
            "ai_configured": service.config.gateway.is_configured,
            "timestamp": _timestamp_ms(),
        }

    @app.get("/status")
    def status() -> dict[str, Any]:
        return {"success": True, **service.status(), "timestamp": _timestamp_ms()}

    @app.get("/info")
    def info() -> dict[str, Any]:
        return {
            "success": True,
            "system_name": "Multi-Document AI Search",
            "supported_file_types": SUPPORTED_FILE_TYPES,
            "endpoints": {
                "GET /health": "System health check",
                "GET /status": "Current system status",
                "POST /upload": "Upload single document",
                "POST /upload/multiple": "Upload multiple documents",
                "POST /ask": "Query documents with AI",
                "GET /summary": "Get document summary",
                "DELETE /documents": "Clear all documents",
                "POST /clear-cache": "Clear documents and reset AI state",
                "POST /reset-context": "Reset AI state, keep documents",
            },
        }

    @app.post("/upload")
    async def upload(file: UploadFile = File(...)) -> dict[str, Any]:
        data = await file.read()
        filename = file.filename or "upload"
        try:
            report = service.ingest(data, filename)
        except StorageInvariantViolation as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        if not report.success:
            raise HTTPException(status_code=400, detail=report.message)
        return {
            "success": True,
            "message": report.message,
            "filename": filename,
            "file_size": report.size_bytes,
            "total_documents": service.document_count(),
            "document_names": service.document_names(),
            "timestamp": _timestamp_ms(),
        }

    @app.post("/upload/multiple")
    async def upload_multiple(files: list[UploadFile] = File(...)) -> dict[str, Any]:
        if not files:
            raise HTTPException(status_code=400, detail="No files provided")
        payloads = [(item.filename or "upload", await item.read()) for item in files]
        try:
            report = service.batch_ingest(payloads)
        except StorageInvariantViolation as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {
            "success": report.total_documents > 0,
            "message": report.message,
            **asdict(report),
            "success_count": report.success_count,
            "fail_count": report.fail_count,
            "timestamp": _timestamp_ms(),
        }

    @app.post("/ask")
    def ask(request: AskRequest) -> dict[str, Any]:
        result = service.ask(request.question)
        if result.status is AnswerStatus.INVALID_QUESTION:
            raise HTTPException(status_code=400, detail=result.text)
        if result.status is AnswerStatus.NO_CONTEXT:
            raise HTTPException(status_code=400, detail=result.text)
        return _answer_payload(result, service)

    @app.get("/summary")
    def summary() -> dict[str, Any]:
        result = service.summarize()
        if result.status is AnswerStatus.NO_CONTEXT:
            raise HTTPException(status_code=400, detail=result.text)
        payload = _answer_payload(result, service)
        payload["summary"] = payload.pop("answer")
        return payload

    @app.delete("/documents")
    def clear_documents() -> dict[str, Any]:
        cleared = service.clear_all()
        return {
            "success": True,
            "message": "All documents cleared successfully.",
            "cleared_count": cleared,
            "total_documents": 0,
            "timestamp": _timestamp_ms(),
        }

    @app.post("/clear-cache")
    def clear_cache() -> dict[str, Any]:
        cleared = service.clear_all()
        return {
            "success": True,
            "message": "Cache cleared successfully",
            "cleared_count": cleared,
            "timestamp": _timestamp_ms(),
        }

    @app.post("/reset-context")
    def reset_context() -> dict[str, Any]:
        service.reset_ai_state()
        return {
            "success": True,
            "message": "Context reset successfully",
            "total_documents": service.document_count(),
            "ai_available": service.is_available(),
            "timestamp": _timestamp_ms(),
        }

    return app


app = create_app()
