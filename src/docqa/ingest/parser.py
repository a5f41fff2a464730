"""Text extraction for uploaded PDF, DOCX, DOC and TXT files."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import PurePath
from typing import Any

import docx
from loguru import logger
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from docqa.errors import ExtractionFailure, UnsupportedFileType
from docqa.types import ParsedDocument


def file_type_for(filename: str) -> str:
    """Upper-cased extension of `filename`, or `UNKNOWN` when there is none."""
    suffix = PurePath(filename).suffix
    return suffix[1:].upper() if len(suffix) > 1 else "UNKNOWN"


class Parser(ABC):
    """Base parser interface used by the ingest pipeline."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def extract(self, data: bytes, filename: str) -> str:
        """Return the plain text of `data`, raising `ExtractionFailure` on error."""


class TextParser(Parser):
    """Parser for plain text documents."""

    extensions = (".txt",)

    def extract(self, data: bytes, filename: str) -> str:
        return data.decode("utf-8", errors="replace")


class PdfParser(Parser):
    """Parser for PDF documents via pypdf."""

    extensions = (".pdf",)

    def extract(self, data: bytes, filename: str) -> str:
        try:
            reader = PdfReader(BytesIO(data))
            if reader.is_encrypted:
                raise ExtractionFailure(filename, "PDF is encrypted and cannot be processed")
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PyPdfError, ValueError, OSError) as exc:
            raise ExtractionFailure(filename, f"PDF extraction failed: {exc}") from exc

        text = "\n".join(pages)
        if len(text.strip()) < 50:
            logger.warning(
                f"Very little text extracted from {filename} ({len(text.strip())} chars); "
                "it may be image based"
            )
        logger.debug(f"PDF {filename}: {len(pages)} pages, {len(text)} chars")
        return text


class DocxParser(Parser):
    """Parser for DOCX documents: paragraphs followed by table rows."""

    extensions = (".docx",)

    def extract(self, data: bytes, filename: str) -> str:
        try:
            document = docx.Document(BytesIO(data))
        except Exception as exc:
            raise ExtractionFailure(filename, f"DOCX extraction failed: {exc}") from exc
        return _docx_text(document)


class DocParser(Parser):
    """Parser for legacy binary DOC files.

    Tries `antiword` when it is installed, then python-docx for files that are
    really DOCX under a `.doc` name.
    """

    extensions = (".doc",)

    def extract(self, data: bytes, filename: str) -> str:
        text = self._antiword(data, filename)
        if text:
            return text

        try:
            document = docx.Document(BytesIO(data))
        except Exception as exc:
            raise ExtractionFailure(
                filename, "could not extract DOC text (tried antiword, python-docx)"
            ) from exc
        logger.debug(f"Extracted {filename} via python-docx (likely a renamed .docx)")
        return _docx_text(document)

    @staticmethod
    def _antiword(data: bytes, filename: str) -> str | None:
        binary = shutil.which("antiword")
        if binary is None:
            logger.debug(f"antiword not installed; trying fallbacks for {filename}")
            return None
        with tempfile.NamedTemporaryFile(suffix=".doc") as handle:
            handle.write(data)
            handle.flush()
            try:
                result = subprocess.run(
                    [binary, handle.name], capture_output=True, text=True, timeout=60
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                logger.debug(f"antiword failed for {filename}: {exc}")
                return None
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout
        return None


class ParserRegistry:
    """Maps file extension to parser implementation."""

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._parsers: dict[str, Parser] = {}
        for parser in parsers or [PdfParser(), DocxParser(), DocParser(), TextParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for extension in parser.extensions:
            self._parsers[extension.lower()] = parser

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return tuple(self._parsers)

    def parse(self, data: bytes, filename: str) -> ParsedDocument:
        parser = self._parsers.get(PurePath(filename).suffix.lower())
        if parser is None:
            raise UnsupportedFileType(filename, self.supported_extensions)
        text = parser.extract(data, filename)
        return ParsedDocument(filename=filename, text=text, file_type=file_type_for(filename))


def _docx_text(document: Any) -> str:
    lines = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines)
