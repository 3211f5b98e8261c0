"""Text extractors for supported upload formats."""

from __future__ import annotations

import io
from pathlib import PurePosixPath

import fitz
import yaml
from docx import Document as DocxDocument
from markdown_it import MarkdownIt

from askdocs.core.errors import UnsupportedFormatError
from askdocs.utils.helpers import normalize_whitespace

_MD = MarkdownIt()


class BaseExtractor:
    """Common extractor interface."""

    suffixes: tuple[str, ...] = ()

    def can_extract(self, suffix: str) -> bool:
        return suffix in self.suffixes

    def extract(self, data: bytes) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class TextExtractor(BaseExtractor):
    suffixes = (".txt", ".text", ".log")

    def extract(self, data: bytes) -> str:
        return normalize_whitespace(data.decode("utf-8", errors="ignore"))


class MarkdownExtractor(BaseExtractor):
    suffixes = (".md", ".markdown")

    def extract(self, data: bytes) -> str:
        text = data.decode("utf-8", errors="ignore")
        return _markdown_to_text(_strip_front_matter(text))


class PDFExtractor(BaseExtractor):
    suffixes = (".pdf",)

    def extract(self, data: bytes) -> str:
        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = [page.get_text("text", sort=True) for page in doc]
        return normalize_whitespace("\n\n".join(pages))


class DocxExtractor(BaseExtractor):
    suffixes = (".docx",)

    def extract(self, data: bytes) -> str:
        document = DocxDocument(io.BytesIO(data))
        paragraphs = [para.text for para in document.paragraphs if para.text.strip()]
        return normalize_whitespace("\n".join(paragraphs))


class ExtractorRegistry:
    """Selects an extractor by lower-cased file extension."""

    def __init__(self) -> None:
        self._extractors: list[BaseExtractor] = [
            TextExtractor(),
            MarkdownExtractor(),
            PDFExtractor(),
            DocxExtractor(),
        ]

    @property
    def suffixes(self) -> tuple[str, ...]:
        return tuple(suffix for extractor in self._extractors for suffix in extractor.suffixes)

    def for_name(self, file_name: str) -> BaseExtractor | None:
        suffix = PurePosixPath(file_name).suffix.lower()
        for extractor in self._extractors:
            if extractor.can_extract(suffix):
                return extractor
        return None

    def extract(self, file_name: str, data: bytes) -> str:
        extractor = self.for_name(file_name)
        if extractor is None:
            suffix = PurePosixPath(file_name).suffix.lower().lstrip(".") or "<none>"
            raise UnsupportedFormatError(f"Unsupported file type: {suffix}")
        return extractor.extract(data)


def _strip_front_matter(text: str) -> str:
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                front_matter = yaml.safe_load(parts[1])
            except yaml.YAMLError:
                return text
            if front_matter is None or isinstance(front_matter, dict):
                return parts[2]
    return text


def _markdown_to_text(text: str) -> str:
    tokens = _MD.parse(text)
    parts: list[str] = []
    for token in tokens:
        content = token.content.strip()
        if content:
            parts.append(content)
    return normalize_whitespace("\n".join(parts) if parts else text)


__all__ = [
    "BaseExtractor",
    "TextExtractor",
    "MarkdownExtractor",
    "PDFExtractor",
    "DocxExtractor",
    "ExtractorRegistry",
]
