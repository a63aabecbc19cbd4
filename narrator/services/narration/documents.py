"""Document source: narratable plain text and rendered word elements."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from bs4 import BeautifulSoup, NavigableString, Tag

from narrator.services.narration.normalizer import extract_plain_text, normalize_word
from narrator.shared.config import config
from narrator.shared.errors import DocumentNotFoundError, InvalidDocumentKeyError
from narrator.shared.models import RenderedWordElement
from narrator.shared.utils import setup_logging

logger = setup_logging("narration-documents")

DOCUMENT_SUFFIXES = (".mdx", ".md")
SKIP_TAGS = frozenset({"code", "pre", "kbd", "var", "samp", "style", "script"})
WORD_ID_ATTRIBUTE = "data-word-id"
WORD_NORMALIZED_ATTRIBUTE = "data-word-normalized"
_WHITESPACE_RE = re.compile(r"\s+")


class DocumentSource:
    """Read documents from a content directory.

    A slug ``["guides", "intro"]`` resolves to the first existing file among
    ``guides/intro.mdx``, ``guides/intro.md``, ``guides/intro/index.mdx`` and
    ``guides/intro/index.md``.
    """

    def __init__(self, content_dir: str | Path | None = None) -> None:
        self.content_dir = Path(content_dir or config.get("content_dir", "./content")).resolve()

    def resolve_path(self, segments: list[str]) -> Path:
        if not segments:
            raise InvalidDocumentKeyError("Document slug is empty")

        base = self.content_dir.joinpath(*segments)
        candidates = [base.with_name(base.name + suffix) for suffix in DOCUMENT_SUFFIXES]
        candidates.extend(base / f"index{suffix}" for suffix in DOCUMENT_SUFFIXES)

        for candidate in candidates:
            resolved = candidate.resolve()
            if self.content_dir not in resolved.parents:
                raise InvalidDocumentKeyError(f"Invalid slug path: {'/'.join(segments)}")
            if resolved.is_file():
                return resolved
        raise DocumentNotFoundError(f"No document for slug {'/'.join(segments)}")

    def read_document(self, segments: list[str]) -> str:
        path = self.resolve_path(segments)
        return path.read_text(encoding="utf-8")

    async def load_plain_text(self, segments: list[str]) -> str:
        """Return the narratable plain text of a document.

        Raises:
            DocumentNotFoundError: the document is missing or has no narratable text.
        """
        raw = await asyncio.to_thread(self.read_document, segments)
        plain_text = extract_plain_text(raw)
        if not plain_text:
            raise DocumentNotFoundError(f"Document {'/'.join(segments)} has no narratable content")
        return plain_text

    def list_documents(self) -> list[list[str]]:
        """Top-level documents: flat ``<slug>.mdx``/``.md`` files and ``<slug>/`` directories."""
        if not self.content_dir.is_dir():
            logger.warning("Content directory %s does not exist", self.content_dir)
            return []

        slugs: list[list[str]] = []
        for entry in sorted(self.content_dir.iterdir()):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                slugs.append([entry.name])
            elif entry.is_file() and entry.suffix in DOCUMENT_SUFFIXES:
                slugs.append([entry.stem])
        return slugs


def collect_word_elements(html: str) -> list[RenderedWordElement]:
    """Return the highlightable words of rendered HTML in reading order.

    Markup that already carries ``data-word-id`` spans is read as is, using
    ``data-word-normalized`` when present. Otherwise text nodes are split on
    whitespace, skipping code-like elements, and every segment with a
    non-empty canonical token becomes an element.
    """
    soup = BeautifulSoup(html, "html.parser")

    spans = soup.find_all(attrs={WORD_ID_ATTRIBUTE: True})
    if spans:
        elements = []
        for position, span in enumerate(spans):
            text = span.get_text()
            normalized = span.get(WORD_NORMALIZED_ATTRIBUTE) or normalize_word(text)
            elements.append(RenderedWordElement(position=position, text=text, normalized=normalized))
        return elements

    elements = []
    for node in soup.find_all(string=True):
        # Comments, doctypes and CDATA are NavigableString subclasses.
        if type(node) is not NavigableString or not node.strip():
            continue
        if _inside_skipped_tag(node):
            continue
        for segment in _WHITESPACE_RE.split(str(node)):
            normalized = normalize_word(segment)
            if normalized:
                elements.append(
                    RenderedWordElement(position=len(elements), text=segment, normalized=normalized)
                )
    return elements


def words_from_text(text: str) -> list[RenderedWordElement]:
    """Word elements for plain text rendered without markup."""
    elements: list[RenderedWordElement] = []
    for segment in text.split():
        normalized = normalize_word(segment)
        if normalized:
            elements.append(RenderedWordElement(position=len(elements), text=segment, normalized=normalized))
    return elements


def _inside_skipped_tag(node: NavigableString) -> bool:
    parent = node.parent
    while isinstance(parent, Tag):
        if parent.name and parent.name.lower() in SKIP_TAGS:
            return True
        parent = parent.parent
    return False
